from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal
from datetime import date, datetime

from backoffice.constants.approval import StatusAction
from backoffice.schemas.procurement.approval_schemas import ApprovalStateOutSchema


# ==============================
# INPUT SCHEMAS
# ==============================
class IndentItemCreateSchema(BaseModel):
    item_id: int
    indent_qty: Decimal = Field(gt=0)
    delivery_date: Optional[date] = None
    remark: Optional[str] = Field(default=None, max_length=255)


class IndentCreateSchema(BaseModel):
    indent_date: date
    site_id: int
    remarks: Optional[str] = None
    items: List[IndentItemCreateSchema] = Field(min_length=1)


class IndentItemUpdateSchema(BaseModel):
    id: int
    indent_qty: Optional[Decimal] = Field(default=None, gt=0)
    approved_qty: Optional[Decimal] = Field(default=None, ge=0)
    remark: Optional[str] = Field(default=None, max_length=255)


class IndentUpdateSchema(BaseModel):
    status_action: Optional[StatusAction] = None
    remarks: Optional[str] = None
    items: Optional[List[IndentItemUpdateSchema]] = None


# ==============================
# OUTPUT SCHEMAS
# ==============================
class IndentItemOutSchema(BaseModel):
    id: int
    item_id: int
    indent_qty: Decimal
    approved_qty: Optional[Decimal] = None
    closing_stock: Decimal
    delivery_date: Optional[date] = None
    remark: Optional[str] = None

    class Config:
        from_attributes = True


class IndentOutSchema(ApprovalStateOutSchema):
    id: int
    indent_no: str
    indent_date: date
    site_id: int
    remarks: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by_id: Optional[int] = None

    items: List[IndentItemOutSchema]

    class Config:
        from_attributes = True
