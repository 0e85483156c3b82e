from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal
from datetime import date, datetime

from backoffice.constants.approval import StatusAction
from backoffice.schemas.procurement.approval_schemas import ApprovalStateOutSchema


# ==============================
# INPUT SCHEMAS
# ==============================
class PurchaseOrderLineCreateSchema(BaseModel):
    item_id: int
    ordered_qty: Decimal = Field(gt=0)
    rate: Decimal = Field(ge=0)
    discount_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    gst_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    remark: Optional[str] = Field(default=None, max_length=255)


class PurchaseOrderCreateSchema(BaseModel):
    purchase_order_date: date
    site_id: int
    vendor_id: int
    indent_id: Optional[int] = None
    remarks: Optional[str] = None
    lines: List[PurchaseOrderLineCreateSchema] = Field(min_length=1)


class PurchaseOrderLineUpdateSchema(BaseModel):
    id: int
    ordered_qty: Optional[Decimal] = Field(default=None, gt=0)
    approved_1_qty: Optional[Decimal] = Field(default=None, ge=0)
    approved_2_qty: Optional[Decimal] = Field(default=None, ge=0)
    remark: Optional[str] = Field(default=None, max_length=255)


class PurchaseOrderUpdateSchema(BaseModel):
    status_action: Optional[StatusAction] = None
    remarks: Optional[str] = None
    bill_status: Optional[str] = Field(default=None, max_length=255)
    lines: Optional[List[PurchaseOrderLineUpdateSchema]] = None


# ==============================
# OUTPUT SCHEMAS
# ==============================
class PurchaseOrderLineOutSchema(BaseModel):
    id: int
    item_id: int
    ordered_qty: Decimal
    received_qty: Decimal
    rate: Decimal
    discount_percent: Decimal
    gst_percent: Decimal
    amount: Decimal
    approved_1_qty: Optional[Decimal] = None
    approved_2_qty: Optional[Decimal] = None
    remark: Optional[str] = None

    class Config:
        from_attributes = True


class PurchaseOrderOutSchema(ApprovalStateOutSchema):
    id: int
    purchase_order_no: str
    purchase_order_date: date
    site_id: int
    vendor_id: int
    indent_id: Optional[int] = None
    amount: Decimal
    remarks: Optional[str] = None
    bill_status: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by_id: Optional[int] = None

    lines: List[PurchaseOrderLineOutSchema]

    class Config:
        from_attributes = True
