from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal
from datetime import date, datetime

from backoffice.constants.approval import StatusAction
from backoffice.schemas.procurement.approval_schemas import ApprovalStateOutSchema


class CashbookDetailCreateSchema(BaseModel):
    description: str = Field(min_length=1, max_length=255)
    amount_received: Decimal = Field(default=Decimal("0"), ge=0)
    amount_paid: Decimal = Field(default=Decimal("0"), ge=0)


class CashbookCreateSchema(BaseModel):
    voucher_date: date
    site_id: int
    remarks: Optional[str] = None
    details: List[CashbookDetailCreateSchema] = Field(min_length=1)


class CashbookUpdateSchema(BaseModel):
    status_action: Optional[StatusAction] = None
    remarks: Optional[str] = None


class CashbookDetailOutSchema(BaseModel):
    id: int
    description: str
    amount_received: Decimal
    amount_paid: Decimal

    class Config:
        from_attributes = True


class CashbookOutSchema(ApprovalStateOutSchema):
    id: int
    voucher_no: str
    voucher_date: date
    site_id: int
    remarks: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by_id: Optional[int] = None

    details: List[CashbookDetailOutSchema]

    class Config:
        from_attributes = True
