from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from decimal import Decimal
from datetime import date, datetime

from backoffice.constants.inward_challan import BillStatus


def parse_year_month(value):
    """Accepts YYYY-MM (or a full date) and pins it to the first of the month."""
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.replace(day=1)
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 7:
                return datetime.strptime(text, "%Y-%m").date()
            return datetime.strptime(text[:10], "%Y-%m-%d").date().replace(day=1)
        except ValueError:
            raise ValueError("expiry_date must be in YYYY-MM format")
    raise ValueError("expiry_date must be in YYYY-MM format")


# ==============================
# LINE INPUT SCHEMAS
# ==============================
class ChallanBatchInSchema(BaseModel):
    batch_number: str = Field(min_length=1, max_length=100)
    expiry_date: date = Field(description="YYYY-MM")
    receiving_qty: Decimal = Field(gt=0, decimal_places=4)

    @field_validator("batch_number")
    @classmethod
    def strip_batch_number(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("batch_number must not be blank")
        return value

    @field_validator("expiry_date", mode="before")
    @classmethod
    def expiry_to_month(cls, value):
        return parse_year_month(value)


class ChallanLineInSchema(BaseModel):
    purchase_order_line_id: int
    receiving_qty: Decimal = Field(ge=0, decimal_places=4)
    remark: Optional[str] = Field(default=None, max_length=255)
    batches: List[ChallanBatchInSchema] = Field(default_factory=list)


# ==============================
# CHALLAN INPUT SCHEMAS
# ==============================
class InwardChallanCreateSchema(BaseModel):
    inward_challan_no: Optional[str] = Field(default=None, max_length=20)
    inward_challan_date: date
    purchase_order_id: int
    site_id: Optional[int] = None
    vendor_id: Optional[int] = None

    challan_no: Optional[str] = None
    challan_date: Optional[date] = None
    lr_no: Optional[str] = None
    lr_date: Optional[date] = None
    vehicle_no: Optional[str] = None
    remarks: Optional[str] = None

    bill_amount: Optional[Decimal] = Field(default=None, ge=0)

    items: List[ChallanLineInSchema] = Field(min_length=1)


class InwardChallanUpdateSchema(BaseModel):
    inward_challan_date: Optional[date] = None
    site_id: Optional[int] = None

    challan_no: Optional[str] = None
    challan_date: Optional[date] = None
    lr_no: Optional[str] = None
    lr_date: Optional[date] = None
    vehicle_no: Optional[str] = None
    remarks: Optional[str] = None

    items: Optional[List[ChallanLineInSchema]] = None

    # optimistic locking
    version: int


class InwardBillUpdateSchema(BaseModel):
    bill_no: str = Field(min_length=1, max_length=50)
    bill_date: date
    bill_amount: Decimal = Field(ge=0)
    due_days: int = Field(default=0, ge=0)
    due_date: Optional[date] = None
    status: BillStatus = BillStatus.UNPAID


class InwardPaymentCreateSchema(BaseModel):
    amount: Decimal = Field(gt=0)
    payment_date: Optional[date] = None
    reference: Optional[str] = Field(default=None, max_length=100)


# ==============================
# OUTPUT SCHEMAS
# ==============================
class ChallanBatchOutSchema(BaseModel):
    id: int
    batch_number: str
    expiry_date: date
    qty: Decimal
    amount: Decimal

    class Config:
        from_attributes = True


class ChallanLineOutSchema(BaseModel):
    id: int
    purchase_order_line_id: int
    item_id: int
    receiving_qty: Decimal
    rate: Decimal
    amount: Decimal
    remark: Optional[str] = None
    batches: List[ChallanBatchOutSchema] = []

    class Config:
        from_attributes = True


class InwardChallanOutSchema(BaseModel):
    id: int
    inward_challan_no: str
    inward_challan_date: date
    purchase_order_id: int
    vendor_id: int
    site_id: int

    challan_no: Optional[str] = None
    challan_date: Optional[date] = None
    lr_no: Optional[str] = None
    lr_date: Optional[date] = None
    vehicle_no: Optional[str] = None
    remarks: Optional[str] = None

    bill_no: Optional[str] = None
    bill_date: Optional[date] = None
    bill_amount: Decimal
    due_days: int
    due_date: Optional[date] = None
    total_paid_amount: Decimal
    due_amount: Decimal
    status: BillStatus

    version: int
    created_at: Optional[datetime] = None
    created_by_id: Optional[int] = None
    updated_by_id: Optional[int] = None

    lines: List[ChallanLineOutSchema]

    # item_id -> current closing qty at the challan's site
    closing_stock_by_item_id: Optional[dict[int, Decimal]] = None

    class Config:
        from_attributes = True


class InwardChallanListItemSchema(BaseModel):
    id: int
    inward_challan_no: str
    inward_challan_date: date
    purchase_order_id: int
    vendor_id: int
    site_id: int
    bill_no: Optional[str] = None
    bill_amount: Decimal
    due_amount: Decimal
    status: BillStatus

    class Config:
        from_attributes = True


class InwardChallanListData(BaseModel):
    total: int
    items: List[InwardChallanListItemSchema]
