from pydantic import BaseModel
from typing import List
from decimal import Decimal
from datetime import date


class ClosingStockItemSchema(BaseModel):
    item_id: int
    closing_qty: Decimal


class ClosingStockData(BaseModel):
    site_id: int
    source: str
    items: List[ClosingStockItemSchema]


class SiteItemBatchOutSchema(BaseModel):
    id: int
    site_id: int
    item_id: int
    batch_number: str
    expiry_date: date
    closing_qty: Decimal
    closing_value: Decimal
    unit_rate: Decimal

    model_config = {"from_attributes": True}
