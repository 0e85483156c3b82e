# backoffice/constants/inward_challan.py

from decimal import Decimal
from enum import Enum


class BillStatus(str, Enum):
    UNPAID = "UNPAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"


class StockDocumentType(str, Enum):
    INWARD_DELIVERY_CHALLAN = "INWARD_DELIVERY_CHALLAN"


# floating error tolerated when comparing receiving qty against remaining qty
QTY_TOLERANCE = Decimal("1e-9")
