# backoffice/routers/__init__.py

from .auth.auth_router import router as auth_router

from .procurement.indent_router import router as indent_router
from .procurement.purchase_order_router import router as purchase_order_router
from .procurement.cashbook_router import router as cashbook_router

from .inventory.inward_challan_router import router as inward_challan_router
from .inventory.stock_router import router as stock_router


__all__ = [
    "auth_router",

    "indent_router",
    "purchase_order_router",
    "cashbook_router",

    "inward_challan_router",
    "stock_router",
]
