# Users and audit
from backoffice.models.users.user_models import User
from backoffice.models.support.activity_models import UserActivity

# Masters
from backoffice.models.masters.site_models import Site
from backoffice.models.masters.vendor_models import Vendor
from backoffice.models.masters.item_models import Item

# Procurement
from backoffice.models.procurement.indent_models import Indent, IndentItem
from backoffice.models.procurement.purchase_order_models import PurchaseOrder, PurchaseOrderLine
from backoffice.models.procurement.cashbook_models import Cashbook, CashbookDetail

# Inventory
from backoffice.models.inventory.inward_challan_models import (
    InwardDeliveryChallan,
    InwardDeliveryChallanLine,
    InwardDeliveryChallanLineBatch,
)
from backoffice.models.inventory.site_item_models import SiteItem, SiteItemBatch
from backoffice.models.inventory.stock_ledger_models import StockLedgerEntry
