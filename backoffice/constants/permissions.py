# backoffice/constants/permissions.py

from backoffice.constants.approval import DocumentType, StatusAction


class Permission:
    # ---------------- INDENTS ----------------
    CREATE_INDENTS = "CREATE_INDENTS"
    READ_INDENTS = "READ_INDENTS"
    EDIT_INDENTS = "EDIT_INDENTS"
    APPROVE_INDENTS_L1 = "APPROVE_INDENTS_L1"
    APPROVE_INDENTS_L2 = "APPROVE_INDENTS_L2"
    COMPLETE_INDENTS = "COMPLETE_INDENTS"
    SUSPEND_INDENTS = "SUSPEND_INDENTS"

    # ---------------- PURCHASE ORDERS ----------------
    CREATE_PURCHASE_ORDERS = "CREATE_PURCHASE_ORDERS"
    READ_PURCHASE_ORDERS = "READ_PURCHASE_ORDERS"
    EDIT_PURCHASE_ORDERS = "EDIT_PURCHASE_ORDERS"
    APPROVE_PURCHASE_ORDERS_L1 = "APPROVE_PURCHASE_ORDERS_L1"
    APPROVE_PURCHASE_ORDERS_L2 = "APPROVE_PURCHASE_ORDERS_L2"
    COMPLETE_PURCHASE_ORDERS = "COMPLETE_PURCHASE_ORDERS"
    SUSPEND_PURCHASE_ORDERS = "SUSPEND_PURCHASE_ORDERS"
    UPDATE_PURCHASE_ORDER_BILL_STATUS = "UPDATE_PURCHASE_ORDER_BILL_STATUS"

    # ---------------- CASHBOOKS ----------------
    CREATE_CASHBOOKS = "CREATE_CASHBOOKS"
    READ_CASHBOOKS = "READ_CASHBOOKS"
    EDIT_CASHBOOKS = "EDIT_CASHBOOKS"
    APPROVE_CASHBOOKS_L1 = "APPROVE_CASHBOOKS_L1"
    APPROVE_CASHBOOKS_L2 = "APPROVE_CASHBOOKS_L2"

    # ---------------- INWARD DELIVERY CHALLANS ----------------
    CREATE_INWARD_CHALLANS = "CREATE_INWARD_CHALLANS"
    READ_INWARD_CHALLANS = "READ_INWARD_CHALLANS"
    EDIT_INWARD_CHALLANS = "EDIT_INWARD_CHALLANS"
    DELETE_INWARD_CHALLANS = "DELETE_INWARD_CHALLANS"
    EDIT_INWARD_BILL = "EDIT_INWARD_BILL"

    # ---------------- STOCK ----------------
    READ_STOCKS = "READ_STOCKS"


# fixed permission name per action per document type
APPROVAL_PERMISSIONS = {
    DocumentType.INDENT: {
        StatusAction.APPROVE_1: Permission.APPROVE_INDENTS_L1,
        StatusAction.APPROVE_2: Permission.APPROVE_INDENTS_L2,
        StatusAction.COMPLETE: Permission.COMPLETE_INDENTS,
        StatusAction.SUSPEND: Permission.SUSPEND_INDENTS,
        StatusAction.UNSUSPEND: Permission.SUSPEND_INDENTS,
    },
    DocumentType.PURCHASE_ORDER: {
        StatusAction.APPROVE_1: Permission.APPROVE_PURCHASE_ORDERS_L1,
        StatusAction.APPROVE_2: Permission.APPROVE_PURCHASE_ORDERS_L2,
        StatusAction.COMPLETE: Permission.COMPLETE_PURCHASE_ORDERS,
        StatusAction.SUSPEND: Permission.SUSPEND_PURCHASE_ORDERS,
        StatusAction.UNSUSPEND: Permission.SUSPEND_PURCHASE_ORDERS,
    },
    DocumentType.CASHBOOK: {
        StatusAction.APPROVE_1: Permission.APPROVE_CASHBOOKS_L1,
        StatusAction.APPROVE_2: Permission.APPROVE_CASHBOOKS_L2,
    },
}


class Role:
    ADMIN = "admin"
    PROJECT_DIRECTOR = "project_director"
    PURCHASE_MANAGER = "purchase_manager"
    SITE_ENGINEER = "site_engineer"
    STORE_KEEPER = "store_keeper"
    ACCOUNTANT = "accountant"


ALL_PERMISSIONS = frozenset(
    value for name, value in vars(Permission).items() if name.isupper()
)

ROLE_PERMISSIONS = {
    Role.ADMIN: ALL_PERMISSIONS,
    Role.PROJECT_DIRECTOR: frozenset({
        Permission.READ_INDENTS,
        Permission.APPROVE_INDENTS_L1,
        Permission.APPROVE_INDENTS_L2,
        Permission.COMPLETE_INDENTS,
        Permission.SUSPEND_INDENTS,
        Permission.READ_PURCHASE_ORDERS,
        Permission.APPROVE_PURCHASE_ORDERS_L1,
        Permission.APPROVE_PURCHASE_ORDERS_L2,
        Permission.COMPLETE_PURCHASE_ORDERS,
        Permission.SUSPEND_PURCHASE_ORDERS,
        Permission.READ_CASHBOOKS,
        Permission.APPROVE_CASHBOOKS_L1,
        Permission.APPROVE_CASHBOOKS_L2,
        Permission.READ_INWARD_CHALLANS,
        Permission.READ_STOCKS,
    }),
    Role.PURCHASE_MANAGER: frozenset({
        Permission.READ_INDENTS,
        Permission.APPROVE_INDENTS_L1,
        Permission.CREATE_PURCHASE_ORDERS,
        Permission.READ_PURCHASE_ORDERS,
        Permission.EDIT_PURCHASE_ORDERS,
        Permission.APPROVE_PURCHASE_ORDERS_L1,
        Permission.READ_INWARD_CHALLANS,
        Permission.READ_STOCKS,
    }),
    Role.SITE_ENGINEER: frozenset({
        Permission.CREATE_INDENTS,
        Permission.READ_INDENTS,
        Permission.EDIT_INDENTS,
        Permission.CREATE_CASHBOOKS,
        Permission.READ_CASHBOOKS,
        Permission.EDIT_CASHBOOKS,
        Permission.READ_STOCKS,
    }),
    Role.STORE_KEEPER: frozenset({
        Permission.READ_PURCHASE_ORDERS,
        Permission.CREATE_INWARD_CHALLANS,
        Permission.READ_INWARD_CHALLANS,
        Permission.EDIT_INWARD_CHALLANS,
        Permission.DELETE_INWARD_CHALLANS,
        Permission.READ_STOCKS,
    }),
    Role.ACCOUNTANT: frozenset({
        Permission.READ_CASHBOOKS,
        Permission.APPROVE_CASHBOOKS_L1,
        Permission.READ_PURCHASE_ORDERS,
        Permission.UPDATE_PURCHASE_ORDER_BILL_STATUS,
        Permission.READ_INWARD_CHALLANS,
        Permission.EDIT_INWARD_BILL,
        Permission.READ_STOCKS,
    }),
}
