# backoffice/constants/activity_codes.py

from enum import Enum


class ActivityCode(str, Enum):
    # AUTH
    LOGIN = "LOGIN"

    # INDENTS
    CREATE_INDENT = "CREATE_INDENT"
    UPDATE_INDENT = "UPDATE_INDENT"
    INDENT_STATUS_ACTION = "INDENT_STATUS_ACTION"

    # PURCHASE ORDERS
    CREATE_PURCHASE_ORDER = "CREATE_PURCHASE_ORDER"
    UPDATE_PURCHASE_ORDER = "UPDATE_PURCHASE_ORDER"
    PURCHASE_ORDER_STATUS_ACTION = "PURCHASE_ORDER_STATUS_ACTION"

    # CASHBOOKS
    CREATE_CASHBOOK = "CREATE_CASHBOOK"
    UPDATE_CASHBOOK = "UPDATE_CASHBOOK"
    CASHBOOK_STATUS_ACTION = "CASHBOOK_STATUS_ACTION"

    # INWARD DELIVERY CHALLANS
    CREATE_INWARD_CHALLAN = "CREATE_INWARD_CHALLAN"
    UPDATE_INWARD_CHALLAN = "UPDATE_INWARD_CHALLAN"
    DELETE_INWARD_CHALLAN = "DELETE_INWARD_CHALLAN"
    UPDATE_INWARD_BILL = "UPDATE_INWARD_BILL"
    RECORD_INWARD_PAYMENT = "RECORD_INWARD_PAYMENT"
