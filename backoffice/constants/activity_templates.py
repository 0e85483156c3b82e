from backoffice.constants.activity_codes import ActivityCode


ACTIVITY_TEMPLATES = {
    # ---------------- AUTH ----------------
    ActivityCode.LOGIN:
        "{actor_role} ({actor_email}) logged in",

    # ---------------- INDENTS ----------------
    ActivityCode.CREATE_INDENT:
        "{actor_role} ({actor_email}) created indent {target_name}",

    ActivityCode.UPDATE_INDENT:
        "{actor_role} ({actor_email}) updated indent {target_name}: {changes}",

    ActivityCode.INDENT_STATUS_ACTION:
        "{actor_role} ({actor_email}) performed {action} on indent {target_name} (now {status})",

    # ---------------- PURCHASE ORDERS ----------------
    ActivityCode.CREATE_PURCHASE_ORDER:
        "{actor_role} ({actor_email}) created purchase order {target_name} for {amount}",

    ActivityCode.UPDATE_PURCHASE_ORDER:
        "{actor_role} ({actor_email}) updated purchase order {target_name}: {changes}",

    ActivityCode.PURCHASE_ORDER_STATUS_ACTION:
        "{actor_role} ({actor_email}) performed {action} on purchase order {target_name} (now {status})",

    # ---------------- CASHBOOKS ----------------
    ActivityCode.CREATE_CASHBOOK:
        "{actor_role} ({actor_email}) created cashbook voucher {target_name}",

    ActivityCode.UPDATE_CASHBOOK:
        "{actor_role} ({actor_email}) updated cashbook voucher {target_name}: {changes}",

    ActivityCode.CASHBOOK_STATUS_ACTION:
        "{actor_role} ({actor_email}) performed {action} on cashbook voucher {target_name} (now {status})",

    # ---------------- INWARD DELIVERY CHALLANS ----------------
    ActivityCode.CREATE_INWARD_CHALLAN:
        "{actor_role} ({actor_email}) created inward challan {target_name} with {line_count} line(s)",

    ActivityCode.UPDATE_INWARD_CHALLAN:
        "{actor_role} ({actor_email}) updated inward challan {target_name}: {changes}",

    ActivityCode.DELETE_INWARD_CHALLAN:
        "{actor_role} ({actor_email}) deleted inward challan {target_name}",

    ActivityCode.UPDATE_INWARD_BILL:
        "{actor_role} ({actor_email}) updated bill {bill_no} on inward challan {target_name}",

    ActivityCode.RECORD_INWARD_PAYMENT:
        "{actor_role} ({actor_email}) recorded payment of {amount} on inward challan {target_name}",
}
