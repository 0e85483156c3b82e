# backoffice/constants/approval.py

from enum import Enum


class ApprovalStatus(str, Enum):
    DRAFT = "DRAFT"
    APPROVED_LEVEL_1 = "APPROVED_LEVEL_1"
    APPROVED_LEVEL_2 = "APPROVED_LEVEL_2"
    COMPLETED = "COMPLETED"
    SUSPENDED = "SUSPENDED"


class StatusAction(str, Enum):
    APPROVE_1 = "approve1"
    APPROVE_2 = "approve2"
    COMPLETE = "complete"
    SUSPEND = "suspend"
    UNSUSPEND = "unsuspend"


# column prefix stamped by each action: <prefix>_by_id, <prefix>_at
ACTION_STAMP_PREFIX = {
    StatusAction.APPROVE_1: "approved_1",
    StatusAction.APPROVE_2: "approved_2",
    StatusAction.COMPLETE: "completed",
    StatusAction.SUSPEND: "suspended",
}


class DocumentType(str, Enum):
    INDENT = "INDENT"
    PURCHASE_ORDER = "PURCHASE_ORDER"
    CASHBOOK = "CASHBOOK"
