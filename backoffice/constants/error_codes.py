# backoffice/constants/error_codes.py

from enum import Enum


class ErrorCode(str, Enum):
    # ---------------- GENERIC ----------------
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # ---------------- APPROVALS ----------------
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    SELF_APPROVAL_NOT_ALLOWED = "SELF_APPROVAL_NOT_ALLOWED"

    # ---------------- DOCUMENT NUMBERS ----------------
    DUPLICATE_DOCUMENT_NUMBER = "DUPLICATE_DOCUMENT_NUMBER"

    # ---------------- RECEIPTS / STOCK ----------------
    QUANTITY_EXCEEDED = "QUANTITY_EXCEEDED"
    BATCH_CONFLICT = "BATCH_CONFLICT"
    VERSION_CONFLICT = "VERSION_CONFLICT"
