from decimal import Decimal

from fastapi import HTTPException, status

from backoffice.constants.error_codes import ErrorCode


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details


# =====================================================
# DOMAIN ERRORS
# =====================================================
class ValidationError(AppException):
    def __init__(self, message: str, details: dict | None = None, error_code: ErrorCode = ErrorCode.VALIDATION_ERROR):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, error_code, details)


class ApprovalStateError(ValidationError):
    """The document is not in a status from which the action can run."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, details, ErrorCode.INVALID_STATUS_TRANSITION)


class CapabilityError(AppException):
    def __init__(self, message: str, details: dict | None = None, error_code: ErrorCode = ErrorCode.PERMISSION_DENIED):
        super().__init__(status.HTTP_403_FORBIDDEN, message, error_code, details)


class NotFoundError(AppException):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(status.HTTP_404_NOT_FOUND, message, ErrorCode.NOT_FOUND, details)


class ConflictError(AppException):
    def __init__(self, message: str, details: dict | None = None, error_code: ErrorCode = ErrorCode.CONFLICT):
        super().__init__(status.HTTP_409_CONFLICT, message, error_code, details)


class QuantityExceededError(AppException):
    def __init__(self, po_line_id: int, remaining_qty: Decimal, requested_qty: Decimal):
        self.po_line_id = po_line_id
        self.remaining_qty = remaining_qty
        self.requested_qty = requested_qty
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"Receiving quantity {requested_qty} exceeds remaining quantity "
            f"{remaining_qty} for purchase order line {po_line_id}",
            ErrorCode.QUANTITY_EXCEEDED,
            {
                "po_line_id": po_line_id,
                "remaining_qty": str(remaining_qty),
                "requested_qty": str(requested_qty),
            },
        )


class BatchConflictError(AppException):
    def __init__(self, batch_number: str, expected_expiry: str, received_expiry: str):
        self.batch_number = batch_number
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"Expiry date mismatch for batch {batch_number}. Expected {expected_expiry}",
            ErrorCode.BATCH_CONFLICT,
            {
                "batch_number": batch_number,
                "expected_expiry": expected_expiry,
                "received_expiry": received_expiry,
            },
        )
