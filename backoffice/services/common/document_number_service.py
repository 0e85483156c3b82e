# backoffice/services/common/document_number_service.py
"""
Human readable document numbers of the form ``NNNN-NNNN``.

The next number is derived from the highest existing one, so two concurrent
creates can pick the same value. The number columns are UNIQUE and
``run_with_document_number`` retries the whole create with a fresh number
when the insert loses that race.
"""

import re
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.constants.error_codes import ErrorCode
from backoffice.core.config import DOCUMENT_NUMBER_MAX_ATTEMPTS
from backoffice.core.exceptions import ConflictError
from backoffice.models.inventory.inward_challan_models import InwardDeliveryChallan
from backoffice.models.procurement.cashbook_models import Cashbook
from backoffice.models.procurement.indent_models import Indent
from backoffice.models.procurement.purchase_order_models import PurchaseOrder

logger = logging.getLogger(__name__)

T = TypeVar("T")

NUMBER_PATTERN = re.compile(r"^(\d{4})-(\d{4})$")
FIRST_NUMBER = "0001-0001"
SEGMENT_MAX = 9999


class DocumentFamily(str, Enum):
    INWARD_CHALLAN = "INWARD_CHALLAN"
    INDENT = "INDENT"
    PURCHASE_ORDER = "PURCHASE_ORDER"
    CASHBOOK = "CASHBOOK"


FAMILY_COLUMNS = {
    DocumentFamily.INWARD_CHALLAN: InwardDeliveryChallan.inward_challan_no,
    DocumentFamily.INDENT: Indent.indent_no,
    DocumentFamily.PURCHASE_ORDER: PurchaseOrder.purchase_order_no,
    DocumentFamily.CASHBOOK: Cashbook.voucher_no,
}


# =====================================================
# NUMBER ARITHMETIC
# =====================================================
def increment_document_number(current: Optional[str]) -> str:
    if current is None:
        return FIRST_NUMBER

    match = NUMBER_PATTERN.match(current)
    if not match:
        raise ValueError(f"{current!r} is not a NNNN-NNNN document number")

    left, right = int(match.group(1)), int(match.group(2))
    if right >= SEGMENT_MAX:
        left, right = left + 1, 1
    else:
        right += 1

    if left > SEGMENT_MAX:
        raise ConflictError(
            "Document number range is exhausted",
            details={"last_number": current},
            error_code=ErrorCode.DUPLICATE_DOCUMENT_NUMBER,
        )

    return f"{left:04d}-{right:04d}"


def highest_document_number(values) -> Optional[str]:
    """Highest NNNN-NNNN value, ignoring legacy numbers in other formats."""
    matching = [v for v in values if v and NUMBER_PATTERN.match(v)]
    return max(matching, default=None)


# =====================================================
# NEXT NUMBER
# =====================================================
async def next_document_number(db: AsyncSession, family: DocumentFamily) -> str:
    family = DocumentFamily(family)
    column = FAMILY_COLUMNS[family]

    result = await db.execute(
        select(column).where(column.like("____-____"))
    )
    highest = highest_document_number(result.scalars().all())

    number = increment_document_number(highest)
    logger.debug(
        "Generated document number",
        extra={"family": family.value, "previous": highest, "number": number},
    )
    return number


def is_duplicate_number(exc: IntegrityError, family: DocumentFamily) -> bool:
    column = FAMILY_COLUMNS[family]
    return column.key in str(exc.orig)


# =====================================================
# CREATE WITH RETRY
# =====================================================
async def run_with_document_number(
    db: AsyncSession,
    family: DocumentFamily,
    operation: Callable[[str], Awaitable[T]],
    *,
    supplied_number: Optional[str] = None,
    max_attempts: int = DOCUMENT_NUMBER_MAX_ATTEMPTS,
) -> T:
    """
    Run ``operation(number)`` and commit.

    A duplicate generated number rolls the transaction back and the whole
    operation is retried with a freshly generated number. A caller supplied
    number is tried once. Any other failure rolls back and propagates.
    """
    family = DocumentFamily(family)
    attempts = 1 if supplied_number else max(1, max_attempts)
    number = supplied_number

    for attempt in range(1, attempts + 1):
        if not supplied_number:
            number = await next_document_number(db, family)

        try:
            result = await operation(number)
            await db.commit()
            return result

        except IntegrityError as exc:
            await db.rollback()
            if not is_duplicate_number(exc, family):
                raise
            logger.warning(
                "Document number already taken",
                extra={"family": family.value, "number": number, "attempt": attempt},
            )

        except Exception:
            await db.rollback()
            raise

    raise ConflictError(
        f"Document number {number} is already in use",
        details={"family": family.value, "number": number, "attempts": attempts},
        error_code=ErrorCode.DUPLICATE_DOCUMENT_NUMBER,
    )
