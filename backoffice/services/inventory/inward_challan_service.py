import logging
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.constants.activity_codes import ActivityCode
from backoffice.constants.error_codes import ErrorCode
from backoffice.constants.inward_challan import BillStatus
from backoffice.core.exceptions import ConflictError, NotFoundError, ValidationError
from backoffice.models.inventory.inward_challan_models import InwardDeliveryChallan
from backoffice.models.masters.site_models import Site
from backoffice.models.masters.vendor_models import Vendor
from backoffice.models.procurement.purchase_order_models import PurchaseOrder
from backoffice.schemas.inventory.inward_challan_schemas import (
    ChallanBatchInSchema,
    ChallanLineInSchema,
    InwardBillUpdateSchema,
    InwardChallanCreateSchema,
    InwardChallanOutSchema,
    InwardChallanUpdateSchema,
    InwardPaymentCreateSchema,
)
from backoffice.services.common.document_number_service import DocumentFamily, run_with_document_number
from backoffice.services.common.lookups import ensure_exists
from backoffice.services.inventory.reconciliation_service import (
    reconcile_create,
    reconcile_delete,
    reconcile_update,
)
from backoffice.services.inventory.stock_query_service import closing_stock_from_balances
from backoffice.utils.activity_helpers import actor_context, emit_activity
from backoffice.utils.decimal_utils import ZERO, money, to_decimal

logger = logging.getLogger(__name__)

HEADER_FIELDS = (
    "inward_challan_date",
    "site_id",
    "challan_no",
    "challan_date",
    "lr_no",
    "lr_date",
    "vehicle_no",
    "remarks",
)


def compute_due_amount(bill_amount, total_paid_amount) -> Decimal:
    return max(ZERO, money(to_decimal(bill_amount) - to_decimal(total_paid_amount)))


def _lines_total(lines) -> Decimal:
    return money(sum((to_decimal(line.amount) for line in lines), ZERO))


# =====================================================
# LOADERS
# =====================================================
async def _load_challan(db: AsyncSession, challan_id: int, *, lock: bool = False) -> InwardDeliveryChallan:
    query = (
        select(InwardDeliveryChallan)
        .where(
            InwardDeliveryChallan.id == challan_id,
            InwardDeliveryChallan.is_deleted.is_(False),
        )
        .execution_options(populate_existing=True)
    )
    if lock:
        query = query.with_for_update(of=InwardDeliveryChallan)

    result = await db.execute(query)
    challan = result.scalars().first()
    if not challan:
        raise NotFoundError(f"Inward delivery challan {challan_id} not found", details={"id": challan_id})
    return challan


async def get_inward_challan(
    db: AsyncSession,
    challan_id: int,
    *,
    include_closing_stock: bool = True,
) -> InwardChallanOutSchema:
    challan = await _load_challan(db, challan_id)
    data = InwardChallanOutSchema.model_validate(challan)

    if include_closing_stock:
        stock = await closing_stock_from_balances(
            db, challan.site_id, {line.item_id for line in challan.lines}
        )
        data = data.model_copy(update={"closing_stock_by_item_id": stock})

    return data


async def list_inward_challans(
    db: AsyncSession,
    *,
    site_id: int | None = None,
    purchase_order_id: int | None = None,
    status: BillStatus | None = None,
    page: int = 1,
    page_size: int = 20,
) -> dict:
    filters = [InwardDeliveryChallan.is_deleted.is_(False)]
    if site_id is not None:
        filters.append(InwardDeliveryChallan.site_id == site_id)
    if purchase_order_id is not None:
        filters.append(InwardDeliveryChallan.purchase_order_id == purchase_order_id)
    if status is not None:
        filters.append(InwardDeliveryChallan.status == BillStatus(status).value)

    total = await db.scalar(
        select(func.count()).select_from(InwardDeliveryChallan).where(*filters)
    )
    result = await db.execute(
        select(InwardDeliveryChallan)
        .where(*filters)
        .order_by(InwardDeliveryChallan.inward_challan_date.desc(), InwardDeliveryChallan.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    return {"total": total or 0, "items": list(result.scalars())}


# =====================================================
# CREATE
# =====================================================
async def create_inward_challan(db: AsyncSession, payload: InwardChallanCreateSchema, user) -> InwardChallanOutSchema:
    actor_id = user.id
    actor = actor_context(user)

    po = await ensure_exists(db, PurchaseOrder, payload.purchase_order_id, "Purchase order")
    site_id = payload.site_id or po.site_id
    vendor_id = payload.vendor_id or po.vendor_id
    if payload.site_id:
        await ensure_exists(db, Site, payload.site_id, "Site")
    if payload.vendor_id:
        await ensure_exists(db, Vendor, payload.vendor_id, "Vendor")

    supplied_number = (payload.inward_challan_no or "").strip() or None

    async def _insert(number: str) -> int:
        challan = InwardDeliveryChallan(
            inward_challan_no=number,
            inward_challan_date=payload.inward_challan_date,
            purchase_order_id=payload.purchase_order_id,
            vendor_id=vendor_id,
            site_id=site_id,
            challan_no=payload.challan_no,
            challan_date=payload.challan_date,
            lr_no=payload.lr_no,
            lr_date=payload.lr_date,
            vehicle_no=payload.vehicle_no,
            remarks=payload.remarks,
            total_paid_amount=ZERO,
            status=BillStatus.UNPAID.value,
            version=1,
            created_by_id=actor_id,
            updated_by_id=actor_id,
        )
        db.add(challan)
        await db.flush()

        lines = await reconcile_create(db, challan, payload.items)

        challan.bill_amount = money(payload.bill_amount) if payload.bill_amount is not None else _lines_total(lines)
        challan.due_amount = compute_due_amount(challan.bill_amount, challan.total_paid_amount)

        await emit_activity(
            db=db,
            user_id=actor_id,
            username=actor["actor_email"],
            code=ActivityCode.CREATE_INWARD_CHALLAN,
            target_name=number,
            line_count=len(lines),
            **actor,
        )
        return challan.id

    challan_id = await run_with_document_number(
        db,
        DocumentFamily.INWARD_CHALLAN,
        _insert,
        supplied_number=supplied_number,
    )

    logger.info("Inward challan created", extra={"challan_id": challan_id, "user_id": actor_id})
    return await get_inward_challan(db, challan_id, include_closing_stock=False)


# =====================================================
# UPDATE
# =====================================================
def _lines_as_input(lines) -> list[ChallanLineInSchema]:
    return [
        ChallanLineInSchema(
            purchase_order_line_id=line.purchase_order_line_id,
            receiving_qty=line.receiving_qty,
            remark=line.remark,
            batches=[
                ChallanBatchInSchema(
                    batch_number=batch.batch_number,
                    expiry_date=batch.expiry_date,
                    receiving_qty=batch.qty,
                )
                for batch in line.batches
            ],
        )
        for line in lines
    ]


async def update_inward_challan(
    db: AsyncSession,
    challan_id: int,
    payload: InwardChallanUpdateSchema,
    user,
) -> InwardChallanOutSchema:
    actor_id = user.id
    actor = actor_context(user)

    try:
        challan = await _load_challan(db, challan_id, lock=True)

        if challan.version != payload.version:
            raise ConflictError(
                "Inward challan was modified by another user",
                details={"expected_version": challan.version, "received_version": payload.version},
                error_code=ErrorCode.VERSION_CONFLICT,
            )

        previous_site_id = challan.site_id
        incoming_lines = payload.items
        changes = []

        if payload.site_id is not None and payload.site_id != challan.site_id:
            await ensure_exists(db, Site, payload.site_id, "Site")

        for field in HEADER_FIELDS:
            value = getattr(payload, field)
            if value is not None and value != getattr(challan, field):
                setattr(challan, field, value)
                changes.append(field)

        # ledger entries carry site and date, so those edits re-reconcile the current lines
        if incoming_lines is None and {"site_id", "inward_challan_date"} & set(changes):
            incoming_lines = _lines_as_input(challan.lines)

        if incoming_lines is not None:
            lines = await reconcile_update(db, challan, incoming_lines, previous_site_id=previous_site_id)
            if challan.bill_no is None:
                challan.bill_amount = _lines_total(lines)
                challan.due_amount = compute_due_amount(challan.bill_amount, challan.total_paid_amount)
            if payload.items is not None:
                changes.append("items")

        if not changes:
            raise ValidationError("No changes detected", details={"id": challan_id})

        challan.version += 1
        challan.updated_by_id = actor_id

        await emit_activity(
            db=db,
            user_id=actor_id,
            username=actor["actor_email"],
            code=ActivityCode.UPDATE_INWARD_CHALLAN,
            target_name=challan.inward_challan_no,
            changes=", ".join(changes),
            **actor,
        )

        await db.commit()

    except Exception:
        await db.rollback()
        raise

    logger.info("Inward challan updated", extra={"challan_id": challan_id, "changes": changes})
    return await get_inward_challan(db, challan_id)


# =====================================================
# DELETE
# =====================================================
async def delete_inward_challan(db: AsyncSession, challan_id: int, user) -> None:
    actor_id = user.id
    actor = actor_context(user)

    try:
        challan = await _load_challan(db, challan_id, lock=True)

        await reconcile_delete(db, challan)

        challan.is_deleted = True
        challan.version += 1
        challan.updated_by_id = actor_id

        await emit_activity(
            db=db,
            user_id=actor_id,
            username=actor["actor_email"],
            code=ActivityCode.DELETE_INWARD_CHALLAN,
            target_name=challan.inward_challan_no,
            **actor,
        )

        await db.commit()

    except Exception:
        await db.rollback()
        raise

    logger.info("Inward challan deleted", extra={"challan_id": challan_id, "user_id": actor_id})


# =====================================================
# BILL / PAYMENTS
# =====================================================
async def update_inward_bill(
    db: AsyncSession,
    challan_id: int,
    payload: InwardBillUpdateSchema,
    user,
) -> InwardChallanOutSchema:
    actor_id = user.id
    actor = actor_context(user)

    try:
        challan = await _load_challan(db, challan_id, lock=True)

        challan.bill_no = payload.bill_no.strip()
        challan.bill_date = payload.bill_date
        challan.bill_amount = money(payload.bill_amount)
        challan.due_days = payload.due_days
        challan.due_date = payload.due_date or payload.bill_date + timedelta(days=payload.due_days)
        challan.status = payload.status.value
        challan.due_amount = compute_due_amount(challan.bill_amount, challan.total_paid_amount)
        challan.updated_by_id = actor_id

        await emit_activity(
            db=db,
            user_id=actor_id,
            username=actor["actor_email"],
            code=ActivityCode.UPDATE_INWARD_BILL,
            target_name=challan.inward_challan_no,
            bill_no=challan.bill_no,
            **actor,
        )

        await db.commit()

    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Inward bill updated",
        extra={"challan_id": challan_id, "bill_amount": str(payload.bill_amount)},
    )
    return await get_inward_challan(db, challan_id, include_closing_stock=False)


async def record_inward_payment(
    db: AsyncSession,
    challan_id: int,
    payload: InwardPaymentCreateSchema,
    user,
) -> InwardChallanOutSchema:
    actor_id = user.id
    actor = actor_context(user)

    try:
        challan = await _load_challan(db, challan_id, lock=True)

        amount = money(payload.amount)
        due = compute_due_amount(challan.bill_amount, challan.total_paid_amount)
        if amount > due:
            raise ValidationError(
                f"Payment of {amount} exceeds the due amount {due}",
                details={"amount": str(amount), "due_amount": str(due)},
            )

        challan.total_paid_amount = money(to_decimal(challan.total_paid_amount) + amount)
        challan.due_amount = compute_due_amount(challan.bill_amount, challan.total_paid_amount)
        challan.status = (
            BillStatus.PAID.value if challan.due_amount == ZERO else BillStatus.PARTIALLY_PAID.value
        )
        challan.updated_by_id = actor_id

        await emit_activity(
            db=db,
            user_id=actor_id,
            username=actor["actor_email"],
            code=ActivityCode.RECORD_INWARD_PAYMENT,
            target_name=challan.inward_challan_no,
            amount=amount,
            **actor,
        )

        await db.commit()

    except Exception:
        await db.rollback()
        raise

    logger.info("Inward payment recorded", extra={"challan_id": challan_id, "amount": str(amount)})
    return await get_inward_challan(db, challan_id, include_closing_stock=False)
