import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.constants.activity_codes import ActivityCode
from backoffice.constants.approval import ApprovalStatus
from backoffice.constants.permissions import Permission
from backoffice.core.exceptions import CapabilityError, NotFoundError, ValidationError
from backoffice.models.masters.item_models import Item
from backoffice.models.masters.site_models import Site
from backoffice.models.masters.vendor_models import Vendor
from backoffice.models.procurement.indent_models import Indent
from backoffice.models.procurement.purchase_order_models import PurchaseOrder, PurchaseOrderLine
from backoffice.schemas.procurement.purchase_order_schemas import (
    PurchaseOrderCreateSchema,
    PurchaseOrderUpdateSchema,
)
from backoffice.services.approval.approval_service import apply_status_action
from backoffice.services.approval.capabilities import CapabilityChecker
from backoffice.services.approval.policies import PURCHASE_ORDER_POLICY
from backoffice.services.common.document_number_service import DocumentFamily, run_with_document_number
from backoffice.services.common.lookups import ensure_all_exist, ensure_exists
from backoffice.utils.activity_helpers import actor_context, emit_activity
from backoffice.utils.decimal_utils import ZERO, money, qty4, to_decimal

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


def compute_line_amount(ordered_qty, rate, discount_percent, gst_percent) -> Decimal:
    """qty x rate, less discount, plus GST."""
    base = to_decimal(ordered_qty) * to_decimal(rate)
    discounted = base * (1 - to_decimal(discount_percent) / HUNDRED)
    return money(discounted * (1 + to_decimal(gst_percent) / HUNDRED))


def _order_total(lines) -> Decimal:
    return money(sum((to_decimal(line.amount) for line in lines), ZERO))


# =====================================================
# LOADERS
# =====================================================
async def get_purchase_order(db: AsyncSession, purchase_order_id: int) -> PurchaseOrder:
    result = await db.execute(
        select(PurchaseOrder)
        .where(PurchaseOrder.id == purchase_order_id)
        .execution_options(populate_existing=True)
    )
    po = result.scalars().first()
    if not po:
        raise NotFoundError(f"Purchase order {purchase_order_id} not found", details={"id": purchase_order_id})
    return po


async def _lock_purchase_order(db: AsyncSession, purchase_order_id: int) -> PurchaseOrder:
    result = await db.execute(
        select(PurchaseOrder)
        .where(PurchaseOrder.id == purchase_order_id)
        .with_for_update(of=PurchaseOrder)
        .execution_options(populate_existing=True)
    )
    po = result.scalars().first()
    if not po:
        raise NotFoundError(f"Purchase order {purchase_order_id} not found", details={"id": purchase_order_id})
    return po


# =====================================================
# CREATE
# =====================================================
async def create_purchase_order(db: AsyncSession, payload: PurchaseOrderCreateSchema, user) -> PurchaseOrder:
    actor_id = user.id
    actor = actor_context(user)

    await ensure_exists(db, Site, payload.site_id, "Site")
    await ensure_exists(db, Vendor, payload.vendor_id, "Vendor")
    if payload.indent_id is not None:
        await ensure_exists(db, Indent, payload.indent_id, "Indent")
    await ensure_all_exist(db, Item, [line.item_id for line in payload.lines], "Item")

    async def _insert(number: str) -> int:
        lines = [
            PurchaseOrderLine(
                item_id=line.item_id,
                ordered_qty=qty4(line.ordered_qty),
                received_qty=ZERO,
                rate=qty4(line.rate),
                discount_percent=line.discount_percent,
                gst_percent=line.gst_percent,
                amount=compute_line_amount(line.ordered_qty, line.rate, line.discount_percent, line.gst_percent),
                remark=line.remark,
            )
            for line in payload.lines
        ]
        po = PurchaseOrder(
            purchase_order_no=number,
            purchase_order_date=payload.purchase_order_date,
            site_id=payload.site_id,
            vendor_id=payload.vendor_id,
            indent_id=payload.indent_id,
            remarks=payload.remarks,
            amount=_order_total(lines),
            approval_status=ApprovalStatus.DRAFT.value,
            created_by_id=actor_id,
            updated_by_id=actor_id,
            lines=lines,
        )
        db.add(po)
        await db.flush()

        await emit_activity(
            db=db,
            user_id=actor_id,
            username=actor["actor_email"],
            code=ActivityCode.CREATE_PURCHASE_ORDER,
            target_name=number,
            amount=po.amount,
            **actor,
        )
        return po.id

    po_id = await run_with_document_number(db, DocumentFamily.PURCHASE_ORDER, _insert)
    logger.info("Purchase order created", extra={"purchase_order_id": po_id, "user_id": actor_id})
    return await get_purchase_order(db, po_id)


# =====================================================
# UPDATE / STATUS ACTION
# =====================================================
def _apply_line_edits(po: PurchaseOrder, edits) -> list[str]:
    by_id = {line.id: line for line in po.lines}

    unknown = sorted(e.id for e in edits if e.id not in by_id)
    if unknown:
        raise NotFoundError(
            f"Purchase order line {unknown[0]} not found on {po.purchase_order_no}",
            details={"po_line_ids": unknown},
        )

    changes = []
    for edit in edits:
        line = by_id[edit.id]

        if edit.ordered_qty is not None:
            new_qty = qty4(edit.ordered_qty)
            if new_qty < to_decimal(line.received_qty):
                raise ValidationError(
                    f"Ordered quantity {new_qty} is below the {line.received_qty} already received "
                    f"on purchase order line {line.id}",
                    details={
                        "po_line_id": line.id,
                        "ordered_qty": str(new_qty),
                        "received_qty": str(line.received_qty),
                    },
                )
            line.ordered_qty = new_qty
            line.amount = compute_line_amount(new_qty, line.rate, line.discount_percent, line.gst_percent)

        if edit.approved_1_qty is not None:
            line.approved_1_qty = qty4(edit.approved_1_qty)
        if edit.approved_2_qty is not None:
            line.approved_2_qty = qty4(edit.approved_2_qty)
        if edit.remark is not None:
            line.remark = edit.remark
        changes.append(f"line {edit.id}")

    po.amount = _order_total(po.lines)
    return changes


def carry_forward_approved_qty(po: PurchaseOrder) -> None:
    """Level 2 quantity falls back to level 1, then to the ordered quantity."""
    for line in po.lines:
        if line.approved_2_qty is None:
            line.approved_2_qty = line.approved_1_qty if line.approved_1_qty is not None else line.ordered_qty


async def update_purchase_order(
    db: AsyncSession,
    purchase_order_id: int,
    payload: PurchaseOrderUpdateSchema,
    user,
    capabilities: CapabilityChecker,
) -> PurchaseOrder:
    actor_id = user.id
    actor = actor_context(user)

    try:
        po = await _lock_purchase_order(db, purchase_order_id)
        action = payload.status_action
        changes = []

        if (payload.lines or payload.remarks is not None) and po.approval_status == ApprovalStatus.COMPLETED.value:
            raise ValidationError(
                "A completed purchase order cannot be edited",
                details={"id": purchase_order_id, "approval_status": po.approval_status},
            )

        if payload.remarks is not None and payload.remarks != po.remarks:
            po.remarks = payload.remarks
            changes.append("remarks")

        if payload.lines:
            changes.extend(_apply_line_edits(po, payload.lines))

        # bill status stays editable after completion
        if payload.bill_status is not None and payload.bill_status != po.bill_status:
            if not capabilities.has_capability(user, Permission.UPDATE_PURCHASE_ORDER_BILL_STATUS):
                raise CapabilityError(
                    "You do not have permission to update the bill status of this purchase order",
                    details={"capability": Permission.UPDATE_PURCHASE_ORDER_BILL_STATUS},
                )
            po.bill_status = payload.bill_status
            changes.append("bill_status")

        if not action and not changes:
            raise ValidationError("No changes detected", details={"id": purchase_order_id})

        content_changes = [c for c in changes if c != "bill_status"]
        if not action and content_changes and not capabilities.has_capability(user, Permission.EDIT_PURCHASE_ORDERS):
            raise CapabilityError(
                "You do not have permission to edit this purchase order",
                details={"capability": Permission.EDIT_PURCHASE_ORDERS},
            )

        po.updated_by_id = actor_id

        if action:
            result = apply_status_action(
                po,
                action=action,
                actor=user,
                capabilities=capabilities,
                policy=PURCHASE_ORDER_POLICY,
                total_amount=to_decimal(po.amount),
            )
            if result.auto_escalated:
                carry_forward_approved_qty(po)
                logger.info(
                    "Purchase order auto-approved to level 2",
                    extra={"purchase_order_id": purchase_order_id, "amount": str(po.amount), "actor_id": actor_id},
                )

            await emit_activity(
                db=db,
                user_id=actor_id,
                username=actor["actor_email"],
                code=ActivityCode.PURCHASE_ORDER_STATUS_ACTION,
                target_name=po.purchase_order_no,
                action=action.value,
                status=result.new_status.value,
                **actor,
            )
        else:
            await emit_activity(
                db=db,
                user_id=actor_id,
                username=actor["actor_email"],
                code=ActivityCode.UPDATE_PURCHASE_ORDER,
                target_name=po.purchase_order_no,
                changes=", ".join(changes),
                **actor,
            )

        await db.commit()

    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Purchase order updated",
        extra={"purchase_order_id": purchase_order_id, "action": action.value if action else None},
    )
    return await get_purchase_order(db, purchase_order_id)
