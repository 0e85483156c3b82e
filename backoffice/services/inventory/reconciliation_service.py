# backoffice/services/inventory/reconciliation_service.py
"""
Keeps purchase order received quantities and site stock in step with inward
delivery challans.

    create  : validate -> write lines -> stock in -> received_qty += qty
    update  : stock out old lines -> retire ledger -> drop old lines
              -> received_qty -= old qty -> validate -> same as create
    delete  : same reversal as update, nothing re-applied

None of these commit. The caller owns the transaction and rolls it back when
any step raises, so a rejected edit leaves the previous version in place.
"""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.constants.inward_challan import QTY_TOLERANCE, StockDocumentType
from backoffice.core.exceptions import NotFoundError, QuantityExceededError, ValidationError
from backoffice.models.inventory.inward_challan_models import (
    InwardDeliveryChallan,
    InwardDeliveryChallanLine,
    InwardDeliveryChallanLineBatch,
)
from backoffice.models.masters.item_models import Item
from backoffice.models.procurement.purchase_order_models import PurchaseOrderLine
from backoffice.services.inventory.stock_balance_service import (
    BatchRef,
    apply_balance_delta,
    lock_site_balances,
    record_ledger_entry,
    retire_ledger_entries,
)
from backoffice.utils.decimal_utils import ZERO, money, qty4, to_decimal, unit_rate

logger = logging.getLogger(__name__)


# =====================================================
# HELPERS
# =====================================================
def line_rate(po_line: PurchaseOrderLine) -> Decimal:
    """Landed rate of a PO line: line amount over ordered quantity."""
    return unit_rate(po_line.amount, po_line.ordered_qty)


def aggregate_by_po_line(lines: Iterable) -> dict[int, Decimal]:
    totals = defaultdict(lambda: ZERO)
    for line in lines:
        totals[line.purchase_order_line_id] += qty4(line.receiving_qty)
    return dict(totals)


async def _lock_po_lines(db: AsyncSession, po_line_ids) -> dict[int, PurchaseOrderLine]:
    if not po_line_ids:
        return {}
    result = await db.execute(
        select(PurchaseOrderLine)
        .where(PurchaseOrderLine.id.in_(po_line_ids))
        .order_by(PurchaseOrderLine.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return {line.id: line for line in result.scalars()}


async def _load_items(db: AsyncSession, item_ids) -> dict[int, Item]:
    if not item_ids:
        return {}
    result = await db.execute(select(Item).where(Item.id.in_(item_ids)))
    return {item.id: item for item in result.scalars()}


async def _load_lines(db: AsyncSession, challan_id: int) -> list[InwardDeliveryChallanLine]:
    result = await db.execute(
        select(InwardDeliveryChallanLine)
        .where(InwardDeliveryChallanLine.inward_delivery_challan_id == challan_id)
        .order_by(InwardDeliveryChallanLine.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars())


def _check_po_lines(challan: InwardDeliveryChallan, po_lines: dict, requested_ids) -> None:
    missing = sorted(set(requested_ids) - set(po_lines))
    if missing:
        raise NotFoundError(
            f"Purchase order line {missing[0]} not found",
            details={"po_line_ids": missing},
        )

    foreign = sorted(
        line_id
        for line_id in requested_ids
        if po_lines[line_id].purchase_order_id != challan.purchase_order_id
    )
    if foreign:
        raise ValidationError(
            f"Purchase order line {foreign[0]} does not belong to purchase order {challan.purchase_order_id}",
            details={"po_line_ids": foreign, "purchase_order_id": challan.purchase_order_id},
        )


def validate_remaining_qty(po_lines: dict[int, PurchaseOrderLine], incoming: dict[int, Decimal]) -> None:
    """Reject when any PO line would receive more than it has left."""
    for po_line_id, requested in sorted(incoming.items()):
        po_line = po_lines[po_line_id]
        remaining = to_decimal(po_line.ordered_qty) - to_decimal(po_line.received_qty)
        if requested > remaining + QTY_TOLERANCE:
            raise QuantityExceededError(
                po_line_id=po_line_id,
                remaining_qty=qty4(max(remaining, ZERO)),
                requested_qty=qty4(requested),
            )


def _validate_batches(incoming_line, item: Item) -> None:
    batches = list(incoming_line.batches or [])
    qty = qty4(incoming_line.receiving_qty)

    if not item.is_expiry_tracked:
        if batches:
            raise ValidationError(
                f"Item {item.name} is not expiry tracked; batches are not allowed",
                details={"item_id": item.id, "po_line_id": incoming_line.purchase_order_line_id},
            )
        return

    if qty <= ZERO:
        return

    if not batches:
        raise ValidationError(
            f"Item {item.name} is expiry tracked; batch details are required",
            details={"item_id": item.id, "po_line_id": incoming_line.purchase_order_line_id},
        )

    batch_total = sum((qty4(b.receiving_qty) for b in batches), ZERO)
    if abs(batch_total - qty) > QTY_TOLERANCE:
        raise ValidationError(
            f"Batch quantities for item {item.name} add up to {qty4(batch_total)}, "
            f"expected {qty4(qty)}",
            details={
                "item_id": item.id,
                "po_line_id": incoming_line.purchase_order_line_id,
                "batch_total": str(qty4(batch_total)),
                "receiving_qty": str(qty4(qty)),
            },
        )


def _reject_batches_without_qty(incoming_lines) -> None:
    empty = sorted(
        l.purchase_order_line_id
        for l in incoming_lines
        if qty4(l.receiving_qty) <= ZERO and l.batches
    )
    if empty:
        raise ValidationError(
            f"Purchase order line {empty[0]} has batch details but no receiving quantity",
            details={"po_line_ids": empty},
        )


def _balance_keys(site_id: int, po_lines: dict[int, PurchaseOrderLine], po_line_ids) -> set[tuple[int, int]]:
    return {(site_id, po_lines[i].item_id) for i in po_line_ids if i in po_lines}


# =====================================================
# APPLY
# =====================================================
async def _apply_lines(
    db: AsyncSession,
    challan: InwardDeliveryChallan,
    incoming_lines: list,
    po_lines: dict[int, PurchaseOrderLine],
) -> list[InwardDeliveryChallanLine]:
    items = await _load_items(db, {po_lines[l.purchase_order_line_id].item_id for l in incoming_lines})

    for incoming in incoming_lines:
        _validate_batches(incoming, items[po_lines[incoming.purchase_order_line_id].item_id])

    created = []
    for incoming in incoming_lines:
        po_line = po_lines[incoming.purchase_order_line_id]
        qty = qty4(incoming.receiving_qty)
        rate = line_rate(po_line)

        line = InwardDeliveryChallanLine(
            inward_delivery_challan_id=challan.id,
            purchase_order_line_id=po_line.id,
            item_id=po_line.item_id,
            receiving_qty=qty,
            rate=rate,
            amount=money(rate * qty),
            remark=getattr(incoming, "remark", None),
            batches=[],
        )

        if qty > ZERO and incoming.batches:
            for split in incoming.batches:
                ref = BatchRef(split.batch_number.strip(), split.expiry_date)
                batch_qty = qty4(split.receiving_qty)
                batch_amount = money(rate * batch_qty)

                await apply_balance_delta(
                    db,
                    site_id=challan.site_id,
                    item_id=po_line.item_id,
                    qty_delta=batch_qty,
                    value_delta=batch_amount,
                    batch=ref,
                )
                record_ledger_entry(
                    db,
                    site_id=challan.site_id,
                    item_id=po_line.item_id,
                    transaction_date=challan.inward_challan_date,
                    document_type=StockDocumentType.INWARD_DELIVERY_CHALLAN.value,
                    inward_delivery_challan_id=challan.id,
                    received_qty=batch_qty,
                    rate=rate,
                    amount=batch_amount,
                    batch=ref,
                )
                line.batches.append(
                    InwardDeliveryChallanLineBatch(
                        batch_number=ref.batch_number,
                        expiry_date=ref.expiry_date,
                        qty=batch_qty,
                        amount=batch_amount,
                    )
                )

        elif qty > ZERO:
            await apply_balance_delta(
                db,
                site_id=challan.site_id,
                item_id=po_line.item_id,
                qty_delta=qty,
                value_delta=line.amount,
            )
            record_ledger_entry(
                db,
                site_id=challan.site_id,
                item_id=po_line.item_id,
                transaction_date=challan.inward_challan_date,
                document_type=StockDocumentType.INWARD_DELIVERY_CHALLAN.value,
                inward_delivery_challan_id=challan.id,
                received_qty=qty,
                rate=rate,
                amount=line.amount,
            )

        db.add(line)
        created.append(line)

    for po_line_id, qty in aggregate_by_po_line(incoming_lines).items():
        po_line = po_lines[po_line_id]
        po_line.received_qty = qty4(to_decimal(po_line.received_qty) + qty)

    await db.flush()
    return created


# =====================================================
# REVERSE
# =====================================================
async def _reverse_lines(
    db: AsyncSession,
    challan: InwardDeliveryChallan,
    site_id: int,
) -> dict[int, Decimal]:
    """Undo the stock and ledger effect of the persisted lines and delete them."""
    old_lines = await _load_lines(db, challan.id)

    # batches first: a re-applied line may keep the batch number with a new qty
    for line in old_lines:
        for batch in line.batches:
            await apply_balance_delta(
                db,
                site_id=site_id,
                item_id=line.item_id,
                qty_delta=-to_decimal(batch.qty),
                value_delta=-to_decimal(batch.amount),
                batch=BatchRef(batch.batch_number, batch.expiry_date),
            )

    for line in old_lines:
        if not line.batches and to_decimal(line.receiving_qty) > ZERO:
            await apply_balance_delta(
                db,
                site_id=site_id,
                item_id=line.item_id,
                qty_delta=-to_decimal(line.receiving_qty),
                value_delta=-to_decimal(line.amount),
            )

    retired = await retire_ledger_entries(db, inward_delivery_challan_id=challan.id)

    previous = aggregate_by_po_line(old_lines)
    for line in old_lines:
        await db.delete(line)
    await db.flush()
    db.expire(challan, ["lines"])

    logger.debug(
        "Reversed inward challan lines",
        extra={"challan_id": challan.id, "lines": len(old_lines), "ledger_entries_retired": retired},
    )
    return previous


def _release_received_qty(po_lines: dict[int, PurchaseOrderLine], previous: dict[int, Decimal]) -> None:
    for po_line_id, qty in previous.items():
        po_line = po_lines.get(po_line_id)
        if po_line is None:
            continue
        po_line.received_qty = qty4(max(to_decimal(po_line.received_qty) - qty, ZERO))


# =====================================================
# PUBLIC API
# =====================================================
async def reconcile_create(
    db: AsyncSession,
    challan: InwardDeliveryChallan,
    incoming_lines: list,
) -> list[InwardDeliveryChallanLine]:
    _reject_batches_without_qty(incoming_lines)
    incoming = aggregate_by_po_line(incoming_lines)
    po_lines = await _lock_po_lines(db, set(incoming))
    _check_po_lines(challan, po_lines, incoming)
    await lock_site_balances(db, _balance_keys(challan.site_id, po_lines, incoming))
    validate_remaining_qty(po_lines, incoming)

    lines = await _apply_lines(db, challan, incoming_lines, po_lines)

    logger.info(
        "Inward challan reconciled",
        extra={"challan_id": challan.id, "site_id": challan.site_id, "lines": len(lines)},
    )
    return lines


async def reconcile_update(
    db: AsyncSession,
    challan: InwardDeliveryChallan,
    incoming_lines: list,
    *,
    previous_site_id: Optional[int] = None,
) -> list[InwardDeliveryChallanLine]:
    """
    Replace the challan's lines. The old version is reversed against
    ``previous_site_id`` (the site before any header edit) and the new one
    applied against ``challan.site_id``. Lines with no quantity are dropped.
    """
    _reject_batches_without_qty(incoming_lines)
    incoming_lines = [l for l in incoming_lines if qty4(l.receiving_qty) > ZERO]
    incoming = aggregate_by_po_line(incoming_lines)
    reverse_site_id = previous_site_id or challan.site_id

    old_po_line_ids = await db.execute(
        select(InwardDeliveryChallanLine.purchase_order_line_id)
        .where(InwardDeliveryChallanLine.inward_delivery_challan_id == challan.id)
    )
    old_po_line_ids = set(old_po_line_ids.scalars())
    po_lines = await _lock_po_lines(db, old_po_line_ids | set(incoming))
    _check_po_lines(challan, po_lines, incoming)
    await lock_site_balances(
        db,
        _balance_keys(reverse_site_id, po_lines, old_po_line_ids)
        | _balance_keys(challan.site_id, po_lines, incoming),
    )

    previous = await _reverse_lines(db, challan, reverse_site_id)
    _release_received_qty(po_lines, previous)

    validate_remaining_qty(po_lines, incoming)
    lines = await _apply_lines(db, challan, incoming_lines, po_lines)

    logger.info(
        "Inward challan re-reconciled",
        extra={
            "challan_id": challan.id,
            "site_id": challan.site_id,
            "previous_site_id": previous_site_id,
            "lines": len(lines),
        },
    )
    return lines


async def reconcile_delete(db: AsyncSession, challan: InwardDeliveryChallan) -> None:
    old_po_line_ids = await db.execute(
        select(InwardDeliveryChallanLine.purchase_order_line_id)
        .where(InwardDeliveryChallanLine.inward_delivery_challan_id == challan.id)
    )
    old_po_line_ids = set(old_po_line_ids.scalars())
    po_lines = await _lock_po_lines(db, old_po_line_ids)
    await lock_site_balances(db, _balance_keys(challan.site_id, po_lines, old_po_line_ids))

    previous = await _reverse_lines(db, challan, challan.site_id)
    _release_received_qty(po_lines, previous)
    await db.flush()

    logger.info("Inward challan reversed", extra={"challan_id": challan.id})
