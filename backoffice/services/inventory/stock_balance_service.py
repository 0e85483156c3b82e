# backoffice/services/inventory/stock_balance_service.py
"""
Site stock balances and the stock ledger behind them.

Every change to ``SiteItem`` / ``SiteItemBatch`` goes through
``apply_balance_delta`` with a signed quantity and value. Receipts also write
immutable ``StockLedgerEntry`` rows; editing or deleting a receipt retires its
entries instead of changing them, so the balances can always be rebuilt as a
fold over the live entries.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select, update, func, tuple_
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import BatchConflictError
from backoffice.models.inventory.site_item_models import SiteItem, SiteItemBatch
from backoffice.models.inventory.stock_ledger_models import StockLedgerEntry
from backoffice.utils.decimal_utils import ZERO, money, qty4, to_decimal, unit_rate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchRef:
    batch_number: str
    expiry_date: date


def format_expiry(value: date) -> str:
    return value.strftime("%Y-%m")


def _clamped(current, delta) -> tuple[Decimal, bool]:
    result = to_decimal(current) + to_decimal(delta)
    if result < ZERO:
        return ZERO, True
    return result, False


# =====================================================
# ROW ACCESS (LOCKED)
# =====================================================
async def _lock_site_item(db: AsyncSession, site_id: int, item_id: int) -> Optional[SiteItem]:
    result = await db.execute(
        select(SiteItem)
        .where(SiteItem.site_id == site_id, SiteItem.item_id == item_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def _lock_site_item_batch(
    db: AsyncSession, site_id: int, item_id: int, batch_number: str
) -> Optional[SiteItemBatch]:
    result = await db.execute(
        select(SiteItemBatch)
        .where(
            SiteItemBatch.site_id == site_id,
            SiteItemBatch.item_id == item_id,
            SiteItemBatch.batch_number == batch_number,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def lock_site_balances(db: AsyncSession, keys: Iterable[tuple[int, int]]) -> None:
    """
    Lock the existing balance rows of the given (site_id, item_id) pairs:
    item rows first, then their batch rows, each in key order. Call before
    the first ``apply_balance_delta`` of a transaction.
    """
    keys = sorted(set(keys))
    if not keys:
        return

    await db.execute(
        select(SiteItem.site_id, SiteItem.item_id)
        .where(tuple_(SiteItem.site_id, SiteItem.item_id).in_(keys))
        .order_by(SiteItem.site_id, SiteItem.item_id)
        .with_for_update()
    )
    await db.execute(
        select(SiteItemBatch.id)
        .where(tuple_(SiteItemBatch.site_id, SiteItemBatch.item_id).in_(keys))
        .order_by(SiteItemBatch.site_id, SiteItemBatch.item_id, SiteItemBatch.batch_number)
        .with_for_update()
    )


def _apply(row, qty_delta: Decimal, value_delta: Decimal) -> bool:
    qty, qty_clamped = _clamped(row.closing_qty, qty_delta)
    value, value_clamped = _clamped(row.closing_value, value_delta)
    if qty == ZERO:
        value = ZERO

    row.closing_qty = qty4(qty)
    row.closing_value = qty4(value)
    row.unit_rate = unit_rate(row.closing_value, row.closing_qty)
    return qty_clamped or value_clamped


# =====================================================
# SIGNED DELTA
# =====================================================
async def apply_balance_delta(
    db: AsyncSession,
    *,
    site_id: int,
    item_id: int,
    qty_delta,
    value_delta,
    batch: Optional[BatchRef] = None,
) -> SiteItem:
    """
    Add a signed quantity/value delta to the (site, item) balance and, for a
    batch movement, to the (site, item, batch) balance as well.

    Rows are created on the first positive movement. Results are clamped at
    zero. A positive batch movement whose expiry differs from the stored one
    raises ``BatchConflictError`` before anything is written.
    """
    qty_delta = to_decimal(qty_delta)
    value_delta = to_decimal(value_delta)

    # ----------------------------
    # BATCH ROW
    # ----------------------------
    if batch is not None:
        batch_row = await _lock_site_item_batch(db, site_id, item_id, batch.batch_number)

        if batch_row is None:
            if qty_delta < ZERO:
                logger.warning(
                    "Reversal for unknown batch ignored",
                    extra={"site_id": site_id, "item_id": item_id, "batch_number": batch.batch_number},
                )
            else:
                batch_row = SiteItemBatch(
                    site_id=site_id,
                    item_id=item_id,
                    batch_number=batch.batch_number,
                    expiry_date=batch.expiry_date,
                    closing_qty=ZERO,
                    closing_value=ZERO,
                    unit_rate=ZERO,
                )
                db.add(batch_row)

        elif qty_delta > ZERO and batch_row.expiry_date != batch.expiry_date:
            raise BatchConflictError(
                batch.batch_number,
                expected_expiry=format_expiry(batch_row.expiry_date),
                received_expiry=format_expiry(batch.expiry_date),
            )

        if batch_row is not None and _apply(batch_row, qty_delta, value_delta):
            logger.warning(
                "Batch balance clamped at zero",
                extra={"site_id": site_id, "item_id": item_id, "batch_number": batch.batch_number},
            )

    # ----------------------------
    # ITEM ROW
    # ----------------------------
    row = await _lock_site_item(db, site_id, item_id)
    if row is None:
        row = SiteItem(
            site_id=site_id,
            item_id=item_id,
            closing_qty=ZERO,
            closing_value=ZERO,
            unit_rate=ZERO,
        )
        db.add(row)

    if _apply(row, qty_delta, value_delta):
        logger.warning(
            "Site item balance clamped at zero",
            extra={"site_id": site_id, "item_id": item_id, "qty_delta": str(qty_delta)},
        )

    await db.flush()
    return row


# =====================================================
# LEDGER ENTRIES
# =====================================================
def record_ledger_entry(
    db: AsyncSession,
    *,
    site_id: int,
    item_id: int,
    transaction_date: date,
    document_type: str,
    inward_delivery_challan_id: Optional[int],
    received_qty,
    rate,
    amount,
    batch: Optional[BatchRef] = None,
) -> StockLedgerEntry:
    entry = StockLedgerEntry(
        site_id=site_id,
        item_id=item_id,
        transaction_date=transaction_date,
        document_type=document_type,
        inward_delivery_challan_id=inward_delivery_challan_id,
        batch_number=batch.batch_number if batch else None,
        expiry_date=batch.expiry_date if batch else None,
        received_qty=qty4(received_qty),
        issued_qty=ZERO,
        unit_rate=qty4(rate),
        amount=money(amount),
    )
    db.add(entry)
    return entry


async def retire_ledger_entries(db: AsyncSession, *, inward_delivery_challan_id: int) -> int:
    result = await db.execute(
        update(StockLedgerEntry)
        .where(
            StockLedgerEntry.inward_delivery_challan_id == inward_delivery_challan_id,
            StockLedgerEntry.is_retired.is_(False),
        )
        .values(is_retired=True, retired_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


# =====================================================
# REBUILD (FOLD OVER LIVE ENTRIES)
# =====================================================
async def rebuild_site_balances(db: AsyncSession, site_id: int) -> None:
    """Recompute every balance row of a site from its live ledger entries."""
    result = await db.execute(
        select(StockLedgerEntry).where(
            StockLedgerEntry.site_id == site_id,
            StockLedgerEntry.is_retired.is_(False),
        )
    )

    item_totals = defaultdict(lambda: [ZERO, ZERO])
    batch_totals = defaultdict(lambda: [ZERO, ZERO, None])

    for entry in result.scalars():
        net_qty = to_decimal(entry.received_qty) - to_decimal(entry.issued_qty)
        signed_amount = to_decimal(entry.amount) if net_qty >= ZERO else -to_decimal(entry.amount)

        item_totals[entry.item_id][0] += net_qty
        item_totals[entry.item_id][1] += signed_amount

        if entry.batch_number:
            key = (entry.item_id, entry.batch_number)
            batch_totals[key][0] += net_qty
            batch_totals[key][1] += signed_amount
            batch_totals[key][2] = entry.expiry_date

    rows = await db.execute(
        select(SiteItem)
        .where(SiteItem.site_id == site_id)
        .order_by(SiteItem.item_id)
        .with_for_update()
    )
    existing = {row.item_id: row for row in rows.scalars()}

    for item_id in set(existing) | set(item_totals):
        row = existing.get(item_id)
        if row is None:
            row = SiteItem(site_id=site_id, item_id=item_id)
            db.add(row)
        qty, value = item_totals.get(item_id, (ZERO, ZERO))
        row.closing_qty, row.closing_value = ZERO, ZERO
        _apply(row, qty, value)

    batch_rows = await db.execute(
        select(SiteItemBatch)
        .where(SiteItemBatch.site_id == site_id)
        .order_by(SiteItemBatch.item_id, SiteItemBatch.batch_number)
        .with_for_update()
    )
    existing_batches = {(b.item_id, b.batch_number): b for b in batch_rows.scalars()}

    for key in set(existing_batches) | set(batch_totals):
        row = existing_batches.get(key)
        qty, value, expiry = batch_totals.get(key, (ZERO, ZERO, None))
        if row is None:
            row = SiteItemBatch(site_id=site_id, item_id=key[0], batch_number=key[1], expiry_date=expiry)
            db.add(row)
        row.closing_qty, row.closing_value = ZERO, ZERO
        _apply(row, qty, value)

    await db.flush()
    logger.info("Site balances rebuilt from ledger", extra={"site_id": site_id, "items": len(item_totals)})


# =====================================================
# CONSISTENCY AUDIT
# =====================================================
async def audit_stock_consistency(db: AsyncSession) -> list[dict]:
    """Compare every balance row with the ledger and report the (site, item) pairs that disagree."""
    ledger = await db.execute(
        select(
            StockLedgerEntry.site_id,
            StockLedgerEntry.item_id,
            func.coalesce(func.sum(StockLedgerEntry.received_qty), 0),
            func.coalesce(func.sum(StockLedgerEntry.issued_qty), 0),
        )
        .where(StockLedgerEntry.is_retired.is_(False))
        .group_by(StockLedgerEntry.site_id, StockLedgerEntry.item_id)
    )
    ledger_qty = {
        (site_id, item_id): qty4(to_decimal(received) - to_decimal(issued))
        for site_id, item_id, received, issued in ledger.all()
    }

    balances = await db.execute(select(SiteItem.site_id, SiteItem.item_id, SiteItem.closing_qty))
    balance_qty = {(site_id, item_id): qty4(qty) for site_id, item_id, qty in balances.all()}

    mismatches = []
    for key in sorted(set(ledger_qty) | set(balance_qty)):
        expected = ledger_qty.get(key, qty4(ZERO))
        actual = balance_qty.get(key, qty4(ZERO))
        if expected != actual:
            mismatch = {
                "site_id": key[0],
                "item_id": key[1],
                "ledger_qty": str(expected),
                "balance_qty": str(actual),
            }
            logger.warning("Stock balance does not match ledger", extra=mismatch)
            mismatches.append(mismatch)

    return mismatches
