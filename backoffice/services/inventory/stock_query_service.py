# backoffice/services/inventory/stock_query_service.py

import logging
from enum import Enum
from typing import Iterable, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.inventory.site_item_models import SiteItem, SiteItemBatch
from backoffice.models.inventory.stock_ledger_models import StockLedgerEntry
from backoffice.utils.decimal_utils import ZERO, qty4, to_decimal

logger = logging.getLogger(__name__)


class ClosingStockSource(str, Enum):
    BALANCE = "balance"
    LEDGER = "ledger"


# =====================================================
# CLOSING STOCK
# =====================================================
async def closing_stock_from_balances(db: AsyncSession, site_id: int, item_ids: Iterable[int]) -> dict:
    item_ids = sorted(set(item_ids))
    stock = {item_id: qty4(ZERO) for item_id in item_ids}
    if not item_ids:
        return stock

    result = await db.execute(
        select(SiteItem.item_id, SiteItem.closing_qty).where(
            SiteItem.site_id == site_id,
            SiteItem.item_id.in_(item_ids),
        )
    )
    for item_id, closing_qty in result.all():
        stock[item_id] = qty4(closing_qty)
    return stock


async def closing_stock_from_ledger(db: AsyncSession, site_id: int, item_ids: Iterable[int]) -> dict:
    item_ids = sorted(set(item_ids))
    stock = {item_id: qty4(ZERO) for item_id in item_ids}
    if not item_ids:
        return stock

    result = await db.execute(
        select(
            StockLedgerEntry.item_id,
            func.coalesce(func.sum(StockLedgerEntry.received_qty), 0),
            func.coalesce(func.sum(StockLedgerEntry.issued_qty), 0),
        )
        .where(
            StockLedgerEntry.site_id == site_id,
            StockLedgerEntry.item_id.in_(item_ids),
            StockLedgerEntry.is_retired.is_(False),
        )
        .group_by(StockLedgerEntry.item_id)
    )
    for item_id, received, issued in result.all():
        stock[item_id] = qty4(to_decimal(received) - to_decimal(issued))
    return stock


async def get_closing_stock(
    db: AsyncSession,
    site_id: int,
    item_ids: Iterable[int],
    source: ClosingStockSource = ClosingStockSource.BALANCE,
) -> dict:
    if ClosingStockSource(source) == ClosingStockSource.LEDGER:
        return await closing_stock_from_ledger(db, site_id, item_ids)
    return await closing_stock_from_balances(db, site_id, item_ids)


# =====================================================
# SITE ITEM BATCHES
# =====================================================
async def list_site_item_batches(
    db: AsyncSession,
    site_id: int,
    item_id: Optional[int] = None,
) -> list[SiteItemBatch]:
    query = select(SiteItemBatch).where(SiteItemBatch.site_id == site_id)
    if item_id is not None:
        query = query.where(SiteItemBatch.item_id == item_id)

    result = await db.execute(
        query.order_by(SiteItemBatch.item_id, SiteItemBatch.batch_number, SiteItemBatch.id)
    )
    return list(result.scalars())
