from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.constants.permissions import Permission
from backoffice.core.db import get_db
from backoffice.core.exceptions import ValidationError
from backoffice.schemas.inventory.stock_schemas import ClosingStockData, SiteItemBatchOutSchema
from backoffice.services.inventory.stock_query_service import (
    ClosingStockSource,
    get_closing_stock,
    list_site_item_batches,
)
from backoffice.utils.check_roles import require_capability
from backoffice.utils.response import APIResponse, success_response

router = APIRouter(
    prefix="/stocks",
    tags=["Stocks"],
)


def _parse_item_ids(raw: str) -> list[int]:
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise ValidationError(
            "item_ids must be a comma separated list of integers",
            details={"item_ids": raw},
        )


@router.get("/closing-stock", response_model=APIResponse[ClosingStockData])
async def closing_stock_api(
    site_id: int = Query(...),
    item_ids: str = Query(..., description="Comma separated item ids"),
    source: ClosingStockSource = Query(ClosingStockSource.BALANCE),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_capability(Permission.READ_STOCKS)),
):
    stock = await get_closing_stock(db, site_id, _parse_item_ids(item_ids), source)
    data = {
        "site_id": site_id,
        "source": source.value,
        "items": [{"item_id": item_id, "closing_qty": qty} for item_id, qty in stock.items()],
    }
    return success_response("Closing stock fetched successfully", data)


@router.get("/site-item-batches", response_model=APIResponse[list[SiteItemBatchOutSchema]])
async def site_item_batches_api(
    site_id: int = Query(...),
    item_id: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_capability(Permission.READ_STOCKS)),
):
    batches = await list_site_item_batches(db, site_id, item_id)
    return success_response("Site item batches fetched successfully", batches)
