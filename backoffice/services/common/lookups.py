# backoffice/services/common/lookups.py

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import NotFoundError


async def ensure_exists(db: AsyncSession, model, obj_id: int, label: str):
    result = await db.execute(select(model).where(model.id == obj_id))
    obj = result.scalars().first()
    if obj is None:
        raise NotFoundError(f"{label} {obj_id} not found", details={"id": obj_id})
    return obj


async def ensure_all_exist(db: AsyncSession, model, ids: Iterable[int], label: str) -> dict:
    ids = set(ids)
    result = await db.execute(select(model).where(model.id.in_(ids)))
    found = {obj.id: obj for obj in result.scalars()}

    missing = sorted(ids - set(found))
    if missing:
        raise NotFoundError(f"{label} {missing[0]} not found", details={"ids": missing})
    return found
