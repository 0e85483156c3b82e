from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.constants.permissions import Permission
from backoffice.core.db import get_db
from backoffice.schemas.procurement.cashbook_schemas import (
    CashbookCreateSchema,
    CashbookOutSchema,
    CashbookUpdateSchema,
)
from backoffice.services.approval.capabilities import CapabilityChecker, get_capability_checker
from backoffice.services.procurement.cashbook_service import create_cashbook, get_cashbook, update_cashbook
from backoffice.utils.check_roles import require_capability
from backoffice.utils.get_user import get_current_user
from backoffice.utils.response import APIResponse, success_response

router = APIRouter(
    prefix="/cashbooks",
    tags=["Cashbooks"],
)


@router.post("/", response_model=APIResponse[CashbookOutSchema])
async def create_cashbook_api(
    payload: CashbookCreateSchema,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_capability(Permission.CREATE_CASHBOOKS)),
):
    cashbook = await create_cashbook(db, payload, user)
    return success_response("Cashbook created successfully", cashbook)


@router.get("/{cashbook_id}", response_model=APIResponse[CashbookOutSchema])
async def get_cashbook_api(
    cashbook_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_capability(Permission.READ_CASHBOOKS)),
):
    cashbook = await get_cashbook(db, cashbook_id)
    return success_response("Cashbook fetched successfully", cashbook)


@router.patch("/{cashbook_id}", response_model=APIResponse[CashbookOutSchema])
async def update_cashbook_api(
    cashbook_id: int,
    payload: CashbookUpdateSchema,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
    checker: CapabilityChecker = Depends(get_capability_checker),
):
    cashbook = await update_cashbook(db, cashbook_id, payload, user, checker)
    return success_response("Cashbook updated successfully", cashbook)
