from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.constants.permissions import Permission
from backoffice.core.db import get_db
from backoffice.schemas.procurement.purchase_order_schemas import (
    PurchaseOrderCreateSchema,
    PurchaseOrderOutSchema,
    PurchaseOrderUpdateSchema,
)
from backoffice.services.approval.capabilities import CapabilityChecker, get_capability_checker
from backoffice.services.procurement.purchase_order_service import (
    create_purchase_order,
    get_purchase_order,
    update_purchase_order,
)
from backoffice.utils.check_roles import require_capability
from backoffice.utils.get_user import get_current_user
from backoffice.utils.response import APIResponse, success_response

router = APIRouter(
    prefix="/purchase-orders",
    tags=["Purchase Orders"],
)


@router.post("/", response_model=APIResponse[PurchaseOrderOutSchema])
async def create_purchase_order_api(
    payload: PurchaseOrderCreateSchema,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_capability(Permission.CREATE_PURCHASE_ORDERS)),
):
    po = await create_purchase_order(db, payload, user)
    return success_response("Purchase order created successfully", po)


@router.get("/{purchase_order_id}", response_model=APIResponse[PurchaseOrderOutSchema])
async def get_purchase_order_api(
    purchase_order_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_capability(Permission.READ_PURCHASE_ORDERS)),
):
    po = await get_purchase_order(db, purchase_order_id)
    return success_response("Purchase order fetched successfully", po)


@router.patch("/{purchase_order_id}", response_model=APIResponse[PurchaseOrderOutSchema])
async def update_purchase_order_api(
    purchase_order_id: int,
    payload: PurchaseOrderUpdateSchema,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
    checker: CapabilityChecker = Depends(get_capability_checker),
):
    po = await update_purchase_order(db, purchase_order_id, payload, user, checker)
    return success_response("Purchase order updated successfully", po)
