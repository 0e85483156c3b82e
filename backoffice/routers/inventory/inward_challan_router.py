from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.constants.inward_challan import BillStatus
from backoffice.constants.permissions import Permission
from backoffice.core.db import get_db
from backoffice.schemas.inventory.inward_challan_schemas import (
    InwardBillUpdateSchema,
    InwardChallanCreateSchema,
    InwardChallanListData,
    InwardChallanOutSchema,
    InwardChallanUpdateSchema,
    InwardPaymentCreateSchema,
)
from backoffice.services.inventory.inward_challan_service import (
    create_inward_challan,
    delete_inward_challan,
    get_inward_challan,
    list_inward_challans,
    record_inward_payment,
    update_inward_bill,
    update_inward_challan,
)
from backoffice.utils.check_roles import require_capability
from backoffice.utils.response import APIResponse, success_response

router = APIRouter(
    prefix="/inward-delivery-challans",
    tags=["Inward Delivery Challans"],
)


# =========================
# CREATE (STOCK IN)
# =========================
@router.post("/", response_model=APIResponse[InwardChallanOutSchema])
async def create_inward_challan_api(
    payload: InwardChallanCreateSchema,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_capability(Permission.CREATE_INWARD_CHALLANS)),
):
    challan = await create_inward_challan(db, payload, user)
    return success_response("Inward challan created successfully", challan)


# =========================
# LIST
# =========================
@router.get("/", response_model=APIResponse[InwardChallanListData])
async def list_inward_challans_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_capability(Permission.READ_INWARD_CHALLANS)),

    site_id: int | None = Query(None),
    purchase_order_id: int | None = Query(None),
    status: BillStatus | None = Query(None),

    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    data = await list_inward_challans(
        db,
        site_id=site_id,
        purchase_order_id=purchase_order_id,
        status=status,
        page=page,
        page_size=page_size,
    )
    return success_response("Inward challans fetched successfully", data)


# =========================
# GET BY ID
# =========================
@router.get("/{challan_id}", response_model=APIResponse[InwardChallanOutSchema])
async def get_inward_challan_api(
    challan_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_capability(Permission.READ_INWARD_CHALLANS)),
):
    challan = await get_inward_challan(db, challan_id)
    return success_response("Inward challan fetched successfully", challan)


# =========================
# UPDATE (RECONCILES STOCK)
# =========================
@router.patch("/{challan_id}", response_model=APIResponse[InwardChallanOutSchema])
async def update_inward_challan_api(
    challan_id: int,
    payload: InwardChallanUpdateSchema,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_capability(Permission.EDIT_INWARD_CHALLANS)),
):
    challan = await update_inward_challan(db, challan_id, payload, user)
    return success_response("Inward challan updated successfully", challan)


# =========================
# DELETE (REVERSES STOCK)
# =========================
@router.delete("/{challan_id}", response_model=APIResponse[dict])
async def delete_inward_challan_api(
    challan_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_capability(Permission.DELETE_INWARD_CHALLANS)),
):
    await delete_inward_challan(db, challan_id, user)
    return success_response("Inward challan deleted successfully", {"id": challan_id})


# =========================
# BILL / PAYMENTS
# =========================
@router.post("/{challan_id}/bill", response_model=APIResponse[InwardChallanOutSchema])
async def update_inward_bill_api(
    challan_id: int,
    payload: InwardBillUpdateSchema,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_capability(Permission.EDIT_INWARD_BILL)),
):
    challan = await update_inward_bill(db, challan_id, payload, user)
    return success_response("Inward bill updated successfully", challan)


@router.post("/{challan_id}/payments", response_model=APIResponse[InwardChallanOutSchema])
async def record_inward_payment_api(
    challan_id: int,
    payload: InwardPaymentCreateSchema,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_capability(Permission.EDIT_INWARD_BILL)),
):
    challan = await record_inward_payment(db, challan_id, payload, user)
    return success_response("Payment recorded successfully", challan)
