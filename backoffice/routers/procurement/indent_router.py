from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.constants.permissions import Permission
from backoffice.core.db import get_db
from backoffice.schemas.procurement.indent_schemas import (
    IndentCreateSchema,
    IndentOutSchema,
    IndentUpdateSchema,
)
from backoffice.services.approval.capabilities import CapabilityChecker, get_capability_checker
from backoffice.services.procurement.indent_service import create_indent, get_indent, update_indent
from backoffice.utils.check_roles import require_capability
from backoffice.utils.get_user import get_current_user
from backoffice.utils.response import APIResponse, success_response

router = APIRouter(
    prefix="/indents",
    tags=["Indents"],
)


# =========================
# CREATE
# =========================
@router.post("/", response_model=APIResponse[IndentOutSchema])
async def create_indent_api(
    payload: IndentCreateSchema,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_capability(Permission.CREATE_INDENTS)),
):
    indent = await create_indent(db, payload, user)
    return success_response("Indent created successfully", indent)


# =========================
# GET BY ID
# =========================
@router.get("/{indent_id}", response_model=APIResponse[IndentOutSchema])
async def get_indent_api(
    indent_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_capability(Permission.READ_INDENTS)),
):
    indent = await get_indent(db, indent_id)
    return success_response("Indent fetched successfully", indent)


# =========================
# UPDATE / STATUS ACTION
# =========================
@router.patch("/{indent_id}", response_model=APIResponse[IndentOutSchema])
async def update_indent_api(
    indent_id: int,
    payload: IndentUpdateSchema,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
    checker: CapabilityChecker = Depends(get_capability_checker),
):
    indent = await update_indent(db, indent_id, payload, user, checker)
    return success_response("Indent updated successfully", indent)
