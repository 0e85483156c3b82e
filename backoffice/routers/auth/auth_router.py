import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.db import get_db
from backoffice.schemas.auth.auth_schemas import LoginRequest, TokenResponse
from backoffice.services.auth.auth_service import login_user
from backoffice.utils.response import APIResponse, success_response

logger = logging.getLogger("auth.router")

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=APIResponse[TokenResponse])
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    logger.info("Login attempt", extra={"username": payload.username})

    tokens = await login_user(db, payload.username, payload.password)
    return success_response("Login successful", tokens)
