import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.constants.activity_codes import ActivityCode
from backoffice.constants.approval import ApprovalStatus
from backoffice.constants.permissions import Permission
from backoffice.core.exceptions import CapabilityError, NotFoundError, ValidationError
from backoffice.models.masters.site_models import Site
from backoffice.models.procurement.cashbook_models import Cashbook, CashbookDetail
from backoffice.schemas.procurement.cashbook_schemas import CashbookCreateSchema, CashbookUpdateSchema
from backoffice.services.approval.approval_service import apply_status_action
from backoffice.services.approval.capabilities import CapabilityChecker
from backoffice.services.approval.policies import CASHBOOK_POLICY
from backoffice.services.common.document_number_service import DocumentFamily, run_with_document_number
from backoffice.services.common.lookups import ensure_exists
from backoffice.utils.activity_helpers import actor_context, emit_activity
from backoffice.utils.decimal_utils import money

logger = logging.getLogger(__name__)


async def get_cashbook(db: AsyncSession, cashbook_id: int) -> Cashbook:
    result = await db.execute(
        select(Cashbook)
        .where(Cashbook.id == cashbook_id)
        .execution_options(populate_existing=True)
    )
    cashbook = result.scalars().first()
    if not cashbook:
        raise NotFoundError(f"Cashbook {cashbook_id} not found", details={"id": cashbook_id})
    return cashbook


async def create_cashbook(db: AsyncSession, payload: CashbookCreateSchema, user) -> Cashbook:
    actor_id = user.id
    actor = actor_context(user)

    await ensure_exists(db, Site, payload.site_id, "Site")

    async def _insert(number: str) -> int:
        cashbook = Cashbook(
            voucher_no=number,
            voucher_date=payload.voucher_date,
            site_id=payload.site_id,
            remarks=payload.remarks,
            approval_status=ApprovalStatus.DRAFT.value,
            created_by_id=actor_id,
            updated_by_id=actor_id,
            details=[
                CashbookDetail(
                    description=d.description,
                    amount_received=money(d.amount_received),
                    amount_paid=money(d.amount_paid),
                )
                for d in payload.details
            ],
        )
        db.add(cashbook)
        await db.flush()

        await emit_activity(
            db=db,
            user_id=actor_id,
            username=actor["actor_email"],
            code=ActivityCode.CREATE_CASHBOOK,
            target_name=number,
            **actor,
        )
        return cashbook.id

    cashbook_id = await run_with_document_number(db, DocumentFamily.CASHBOOK, _insert)
    logger.info("Cashbook created", extra={"cashbook_id": cashbook_id, "user_id": actor_id})
    return await get_cashbook(db, cashbook_id)


async def update_cashbook(
    db: AsyncSession,
    cashbook_id: int,
    payload: CashbookUpdateSchema,
    user,
    capabilities: CapabilityChecker,
) -> Cashbook:
    actor_id = user.id
    actor = actor_context(user)

    try:
        result = await db.execute(
            select(Cashbook)
            .where(Cashbook.id == cashbook_id)
            .with_for_update(of=Cashbook)
            .execution_options(populate_existing=True)
        )
        cashbook = result.scalars().first()
        if not cashbook:
            raise NotFoundError(f"Cashbook {cashbook_id} not found", details={"id": cashbook_id})

        action = payload.status_action
        changes = []

        if payload.remarks is not None and payload.remarks != cashbook.remarks:
            if cashbook.is_complete:
                raise ValidationError(
                    "A completed cashbook cannot be edited",
                    details={"id": cashbook_id},
                )
            cashbook.remarks = payload.remarks
            changes.append("remarks")

        if not action and not changes:
            raise ValidationError("No changes detected", details={"id": cashbook_id})

        if not action and not capabilities.has_capability(user, Permission.EDIT_CASHBOOKS):
            raise CapabilityError(
                "You do not have permission to edit this cashbook",
                details={"capability": Permission.EDIT_CASHBOOKS},
            )

        cashbook.updated_by_id = actor_id

        if action:
            transition = apply_status_action(
                cashbook,
                action=action,
                actor=user,
                capabilities=capabilities,
                policy=CASHBOOK_POLICY,
            )
            await emit_activity(
                db=db,
                user_id=actor_id,
                username=actor["actor_email"],
                code=ActivityCode.CASHBOOK_STATUS_ACTION,
                target_name=cashbook.voucher_no,
                action=action.value,
                status=transition.new_status.value,
                **actor,
            )
        else:
            await emit_activity(
                db=db,
                user_id=actor_id,
                username=actor["actor_email"],
                code=ActivityCode.UPDATE_CASHBOOK,
                target_name=cashbook.voucher_no,
                changes=", ".join(changes),
                **actor,
            )

        await db.commit()

    except Exception:
        await db.rollback()
        raise

    return await get_cashbook(db, cashbook_id)
