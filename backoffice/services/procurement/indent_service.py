import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.constants.activity_codes import ActivityCode
from backoffice.constants.approval import ApprovalStatus, StatusAction
from backoffice.constants.permissions import Permission
from backoffice.core.exceptions import CapabilityError, NotFoundError, ValidationError
from backoffice.models.masters.item_models import Item
from backoffice.models.masters.site_models import Site
from backoffice.models.procurement.indent_models import Indent, IndentItem
from backoffice.schemas.procurement.indent_schemas import IndentCreateSchema, IndentUpdateSchema
from backoffice.services.approval.approval_service import apply_status_action
from backoffice.services.approval.capabilities import CapabilityChecker
from backoffice.services.approval.policies import INDENT_POLICY
from backoffice.services.common.document_number_service import DocumentFamily, run_with_document_number
from backoffice.services.common.lookups import ensure_all_exist, ensure_exists
from backoffice.services.inventory.stock_query_service import closing_stock_from_balances
from backoffice.utils.activity_helpers import actor_context, emit_activity
from backoffice.utils.decimal_utils import qty4

logger = logging.getLogger(__name__)

# approved_qty must accompany line edits for these actions
LINE_APPROVAL_ACTIONS = {StatusAction.APPROVE_1, StatusAction.APPROVE_2, StatusAction.COMPLETE}


# =====================================================
# LOADERS
# =====================================================
async def get_indent(db: AsyncSession, indent_id: int) -> Indent:
    result = await db.execute(
        select(Indent)
        .where(Indent.id == indent_id)
        .execution_options(populate_existing=True)
    )
    indent = result.scalars().first()
    if not indent:
        raise NotFoundError(f"Indent {indent_id} not found", details={"id": indent_id})
    return indent


async def _lock_indent(db: AsyncSession, indent_id: int) -> Indent:
    result = await db.execute(
        select(Indent)
        .where(Indent.id == indent_id)
        .with_for_update(of=Indent)
        .execution_options(populate_existing=True)
    )
    indent = result.scalars().first()
    if not indent:
        raise NotFoundError(f"Indent {indent_id} not found", details={"id": indent_id})
    return indent


# =====================================================
# CREATE
# =====================================================
async def create_indent(db: AsyncSession, payload: IndentCreateSchema, user) -> Indent:
    actor_id = user.id
    actor = actor_context(user)

    await ensure_exists(db, Site, payload.site_id, "Site")
    await ensure_all_exist(db, Item, [i.item_id for i in payload.items], "Item")
    closing = await closing_stock_from_balances(db, payload.site_id, [i.item_id for i in payload.items])

    async def _insert(number: str) -> int:
        indent = Indent(
            indent_no=number,
            indent_date=payload.indent_date,
            site_id=payload.site_id,
            remarks=payload.remarks,
            approval_status=ApprovalStatus.DRAFT.value,
            created_by_id=actor_id,
            updated_by_id=actor_id,
            items=[
                IndentItem(
                    item_id=i.item_id,
                    indent_qty=qty4(i.indent_qty),
                    closing_stock=closing[i.item_id],
                    delivery_date=i.delivery_date,
                    remark=i.remark,
                )
                for i in payload.items
            ],
        )
        db.add(indent)
        await db.flush()

        await emit_activity(
            db=db,
            user_id=actor_id,
            username=actor["actor_email"],
            code=ActivityCode.CREATE_INDENT,
            target_name=number,
            **actor,
        )
        return indent.id

    indent_id = await run_with_document_number(db, DocumentFamily.INDENT, _insert)
    logger.info("Indent created", extra={"indent_id": indent_id, "user_id": actor_id})
    return await get_indent(db, indent_id)


# =====================================================
# UPDATE / STATUS ACTION
# =====================================================
def _apply_item_edits(indent: Indent, edits, action) -> list[str]:
    by_id = {item.id: item for item in indent.items}

    unknown = sorted(e.id for e in edits if e.id not in by_id)
    if unknown:
        raise NotFoundError(
            f"Indent item {unknown[0]} not found on indent {indent.indent_no}",
            details={"item_ids": unknown},
        )

    if action in LINE_APPROVAL_ACTIONS:
        missing = sorted(e.id for e in edits if e.approved_qty is None)
        if missing:
            raise ValidationError(
                "approved_qty is required for every item when approving",
                details={"item_ids": missing, "action": action.value},
            )

    changes = []
    for edit in edits:
        item = by_id[edit.id]
        if edit.indent_qty is not None:
            item.indent_qty = qty4(edit.indent_qty)
        if edit.approved_qty is not None:
            item.approved_qty = qty4(edit.approved_qty)
        if edit.remark is not None:
            item.remark = edit.remark
        changes.append(f"item {edit.id}")
    return changes


async def update_indent(
    db: AsyncSession,
    indent_id: int,
    payload: IndentUpdateSchema,
    user,
    capabilities: CapabilityChecker,
) -> Indent:
    actor_id = user.id
    actor = actor_context(user)

    try:
        indent = await _lock_indent(db, indent_id)
        action = payload.status_action
        changes = []

        if payload.items or payload.remarks is not None:
            if indent.approval_status == ApprovalStatus.COMPLETED.value:
                raise ValidationError(
                    "A completed indent cannot be edited",
                    details={"id": indent_id, "approval_status": indent.approval_status},
                )

        if payload.remarks is not None and payload.remarks != indent.remarks:
            indent.remarks = payload.remarks
            changes.append("remarks")

        if payload.items:
            changes.extend(_apply_item_edits(indent, payload.items, action))

        if not action and not changes:
            raise ValidationError("No changes detected", details={"id": indent_id})

        if not action and not capabilities.has_capability(user, Permission.EDIT_INDENTS):
            raise CapabilityError(
                "You do not have permission to edit this indent",
                details={"capability": Permission.EDIT_INDENTS},
            )

        indent.updated_by_id = actor_id

        if action:
            result = apply_status_action(
                indent,
                action=action,
                actor=user,
                capabilities=capabilities,
                policy=INDENT_POLICY,
            )
            await emit_activity(
                db=db,
                user_id=actor_id,
                username=actor["actor_email"],
                code=ActivityCode.INDENT_STATUS_ACTION,
                target_name=indent.indent_no,
                action=action.value,
                status=result.new_status.value,
                **actor,
            )
        else:
            await emit_activity(
                db=db,
                user_id=actor_id,
                username=actor["actor_email"],
                code=ActivityCode.UPDATE_INDENT,
                target_name=indent.indent_no,
                changes=", ".join(changes),
                **actor,
            )

        await db.commit()

    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Indent updated",
        extra={"indent_id": indent_id, "action": action.value if action else None, "changes": changes},
    )
    return await get_indent(db, indent_id)
