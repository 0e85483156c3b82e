from datetime import date
from decimal import Decimal

import pytest

from backoffice.constants.approval import ApprovalStatus, StatusAction
from backoffice.constants.error_codes import ErrorCode
from backoffice.core.exceptions import ApprovalStateError, CapabilityError, ValidationError
from backoffice.schemas.procurement.cashbook_schemas import CashbookCreateSchema, CashbookUpdateSchema
from backoffice.schemas.procurement.indent_schemas import IndentCreateSchema, IndentUpdateSchema
from backoffice.schemas.procurement.purchase_order_schemas import PurchaseOrderUpdateSchema
from backoffice.services.approval.capabilities import RolePermissionChecker
from backoffice.services.procurement.cashbook_service import create_cashbook, update_cashbook
from backoffice.services.procurement.indent_service import create_indent, get_indent, update_indent
from backoffice.services.procurement.purchase_order_service import (
    compute_line_amount,
    get_purchase_order,
    update_purchase_order,
)

pytestmark = pytest.mark.integration

checker = RolePermissionChecker()


async def _indent(session, seed, user, qty=25):
    payload = IndentCreateSchema(
        indent_date=date(2025, 1, 5),
        site_id=seed.site_id,
        items=[{"item_id": seed.item_id, "indent_qty": Decimal(str(qty))}],
    )
    return await create_indent(session, payload, user)


async def _patch_indent(session, indent_id, user, **body):
    return await update_indent(session, indent_id, IndentUpdateSchema(**body), user, checker)


async def _patch_po(session, po_id, user, **body):
    return await update_purchase_order(session, po_id, PurchaseOrderUpdateSchema(**body), user, checker)


# =====================================================
# INDENTS
# =====================================================
async def test_indent_snapshots_closing_stock(session, seed, make_purchase_order, make_inward_challan):
    po = await make_purchase_order([(seed.item_id, 100, 50)])
    await make_inward_challan(po.id, [{"purchase_order_line_id": po.lines[0].id, "receiving_qty": 35}])

    indent = await _indent(session, seed, seed.users.site_engineer)

    assert indent.indent_no == "0001-0001"
    assert indent.approval_status == ApprovalStatus.DRAFT.value
    assert indent.created_by_id == seed.users.site_engineer.id
    assert indent.items[0].closing_stock == Decimal("35")


async def test_creator_cannot_approve_own_indent(session, seed):
    indent = await _indent(session, seed, seed.users.admin)

    with pytest.raises(CapabilityError) as exc:
        await _patch_indent(session, indent.id, seed.users.admin, status_action=StatusAction.APPROVE_1)
    assert exc.value.error_code == ErrorCode.SELF_APPROVAL_NOT_ALLOWED
    assert exc.value.detail == "The creator cannot approve their own indent"

    unchanged = await get_indent(session, indent.id)
    assert unchanged.approval_status == ApprovalStatus.DRAFT.value

    approved = await _patch_indent(session, indent.id, seed.users.purchase_manager, status_action=StatusAction.APPROVE_1)
    assert approved.approval_status == ApprovalStatus.APPROVED_LEVEL_1.value
    assert approved.approved_1_by_id == seed.users.purchase_manager.id
    assert approved.approved_1_at is not None


async def test_approving_with_item_edits_requires_approved_qty(session, seed):
    indent = await _indent(session, seed, seed.users.site_engineer)
    item_id = indent.items[0].id

    with pytest.raises(ValidationError) as exc:
        await _patch_indent(
            session,
            indent.id,
            seed.users.purchase_manager,
            status_action=StatusAction.APPROVE_1,
            items=[{"id": item_id, "indent_qty": Decimal("20")}],
        )
    assert exc.value.details["item_ids"] == [item_id]

    current = await get_indent(session, indent.id)
    assert current.approval_status == ApprovalStatus.DRAFT.value
    assert current.items[0].indent_qty == Decimal("25")

    approved = await _patch_indent(
        session,
        indent.id,
        seed.users.purchase_manager,
        status_action=StatusAction.APPROVE_1,
        items=[{"id": item_id, "approved_qty": Decimal("20")}],
    )
    assert approved.items[0].approved_qty == Decimal("20")


async def test_indent_full_lifecycle(session, seed):
    indent = await _indent(session, seed, seed.users.site_engineer)

    await _patch_indent(session, indent.id, seed.users.purchase_manager, status_action=StatusAction.APPROVE_1)

    suspended = await _patch_indent(session, indent.id, seed.users.director, status_action=StatusAction.SUSPEND)
    assert suspended.approval_status == ApprovalStatus.SUSPENDED.value
    assert suspended.suspended_by_id == seed.users.director.id

    with pytest.raises(ApprovalStateError):
        await _patch_indent(session, indent.id, seed.users.director, status_action=StatusAction.APPROVE_2)

    resumed = await _patch_indent(session, indent.id, seed.users.director, status_action=StatusAction.UNSUSPEND)
    assert resumed.approval_status == ApprovalStatus.APPROVED_LEVEL_1.value
    assert resumed.is_suspended is False

    await _patch_indent(session, indent.id, seed.users.director, status_action=StatusAction.APPROVE_2)
    done = await _patch_indent(session, indent.id, seed.users.director_2, status_action=StatusAction.COMPLETE)
    assert done.approval_status == ApprovalStatus.COMPLETED.value
    assert done.completed_by_id == seed.users.director_2.id

    with pytest.raises(ValidationError) as exc:
        await _patch_indent(session, indent.id, seed.users.site_engineer, remarks="late change")
    assert exc.value.detail == "A completed indent cannot be edited"

    with pytest.raises(ApprovalStateError):
        await _patch_indent(session, indent.id, seed.users.director, status_action=StatusAction.SUSPEND)


async def test_plain_edit_needs_edit_capability(session, seed):
    indent = await _indent(session, seed, seed.users.site_engineer)

    with pytest.raises(CapabilityError):
        await _patch_indent(session, indent.id, seed.users.accountant, remarks="urgent")

    edited = await _patch_indent(session, indent.id, seed.users.site_engineer, remarks="urgent")
    assert edited.remarks == "urgent"

    with pytest.raises(ValidationError) as exc:
        await _patch_indent(session, indent.id, seed.users.site_engineer, remarks="urgent")
    assert exc.value.detail == "No changes detected"


# =====================================================
# PURCHASE ORDERS
# =====================================================
@pytest.mark.unit
def test_line_amount_applies_discount_then_gst():
    assert compute_line_amount(Decimal("10"), Decimal("100"), Decimal("10"), Decimal("18")) == Decimal("1062.00")
    assert compute_line_amount(Decimal("3"), Decimal("33.333"), 0, 0) == Decimal("100.00")


async def test_small_purchase_order_is_auto_escalated(session, seed, make_purchase_order):
    po = await make_purchase_order([(seed.item_id, 100, 50), (seed.tracked_item_id, 10, 120)])
    assert po.amount == Decimal("6200")
    cement_line, sealant_line = (l.id for l in po.lines)

    approved = await _patch_po(
        session,
        po.id,
        seed.users.purchase_manager_2,
        status_action=StatusAction.APPROVE_1,
        lines=[{"id": cement_line, "approved_1_qty": Decimal("80")}],
    )

    assert approved.approval_status == ApprovalStatus.APPROVED_LEVEL_2.value
    assert approved.approved_1_by_id == seed.users.purchase_manager_2.id
    assert approved.approved_2_by_id == seed.users.purchase_manager_2.id
    by_id = {l.id: l for l in approved.lines}
    assert by_id[cement_line].approved_2_qty == Decimal("80")
    assert by_id[sealant_line].approved_2_qty == Decimal("10")


async def test_large_purchase_order_needs_second_approver(session, seed, make_purchase_order):
    po = await make_purchase_order([(seed.item_id, 1000, 200)])

    level_1 = await _patch_po(session, po.id, seed.users.purchase_manager_2, status_action=StatusAction.APPROVE_1)
    assert level_1.approval_status == ApprovalStatus.APPROVED_LEVEL_1.value
    assert level_1.lines[0].approved_2_qty is None

    level_2 = await _patch_po(session, po.id, seed.users.director, status_action=StatusAction.APPROVE_2)
    assert level_2.approval_status == ApprovalStatus.APPROVED_LEVEL_2.value
    assert level_2.approved_2_by_id == seed.users.director.id


async def test_project_director_approves_large_order_in_one_step(session, seed, make_purchase_order):
    po = await make_purchase_order([(seed.item_id, 1000, 200)])

    approved = await _patch_po(session, po.id, seed.users.director, status_action=StatusAction.APPROVE_1)

    assert approved.approval_status == ApprovalStatus.APPROVED_LEVEL_2.value
    assert approved.lines[0].approved_2_qty == Decimal("1000")


async def test_ordered_qty_cannot_drop_below_received(session, seed, make_purchase_order, make_inward_challan):
    po = await make_purchase_order([(seed.item_id, 100, 50)])
    po_line_id = po.lines[0].id
    await make_inward_challan(po.id, [{"purchase_order_line_id": po_line_id, "receiving_qty": 60}])

    with pytest.raises(ValidationError) as exc:
        await _patch_po(session, po.id, seed.users.purchase_manager, lines=[{"id": po_line_id, "ordered_qty": 50}])
    assert Decimal(exc.value.details["received_qty"]) == Decimal("60")

    edited = await _patch_po(session, po.id, seed.users.purchase_manager, lines=[{"id": po_line_id, "ordered_qty": 60}])
    assert edited.lines[0].ordered_qty == Decimal("60")
    assert edited.amount == Decimal("3000")


async def test_bill_status_is_editable_after_completion(session, seed, make_purchase_order):
    po = await make_purchase_order([(seed.item_id, 10, 50)])
    await _patch_po(session, po.id, seed.users.purchase_manager_2, status_action=StatusAction.APPROVE_1)
    await _patch_po(session, po.id, seed.users.director, status_action=StatusAction.COMPLETE)

    with pytest.raises(CapabilityError):
        await _patch_po(session, po.id, seed.users.store_keeper, bill_status="Bill received")

    with pytest.raises(ValidationError):
        await _patch_po(session, po.id, seed.users.purchase_manager, remarks="too late")

    updated = await _patch_po(session, po.id, seed.users.accountant, bill_status="Bill received")
    assert updated.bill_status == "Bill received"
    assert (await get_purchase_order(session, po.id)).approval_status == ApprovalStatus.COMPLETED.value


# =====================================================
# CASHBOOKS
# =====================================================
async def test_cashbook_completes_on_final_approval(session, seed):
    payload = CashbookCreateSchema(
        voucher_date=date(2025, 2, 3),
        site_id=seed.site_id,
        details=[
            {"description": "Petty cash received", "amount_received": Decimal("5000")},
            {"description": "Diesel for mixer", "amount_paid": Decimal("1250.50")},
        ],
    )
    cashbook = await create_cashbook(session, payload, seed.users.site_engineer)
    assert cashbook.voucher_no == "0001-0001"
    assert [d.amount_paid for d in cashbook.details] == [Decimal("0"), Decimal("1250.50")]

    async def act(user, **body):
        return await update_cashbook(session, cashbook.id, CashbookUpdateSchema(**body), user, checker)

    level_1 = await act(seed.users.accountant, status_action=StatusAction.APPROVE_1)
    assert level_1.approval_status == ApprovalStatus.APPROVED_LEVEL_1.value
    assert level_1.is_complete is False

    with pytest.raises(CapabilityError):
        await act(seed.users.accountant, status_action=StatusAction.APPROVE_2)

    with pytest.raises(ApprovalStateError):
        await act(seed.users.director, status_action=StatusAction.SUSPEND)

    level_2 = await act(seed.users.director, status_action=StatusAction.APPROVE_2)
    assert level_2.approval_status == ApprovalStatus.APPROVED_LEVEL_2.value
    assert level_2.is_complete is True
    assert level_2.completed_by_id == seed.users.director.id

    with pytest.raises(ValidationError):
        await act(seed.users.site_engineer, remarks="edited after approval")
