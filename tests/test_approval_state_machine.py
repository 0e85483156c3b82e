import itertools
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from backoffice.constants.approval import ApprovalStatus, StatusAction
from backoffice.constants.error_codes import ErrorCode
from backoffice.constants.permissions import Permission, Role
from backoffice.core.exceptions import ApprovalStateError, CapabilityError
from backoffice.services.approval.capabilities import RolePermissionChecker
from backoffice.services.approval.policies import (
    INDENT_POLICY,
    PURCHASE_ORDER_POLICY,
    cashbook_policy,
)
from backoffice.services.approval.state_machine import (
    ApprovalSnapshot,
    recompute_status,
    transition,
)

pytestmark = pytest.mark.unit

NOW = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)
CREATOR_ID = 1


class AllowAll:
    def has_capability(self, actor, capability):
        return True


class Only:
    def __init__(self, *capabilities):
        self.capabilities = set(capabilities)

    def has_capability(self, actor, capability):
        return capability in self.capabilities


def actor(actor_id, role=Role.ADMIN):
    return SimpleNamespace(id=actor_id, role=role, is_active=True)


def draft(**overrides):
    return ApprovalSnapshot(status=ApprovalStatus.DRAFT, created_by_id=CREATOR_ID, **overrides)


# =====================================================
# APPROVE LEVEL 1
# =====================================================
def test_approve1_moves_draft_to_level_1_and_stamps_actor():
    result = transition(draft(), StatusAction.APPROVE_1, actor(2), AllowAll(), INDENT_POLICY, now=NOW)

    assert result.previous_status == ApprovalStatus.DRAFT
    assert result.new_status == ApprovalStatus.APPROVED_LEVEL_1
    assert result.fields == {
        "approval_status": "APPROVED_LEVEL_1",
        "is_approved_1": True,
        "approved_1_by_id": 2,
        "approved_1_at": NOW,
    }
    assert result.auto_escalated is False


def test_creator_cannot_approve_own_document():
    with pytest.raises(CapabilityError) as exc:
        transition(draft(), StatusAction.APPROVE_1, actor(CREATOR_ID), AllowAll(), INDENT_POLICY)

    assert exc.value.error_code == ErrorCode.SELF_APPROVAL_NOT_ALLOWED
    assert exc.value.detail == "The creator cannot approve their own indent"


def test_missing_capability_is_rejected_before_status_checks():
    doc = ApprovalSnapshot(status=ApprovalStatus.COMPLETED, created_by_id=CREATOR_ID)
    checker = Only(Permission.APPROVE_INDENTS_L2)

    with pytest.raises(CapabilityError) as exc:
        transition(doc, StatusAction.APPROVE_1, actor(2), checker, INDENT_POLICY)

    assert exc.value.error_code == ErrorCode.PERMISSION_DENIED
    assert exc.value.details["capability"] == Permission.APPROVE_INDENTS_L1


def test_approve1_requires_draft():
    doc = ApprovalSnapshot(status=ApprovalStatus.APPROVED_LEVEL_1, created_by_id=CREATOR_ID, is_approved_1=True)

    with pytest.raises(ApprovalStateError) as exc:
        transition(doc, StatusAction.APPROVE_1, actor(2), AllowAll(), INDENT_POLICY)

    assert exc.value.error_code == ErrorCode.INVALID_STATUS_TRANSITION
    assert exc.value.details["expected_status"] == "DRAFT"


# =====================================================
# APPROVE LEVEL 2
# =====================================================
def test_approve2_by_level_1_approver_is_rejected():
    doc = ApprovalSnapshot(
        status=ApprovalStatus.APPROVED_LEVEL_1,
        created_by_id=CREATOR_ID,
        approved_1_by_id=2,
        is_approved_1=True,
    )

    with pytest.raises(CapabilityError) as exc:
        transition(doc, StatusAction.APPROVE_2, actor(2), AllowAll(), INDENT_POLICY)
    assert exc.value.error_code == ErrorCode.SELF_APPROVAL_NOT_ALLOWED

    result = transition(doc, StatusAction.APPROVE_2, actor(3), AllowAll(), INDENT_POLICY, now=NOW)
    assert result.new_status == ApprovalStatus.APPROVED_LEVEL_2
    assert result.fields["approved_2_by_id"] == 3


def test_approve2_from_draft_is_rejected():
    with pytest.raises(ApprovalStateError):
        transition(draft(), StatusAction.APPROVE_2, actor(3), AllowAll(), INDENT_POLICY)


# =====================================================
# COMPLETE / SUSPEND / UNSUSPEND
# =====================================================
@pytest.mark.parametrize(
    "status",
    [ApprovalStatus.DRAFT, ApprovalStatus.APPROVED_LEVEL_1, ApprovalStatus.SUSPENDED],
)
def test_complete_requires_level_2(status):
    doc = ApprovalSnapshot(status=status, created_by_id=CREATOR_ID)
    with pytest.raises(ApprovalStateError):
        transition(doc, StatusAction.COMPLETE, actor(4), AllowAll(), INDENT_POLICY)


def test_complete_from_level_2():
    doc = ApprovalSnapshot(
        status=ApprovalStatus.APPROVED_LEVEL_2,
        created_by_id=CREATOR_ID,
        is_approved_1=True,
        is_approved_2=True,
    )
    result = transition(doc, StatusAction.COMPLETE, actor(4), AllowAll(), INDENT_POLICY, now=NOW)

    assert result.new_status == ApprovalStatus.COMPLETED
    assert result.fields["is_complete"] is True
    assert result.fields["completed_by_id"] == 4


def test_completed_document_cannot_be_suspended():
    doc = ApprovalSnapshot(status=ApprovalStatus.COMPLETED, created_by_id=CREATOR_ID, is_complete=True)
    with pytest.raises(ApprovalStateError) as exc:
        transition(doc, StatusAction.SUSPEND, actor(4), AllowAll(), PURCHASE_ORDER_POLICY)
    assert exc.value.detail == "A completed purchase order cannot be suspended"


def test_suspend_twice_is_rejected():
    doc = ApprovalSnapshot(status=ApprovalStatus.SUSPENDED, created_by_id=CREATOR_ID)
    with pytest.raises(ApprovalStateError):
        transition(doc, StatusAction.SUSPEND, actor(4), AllowAll(), INDENT_POLICY)


@pytest.mark.parametrize(
    "flags, expected",
    [
        ({}, ApprovalStatus.DRAFT),
        ({"is_approved_1": True}, ApprovalStatus.APPROVED_LEVEL_1),
        ({"is_approved_1": True, "is_approved_2": True}, ApprovalStatus.APPROVED_LEVEL_2),
        ({"is_approved_1": True, "is_approved_2": True, "is_complete": True}, ApprovalStatus.COMPLETED),
    ],
)
def test_unsuspend_recomputes_status_from_flags(flags, expected):
    doc = ApprovalSnapshot(status=ApprovalStatus.SUSPENDED, created_by_id=CREATOR_ID, **flags)

    result = transition(doc, StatusAction.UNSUSPEND, actor(4), AllowAll(), INDENT_POLICY)

    assert result.new_status == expected
    assert result.fields == {"approval_status": expected.value, "is_suspended": False}


def test_unsuspend_requires_suspended_document():
    doc = ApprovalSnapshot(status=ApprovalStatus.APPROVED_LEVEL_1, created_by_id=CREATOR_ID, is_approved_1=True)
    with pytest.raises(ApprovalStateError) as exc:
        transition(doc, StatusAction.UNSUSPEND, actor(4), AllowAll(), INDENT_POLICY)
    assert exc.value.detail == "The indent is not suspended"


def test_recompute_status_prefers_highest_reached_level():
    assert recompute_status(True, False, False) == ApprovalStatus.COMPLETED
    assert recompute_status(False, True, True) == ApprovalStatus.APPROVED_LEVEL_2
    assert recompute_status(False, False, False) == ApprovalStatus.DRAFT


def test_approved_document_never_returns_to_draft():
    """Walk every four-step action sequence; once level 1 is reached DRAFT is gone for good."""
    checker = AllowAll()

    for sequence in itertools.product(list(StatusAction), repeat=4):
        doc = draft()
        reached_level_1 = False

        for step, action in enumerate(sequence):
            try:
                result = transition(doc, action, actor(10 + step), checker, INDENT_POLICY, now=NOW)
            except (ApprovalStateError, CapabilityError):
                continue

            fields = result.fields
            doc = replace(
                doc,
                status=result.new_status,
                approved_1_by_id=fields.get("approved_1_by_id", doc.approved_1_by_id),
                is_approved_1=fields.get("is_approved_1", doc.is_approved_1),
                is_approved_2=fields.get("is_approved_2", doc.is_approved_2),
                is_complete=fields.get("is_complete", doc.is_complete),
            )
            reached_level_1 = reached_level_1 or doc.is_approved_1

            if reached_level_1:
                assert doc.status != ApprovalStatus.DRAFT, sequence


# =====================================================
# PURCHASE ORDER AUTO ESCALATION
# =====================================================
def test_small_purchase_order_is_escalated_to_level_2():
    doc = draft(total_amount=Decimal("99999.99"))
    manager = actor(2, Role.PURCHASE_MANAGER)

    result = transition(doc, StatusAction.APPROVE_1, manager, RolePermissionChecker(), PURCHASE_ORDER_POLICY, now=NOW)

    assert result.auto_escalated is True
    assert result.new_status == ApprovalStatus.APPROVED_LEVEL_2
    assert result.fields["approved_1_by_id"] == 2
    assert result.fields["approved_2_by_id"] == 2
    assert result.fields["is_approved_2"] is True


def test_threshold_amount_is_not_escalated():
    doc = draft(total_amount=Decimal("100000"))
    manager = actor(2, Role.PURCHASE_MANAGER)

    result = transition(doc, StatusAction.APPROVE_1, manager, RolePermissionChecker(), PURCHASE_ORDER_POLICY)

    assert result.auto_escalated is False
    assert result.new_status == ApprovalStatus.APPROVED_LEVEL_1


def test_project_director_escalates_large_purchase_order():
    doc = draft(total_amount=Decimal("2500000"))
    director = actor(5, Role.PROJECT_DIRECTOR)

    result = transition(doc, StatusAction.APPROVE_1, director, RolePermissionChecker(), PURCHASE_ORDER_POLICY)

    assert result.auto_escalated is True
    assert result.new_status == ApprovalStatus.APPROVED_LEVEL_2


def test_indents_are_never_escalated():
    result = transition(draft(total_amount=Decimal("10")), StatusAction.APPROVE_1, actor(2), AllowAll(), INDENT_POLICY)
    assert result.new_status == ApprovalStatus.APPROVED_LEVEL_1


# =====================================================
# CASHBOOK POLICIES
# =====================================================
def test_single_level_cashbook_completes_on_approve1():
    policy = cashbook_policy(1)

    result = transition(draft(), StatusAction.APPROVE_1, actor(2), AllowAll(), policy, now=NOW)

    assert result.fields["is_complete"] is True
    assert result.fields["completed_by_id"] == 2

    with pytest.raises(ApprovalStateError) as exc:
        transition(draft(), StatusAction.APPROVE_2, actor(3), AllowAll(), policy)
    assert exc.value.detail == "Action approve2 is not available for a cashbook"


def test_two_level_cashbook_completes_on_approve2():
    policy = cashbook_policy(2)
    level_1 = transition(draft(), StatusAction.APPROVE_1, actor(2), AllowAll(), policy, now=NOW)
    assert "is_complete" not in level_1.fields

    doc = replace(draft(), status=level_1.new_status, approved_1_by_id=2, is_approved_1=True)
    level_2 = transition(doc, StatusAction.APPROVE_2, actor(3), AllowAll(), policy, now=NOW)

    assert level_2.new_status == ApprovalStatus.APPROVED_LEVEL_2
    assert level_2.fields["is_complete"] is True


@pytest.mark.parametrize("action", [StatusAction.COMPLETE, StatusAction.SUSPEND, StatusAction.UNSUSPEND])
def test_cashbook_rejects_actions_outside_its_policy(action):
    with pytest.raises(ApprovalStateError):
        transition(draft(), action, actor(2), AllowAll(), cashbook_policy(2))


# =====================================================
# ROLE CHECKER
# =====================================================
def test_inactive_actor_has_no_capabilities():
    checker = RolePermissionChecker()
    inactive = SimpleNamespace(id=9, role=Role.ADMIN, is_active=False)
    assert checker.has_capability(inactive, Permission.READ_INDENTS) is False
    assert checker.has_capability(actor(9, Role.ADMIN), Permission.READ_INDENTS) is True
