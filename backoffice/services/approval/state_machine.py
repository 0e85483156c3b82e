# backoffice/services/approval/state_machine.py
"""
Approval workflow shared by indents, purchase orders and cashbooks.

``transition`` is pure: it reads an ``ApprovalSnapshot`` and returns the
column values the action would write, or raises. Persisting the result is the
caller's job (see ``approval_service.apply_status_action``).

    DRAFT --approve1--> APPROVED_LEVEL_1 --approve2--> APPROVED_LEVEL_2 --complete--> COMPLETED
    any non-completed status --suspend--> SUSPENDED --unsuspend--> recomputed status
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

from backoffice.constants.approval import (
    ACTION_STAMP_PREFIX,
    ApprovalStatus,
    DocumentType,
    StatusAction,
)
from backoffice.constants.error_codes import ErrorCode
from backoffice.constants.permissions import APPROVAL_PERMISSIONS
from backoffice.core.exceptions import ApprovalStateError, CapabilityError
from backoffice.services.approval.capabilities import CapabilityChecker


ACTION_VERBS = {
    StatusAction.APPROVE_1: "approve (level 1)",
    StatusAction.APPROVE_2: "approve (level 2)",
    StatusAction.COMPLETE: "complete",
    StatusAction.SUSPEND: "suspend",
    StatusAction.UNSUSPEND: "unsuspend",
}


# =====================================================
# VALUE OBJECTS
# =====================================================
@dataclass(frozen=True)
class ApprovalSnapshot:
    status: ApprovalStatus
    created_by_id: Optional[int] = None
    approved_1_by_id: Optional[int] = None
    is_approved_1: bool = False
    is_approved_2: bool = False
    is_complete: bool = False
    total_amount: Optional[Decimal] = None

    @classmethod
    def from_document(cls, doc, total_amount: Optional[Decimal] = None) -> "ApprovalSnapshot":
        return cls(
            status=ApprovalStatus(doc.approval_status),
            created_by_id=doc.created_by_id,
            approved_1_by_id=doc.approved_1_by_id,
            is_approved_1=bool(doc.is_approved_1),
            is_approved_2=bool(doc.is_approved_2),
            is_complete=bool(doc.is_complete),
            total_amount=total_amount,
        )


@dataclass(frozen=True)
class WorkflowPolicy:
    document_type: DocumentType
    label: str
    actions: frozenset
    final_approval: StatusAction = StatusAction.APPROVE_2
    # cashbooks have no explicit complete step
    complete_on_final_approval: bool = False
    auto_escalate: Optional[Callable[[ApprovalSnapshot, object, CapabilityChecker], bool]] = None

    def capability_for(self, action: StatusAction) -> str:
        return APPROVAL_PERMISSIONS[self.document_type][action]


@dataclass(frozen=True)
class Transition:
    action: StatusAction
    previous_status: ApprovalStatus
    new_status: ApprovalStatus
    fields: dict = field(default_factory=dict)
    auto_escalated: bool = False


# =====================================================
# HELPERS
# =====================================================
def _stamp(action: StatusAction, actor_id: int, now: datetime) -> dict:
    prefix = ACTION_STAMP_PREFIX[action]
    return {f"{prefix}_by_id": actor_id, f"{prefix}_at": now}


def _require_status(doc: ApprovalSnapshot, action: StatusAction, expected: ApprovalStatus, policy: WorkflowPolicy):
    if doc.status != expected:
        raise ApprovalStateError(
            f"Cannot {ACTION_VERBS[action]} a {policy.label} in status {doc.status.value}; "
            f"expected {expected.value}",
            details={
                "action": action.value,
                "current_status": doc.status.value,
                "expected_status": expected.value,
            },
        )


def recompute_status(is_complete: bool, is_approved_2: bool, is_approved_1: bool) -> ApprovalStatus:
    if is_complete:
        return ApprovalStatus.COMPLETED
    if is_approved_2:
        return ApprovalStatus.APPROVED_LEVEL_2
    if is_approved_1:
        return ApprovalStatus.APPROVED_LEVEL_1
    return ApprovalStatus.DRAFT


def _completion_fields(policy: WorkflowPolicy, action: StatusAction, actor_id: int, now: datetime) -> dict:
    if policy.complete_on_final_approval and action == policy.final_approval:
        return {"is_complete": True, **_stamp(StatusAction.COMPLETE, actor_id, now)}
    return {}


# =====================================================
# TRANSITION
# =====================================================
def transition(
    doc: ApprovalSnapshot,
    action: StatusAction,
    actor,
    capabilities: CapabilityChecker,
    policy: WorkflowPolicy,
    now: Optional[datetime] = None,
) -> Transition:
    action = StatusAction(action)
    now = now or datetime.now(timezone.utc)

    if action not in policy.actions:
        raise ApprovalStateError(
            f"Action {action.value} is not available for a {policy.label}",
            details={"action": action.value, "document_type": policy.document_type.value},
        )

    capability = policy.capability_for(action)
    if not capabilities.has_capability(actor, capability):
        raise CapabilityError(
            f"You do not have permission to {ACTION_VERBS[action]} this {policy.label}",
            details={"action": action.value, "capability": capability},
        )

    # ----------------------------
    # APPROVE LEVEL 1
    # ----------------------------
    if action == StatusAction.APPROVE_1:
        _require_status(doc, action, ApprovalStatus.DRAFT, policy)
        if actor.id == doc.created_by_id:
            raise CapabilityError(
                f"The creator cannot approve their own {policy.label}",
                details={"action": action.value, "actor_id": actor.id},
                error_code=ErrorCode.SELF_APPROVAL_NOT_ALLOWED,
            )

        fields = {
            "approval_status": ApprovalStatus.APPROVED_LEVEL_1.value,
            "is_approved_1": True,
            **_stamp(StatusAction.APPROVE_1, actor.id, now),
            **_completion_fields(policy, action, actor.id, now),
        }

        if policy.auto_escalate and policy.auto_escalate(doc, actor, capabilities):
            fields.update(
                {
                    "approval_status": ApprovalStatus.APPROVED_LEVEL_2.value,
                    "is_approved_2": True,
                    **_stamp(StatusAction.APPROVE_2, actor.id, now),
                    **_completion_fields(policy, StatusAction.APPROVE_2, actor.id, now),
                }
            )
            return Transition(action, doc.status, ApprovalStatus.APPROVED_LEVEL_2, fields, auto_escalated=True)

        return Transition(action, doc.status, ApprovalStatus.APPROVED_LEVEL_1, fields)

    # ----------------------------
    # APPROVE LEVEL 2
    # ----------------------------
    if action == StatusAction.APPROVE_2:
        _require_status(doc, action, ApprovalStatus.APPROVED_LEVEL_1, policy)
        if actor.id == doc.created_by_id:
            raise CapabilityError(
                f"The creator cannot approve their own {policy.label}",
                details={"action": action.value, "actor_id": actor.id},
                error_code=ErrorCode.SELF_APPROVAL_NOT_ALLOWED,
            )
        if actor.id == doc.approved_1_by_id:
            raise CapabilityError(
                f"The level 1 approver cannot also approve this {policy.label} at level 2",
                details={"action": action.value, "actor_id": actor.id},
                error_code=ErrorCode.SELF_APPROVAL_NOT_ALLOWED,
            )

        fields = {
            "approval_status": ApprovalStatus.APPROVED_LEVEL_2.value,
            "is_approved_2": True,
            **_stamp(StatusAction.APPROVE_2, actor.id, now),
            **_completion_fields(policy, action, actor.id, now),
        }
        return Transition(action, doc.status, ApprovalStatus.APPROVED_LEVEL_2, fields)

    # ----------------------------
    # COMPLETE
    # ----------------------------
    if action == StatusAction.COMPLETE:
        _require_status(doc, action, ApprovalStatus.APPROVED_LEVEL_2, policy)
        fields = {
            "approval_status": ApprovalStatus.COMPLETED.value,
            "is_complete": True,
            **_stamp(StatusAction.COMPLETE, actor.id, now),
        }
        return Transition(action, doc.status, ApprovalStatus.COMPLETED, fields)

    # ----------------------------
    # SUSPEND
    # ----------------------------
    if action == StatusAction.SUSPEND:
        if doc.status == ApprovalStatus.COMPLETED:
            raise ApprovalStateError(
                f"A completed {policy.label} cannot be suspended",
                details={"action": action.value, "current_status": doc.status.value},
            )
        if doc.status == ApprovalStatus.SUSPENDED:
            raise ApprovalStateError(
                f"The {policy.label} is already suspended",
                details={"action": action.value, "current_status": doc.status.value},
            )
        fields = {
            "approval_status": ApprovalStatus.SUSPENDED.value,
            "is_suspended": True,
            **_stamp(StatusAction.SUSPEND, actor.id, now),
        }
        return Transition(action, doc.status, ApprovalStatus.SUSPENDED, fields)

    # ----------------------------
    # UNSUSPEND
    # ----------------------------
    if doc.status != ApprovalStatus.SUSPENDED:
        raise ApprovalStateError(
            f"The {policy.label} is not suspended",
            details={"action": action.value, "current_status": doc.status.value},
        )
    target = recompute_status(doc.is_complete, doc.is_approved_2, doc.is_approved_1)
    fields = {
        "approval_status": target.value,
        "is_suspended": False,
    }
    return Transition(action, doc.status, target, fields)
