# backoffice/services/approval/policies.py

from decimal import Decimal

from backoffice.constants.approval import DocumentType, StatusAction
from backoffice.constants.permissions import APPROVAL_PERMISSIONS
from backoffice.core.config import (
    CASHBOOK_APPROVAL_LEVELS,
    PO_AUTO_APPROVE_ROLE,
    PO_AUTO_APPROVE_THRESHOLD,
)
from backoffice.services.approval.state_machine import ApprovalSnapshot, WorkflowPolicy

ALL_ACTIONS = frozenset(StatusAction)


def purchase_order_auto_escalation(
    threshold: Decimal = PO_AUTO_APPROVE_THRESHOLD,
    elevated_role: str = PO_AUTO_APPROVE_ROLE,
):
    """Level 1 approval also grants level 2 for small orders or an elevated approver."""

    def should_escalate(doc: ApprovalSnapshot, actor, capabilities) -> bool:
        if doc.total_amount is not None and doc.total_amount < threshold:
            return True
        return (
            (actor.role or "").lower() == elevated_role.lower()
            and capabilities.has_capability(
                actor,
                APPROVAL_PERMISSIONS[DocumentType.PURCHASE_ORDER][StatusAction.APPROVE_2],
            )
        )

    return should_escalate


def cashbook_policy(levels: int) -> WorkflowPolicy:
    if levels == 1:
        return WorkflowPolicy(
            document_type=DocumentType.CASHBOOK,
            label="cashbook",
            actions=frozenset({StatusAction.APPROVE_1}),
            final_approval=StatusAction.APPROVE_1,
            complete_on_final_approval=True,
        )
    return WorkflowPolicy(
        document_type=DocumentType.CASHBOOK,
        label="cashbook",
        actions=frozenset({StatusAction.APPROVE_1, StatusAction.APPROVE_2}),
        final_approval=StatusAction.APPROVE_2,
        complete_on_final_approval=True,
    )


INDENT_POLICY = WorkflowPolicy(
    document_type=DocumentType.INDENT,
    label="indent",
    actions=ALL_ACTIONS,
)

PURCHASE_ORDER_POLICY = WorkflowPolicy(
    document_type=DocumentType.PURCHASE_ORDER,
    label="purchase order",
    actions=ALL_ACTIONS,
    auto_escalate=purchase_order_auto_escalation(),
)

CASHBOOK_POLICY = cashbook_policy(CASHBOOK_APPROVAL_LEVELS)
