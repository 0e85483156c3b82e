# backoffice/services/approval/approval_service.py

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from backoffice.constants.approval import StatusAction
from backoffice.services.approval.capabilities import CapabilityChecker
from backoffice.services.approval.state_machine import (
    ApprovalSnapshot,
    Transition,
    WorkflowPolicy,
    transition,
)

logger = logging.getLogger(__name__)


def apply_status_action(
    doc,
    *,
    action: StatusAction,
    actor,
    capabilities: CapabilityChecker,
    policy: WorkflowPolicy,
    total_amount: Optional[Decimal] = None,
    now: Optional[datetime] = None,
) -> Transition:
    """Run the transition for an ORM document and write the resulting columns onto it."""
    snapshot = ApprovalSnapshot.from_document(doc, total_amount=total_amount)
    result = transition(snapshot, action, actor, capabilities, policy, now=now)

    for column, value in result.fields.items():
        setattr(doc, column, value)

    logger.info(
        "Approval transition applied",
        extra={
            "document_type": policy.document_type.value,
            "document_id": doc.id,
            "action": result.action.value,
            "from_status": result.previous_status.value,
            "to_status": result.new_status.value,
            "auto_escalated": result.auto_escalated,
            "actor_id": actor.id,
        },
    )
    return result
