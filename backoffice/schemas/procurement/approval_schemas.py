from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from backoffice.constants.approval import ApprovalStatus


class ApprovalStateOutSchema(BaseModel):
    approval_status: ApprovalStatus

    is_approved_1: bool
    approved_1_by_id: Optional[int] = None
    approved_1_at: Optional[datetime] = None

    is_approved_2: bool
    approved_2_by_id: Optional[int] = None
    approved_2_at: Optional[datetime] = None

    is_complete: bool
    completed_by_id: Optional[int] = None
    completed_at: Optional[datetime] = None

    is_suspended: bool
    suspended_by_id: Optional[int] = None
    suspended_at: Optional[datetime] = None

    class Config:
        from_attributes = True
