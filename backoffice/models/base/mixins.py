from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import declared_attr, relationship
from sqlalchemy.sql import func
from sqlalchemy.ext.hybrid import hybrid_property

from backoffice.constants.approval import ApprovalStatus


class TimestampMixin:
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        onupdate=func.now()
    )


class SoftDeleteMixin:
    is_deleted = Column(Boolean, default=False, nullable=False)


class AuditMixin:
    @declared_attr
    def created_by_id(cls):
        return Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    @declared_attr
    def updated_by_id(cls):
        return Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    @declared_attr
    def created_by(cls):
        return relationship(
            "User",
            foreign_keys=[cls.created_by_id],
            lazy="joined"
        )

    @declared_attr
    def updated_by(cls):
        return relationship(
            "User",
            foreign_keys=[cls.updated_by_id],
            lazy="joined"
        )

    # ----------------------------
    # Convenience accessors
    # ----------------------------
    @hybrid_property
    def created_by_username(self):
        return self.created_by.username if self.created_by else None

    @hybrid_property
    def updated_by_username(self):
        return self.updated_by.username if self.updated_by else None


def _stamp_user_column():
    return declared_attr(
        lambda cls: Column(Integer, ForeignKey("users.id"), nullable=True)
    )


class ApprovalMixin:
    """Approval workflow columns shared by indents, purchase orders and cashbooks.

    ``approval_status`` is the current position in the workflow; the ``is_*``
    flags remember which levels were reached so that ``unsuspend`` can
    recompute the status a suspended document returns to.
    """

    approval_status = Column(
        String(30),
        nullable=False,
        default=ApprovalStatus.DRAFT.value,
        index=True,
    )

    is_approved_1 = Column(Boolean, nullable=False, default=False)
    approved_1_by_id = _stamp_user_column()
    approved_1_at = Column(DateTime(timezone=True), nullable=True)

    is_approved_2 = Column(Boolean, nullable=False, default=False)
    approved_2_by_id = _stamp_user_column()
    approved_2_at = Column(DateTime(timezone=True), nullable=True)

    is_complete = Column(Boolean, nullable=False, default=False)
    completed_by_id = _stamp_user_column()
    completed_at = Column(DateTime(timezone=True), nullable=True)

    is_suspended = Column(Boolean, nullable=False, default=False)
    suspended_by_id = _stamp_user_column()
    suspended_at = Column(DateTime(timezone=True), nullable=True)
