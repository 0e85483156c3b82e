from sqlalchemy import Column, Integer, String, Text, Date, ForeignKey, CheckConstraint, Numeric
from sqlalchemy.orm import relationship

from backoffice.core.db import Base
from backoffice.models.base.mixins import TimestampMixin, AuditMixin, ApprovalMixin


class Cashbook(Base, TimestampMixin, AuditMixin, ApprovalMixin):
    __tablename__ = "cashbooks"

    id = Column(Integer, primary_key=True)
    voucher_no = Column(String(20), unique=True, nullable=False, index=True)
    voucher_date = Column(Date, nullable=False)
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="RESTRICT"), nullable=False, index=True)
    remarks = Column(Text, nullable=True)

    details = relationship(
        "CashbookDetail",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="CashbookDetail.id",
    )

    def __repr__(self):
        return f"<Cashbook id={self.id} voucher={self.voucher_no} status={self.approval_status}>"


class CashbookDetail(Base):
    __tablename__ = "cashbook_details"

    id = Column(Integer, primary_key=True)
    cashbook_id = Column(Integer, ForeignKey("cashbooks.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    amount_received = Column(Numeric(14, 2), nullable=False, default=0)
    amount_paid = Column(Numeric(14, 2), nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("amount_received >= 0", name="ck_cashbook_detail_received_non_negative"),
        CheckConstraint("amount_paid >= 0", name="ck_cashbook_detail_paid_non_negative"),
    )

    def __repr__(self):
        return f"<CashbookDetail id={self.id} received={self.amount_received} paid={self.amount_paid}>"
