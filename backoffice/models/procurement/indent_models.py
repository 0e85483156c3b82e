from sqlalchemy import Column, Integer, String, Text, Date, ForeignKey, Index, CheckConstraint, Numeric
from sqlalchemy.orm import relationship

from backoffice.core.db import Base
from backoffice.models.base.mixins import TimestampMixin, AuditMixin, ApprovalMixin


class Indent(Base, TimestampMixin, AuditMixin, ApprovalMixin):
    __tablename__ = "indents"

    id = Column(Integer, primary_key=True)
    indent_no = Column(String(20), unique=True, nullable=False, index=True)
    indent_date = Column(Date, nullable=False)
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="RESTRICT"), nullable=False, index=True)
    remarks = Column(Text, nullable=True)

    items = relationship(
        "IndentItem",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="IndentItem.id",
    )

    __table_args__ = (Index("ix_indent_site_status", "site_id", "approval_status"),)

    def __repr__(self):
        return f"<Indent id={self.id} no={self.indent_no} status={self.approval_status}>"


class IndentItem(Base):
    __tablename__ = "indent_items"

    id = Column(Integer, primary_key=True)
    indent_id = Column(Integer, ForeignKey("indents.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    indent_qty = Column(Numeric(14, 4), nullable=False)
    approved_qty = Column(Numeric(14, 4), nullable=True)
    # site closing stock at the time the indent was raised
    closing_stock = Column(Numeric(14, 4), nullable=False, default=0)
    delivery_date = Column(Date, nullable=True)
    remark = Column(String(255), nullable=True)

    __table_args__ = (
        CheckConstraint("indent_qty > 0", name="ck_indent_item_qty_positive"),
        CheckConstraint("approved_qty IS NULL OR approved_qty >= 0", name="ck_indent_item_approved_qty_non_negative"),
    )

    def __repr__(self):
        return f"<IndentItem id={self.id} item_id={self.item_id} qty={self.indent_qty}>"
