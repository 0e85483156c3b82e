from sqlalchemy import Column, Integer, String, Text, Date, ForeignKey, Index, CheckConstraint, Numeric
from sqlalchemy.orm import relationship

from backoffice.core.db import Base
from backoffice.models.base.mixins import TimestampMixin, AuditMixin, ApprovalMixin


class PurchaseOrder(Base, TimestampMixin, AuditMixin, ApprovalMixin):
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True)
    purchase_order_no = Column(String(20), unique=True, nullable=False, index=True)
    purchase_order_date = Column(Date, nullable=False)
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="RESTRICT"), nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="RESTRICT"), nullable=False, index=True)
    indent_id = Column(Integer, ForeignKey("indents.id", ondelete="SET NULL"), nullable=True, index=True)
    amount = Column(Numeric(14, 2), nullable=False, default=0)
    remarks = Column(Text, nullable=True)
    # free text maintained by accounts
    bill_status = Column(String(255), nullable=True)

    lines = relationship(
        "PurchaseOrderLine",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PurchaseOrderLine.id",
    )

    __table_args__ = (
        Index("ix_purchase_order_site_status", "site_id", "approval_status"),
        Index("ix_purchase_order_vendor", "vendor_id", "purchase_order_date"),
    )

    def __repr__(self):
        return f"<PurchaseOrder id={self.id} no={self.purchase_order_no} status={self.approval_status}>"


class PurchaseOrderLine(Base):
    __tablename__ = "purchase_order_lines"

    id = Column(Integer, primary_key=True)
    purchase_order_id = Column(Integer, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    ordered_qty = Column(Numeric(14, 4), nullable=False)
    # cumulative quantity received through inward challans
    received_qty = Column(Numeric(14, 4), nullable=False, default=0)
    rate = Column(Numeric(14, 4), nullable=False)
    discount_percent = Column(Numeric(5, 2), nullable=False, default=0)
    gst_percent = Column(Numeric(5, 2), nullable=False, default=0)
    amount = Column(Numeric(14, 2), nullable=False)
    approved_1_qty = Column(Numeric(14, 4), nullable=True)
    approved_2_qty = Column(Numeric(14, 4), nullable=True)
    remark = Column(String(255), nullable=True)

    __table_args__ = (
        CheckConstraint("ordered_qty >= 0", name="ck_po_line_ordered_qty_non_negative"),
        CheckConstraint("received_qty >= 0", name="ck_po_line_received_qty_non_negative"),
        CheckConstraint("received_qty <= ordered_qty", name="ck_po_line_received_within_ordered"),
        CheckConstraint("rate >= 0", name="ck_po_line_rate_non_negative"),
        Index("ix_po_line_po_item", "purchase_order_id", "item_id"),
    )

    def __repr__(self):
        return (
            f"<PurchaseOrderLine id={self.id} item_id={self.item_id} "
            f"ordered={self.ordered_qty} received={self.received_qty}>"
        )
