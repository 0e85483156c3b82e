from sqlalchemy import Column, Integer, String, Text, Date, ForeignKey, Index, CheckConstraint, Numeric
from sqlalchemy.orm import relationship

from backoffice.constants.inward_challan import BillStatus
from backoffice.core.db import Base
from backoffice.models.base.mixins import TimestampMixin, SoftDeleteMixin, AuditMixin


class InwardDeliveryChallan(Base, TimestampMixin, SoftDeleteMixin, AuditMixin):
    __tablename__ = "inward_delivery_challans"

    id = Column(Integer, primary_key=True)
    inward_challan_no = Column(String(20), unique=True, nullable=False, index=True)
    inward_challan_date = Column(Date, nullable=False)
    purchase_order_id = Column(Integer, ForeignKey("purchase_orders.id", ondelete="RESTRICT"), nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="RESTRICT"), nullable=False, index=True)
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="RESTRICT"), nullable=False, index=True)

    challan_no = Column(String(50), nullable=True)
    challan_date = Column(Date, nullable=True)
    lr_no = Column(String(50), nullable=True)
    lr_date = Column(Date, nullable=True)
    vehicle_no = Column(String(30), nullable=True)
    remarks = Column(Text, nullable=True)

    # ---- bill / payment ----
    bill_no = Column(String(50), nullable=True, index=True)
    bill_date = Column(Date, nullable=True)
    bill_amount = Column(Numeric(14, 2), nullable=False, default=0)
    due_days = Column(Integer, nullable=False, default=0)
    due_date = Column(Date, nullable=True)
    total_paid_amount = Column(Numeric(14, 2), nullable=False, default=0)
    due_amount = Column(Numeric(14, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=BillStatus.UNPAID.value, index=True)

    version = Column(Integer, nullable=False, default=1)

    lines = relationship(
        "InwardDeliveryChallanLine",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InwardDeliveryChallanLine.id",
    )

    __table_args__ = (
        CheckConstraint("bill_amount >= 0", name="ck_inward_challan_bill_amount_non_negative"),
        CheckConstraint("due_days >= 0", name="ck_inward_challan_due_days_non_negative"),
        CheckConstraint("total_paid_amount >= 0", name="ck_inward_challan_paid_non_negative"),
        Index("ix_inward_challan_site_date", "site_id", "inward_challan_date"),
        Index("ix_inward_challan_po", "purchase_order_id", "is_deleted"),
    )

    def __repr__(self):
        return f"<InwardDeliveryChallan id={self.id} no={self.inward_challan_no} status={self.status}>"


class InwardDeliveryChallanLine(Base):
    __tablename__ = "inward_delivery_challan_lines"

    id = Column(Integer, primary_key=True)
    inward_delivery_challan_id = Column(
        Integer,
        ForeignKey("inward_delivery_challans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    purchase_order_line_id = Column(
        Integer,
        ForeignKey("purchase_order_lines.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    receiving_qty = Column(Numeric(14, 4), nullable=False)
    rate = Column(Numeric(14, 4), nullable=False, default=0)
    amount = Column(Numeric(14, 2), nullable=False, default=0)
    remark = Column(String(255), nullable=True)

    batches = relationship(
        "InwardDeliveryChallanLineBatch",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InwardDeliveryChallanLineBatch.id",
    )

    __table_args__ = (
        CheckConstraint("receiving_qty >= 0", name="ck_inward_challan_line_qty_non_negative"),
    )

    def __repr__(self):
        return (
            f"<InwardDeliveryChallanLine id={self.id} po_line={self.purchase_order_line_id} "
            f"qty={self.receiving_qty}>"
        )


class InwardDeliveryChallanLineBatch(Base):
    __tablename__ = "inward_delivery_challan_line_batches"

    id = Column(Integer, primary_key=True)
    inward_delivery_challan_line_id = Column(
        Integer,
        ForeignKey("inward_delivery_challan_lines.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    batch_number = Column(String(100), nullable=False)
    # stored as the first day of the expiry month
    expiry_date = Column(Date, nullable=False)
    qty = Column(Numeric(14, 4), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("qty > 0", name="ck_inward_challan_batch_qty_positive"),
    )

    def __repr__(self):
        return f"<InwardDeliveryChallanLineBatch id={self.id} batch={self.batch_number} qty={self.qty}>"
