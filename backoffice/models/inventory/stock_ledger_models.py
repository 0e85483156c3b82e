from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, ForeignKey, Index, CheckConstraint, Numeric

from backoffice.core.db import Base
from backoffice.models.base.mixins import TimestampMixin


class StockLedgerEntry(Base, TimestampMixin):
    """Immutable stock movement. Editing a document retires its entries and writes new ones."""

    __tablename__ = "stock_ledger_entries"

    id = Column(Integer, primary_key=True)
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="RESTRICT"), nullable=False)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    transaction_date = Column(Date, nullable=False)
    document_type = Column(String(50), nullable=False)
    inward_delivery_challan_id = Column(
        Integer,
        ForeignKey("inward_delivery_challans.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    batch_number = Column(String(100), nullable=True)
    expiry_date = Column(Date, nullable=True)
    received_qty = Column(Numeric(14, 4), nullable=False, default=0)
    issued_qty = Column(Numeric(14, 4), nullable=False, default=0)
    unit_rate = Column(Numeric(14, 4), nullable=False, default=0)
    amount = Column(Numeric(14, 2), nullable=False, default=0)

    is_retired = Column(Boolean, nullable=False, default=False)
    retired_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("received_qty >= 0", name="ck_stock_ledger_received_non_negative"),
        CheckConstraint("issued_qty >= 0", name="ck_stock_ledger_issued_non_negative"),
        Index("ix_stock_ledger_site_item_live", "site_id", "item_id", "is_retired"),
    )

    def __repr__(self):
        return (
            f"<StockLedgerEntry id={self.id} site_id={self.site_id} item_id={self.item_id} "
            f"in={self.received_qty} out={self.issued_qty} retired={self.is_retired}>"
        )
