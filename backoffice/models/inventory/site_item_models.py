from sqlalchemy import Column, Integer, String, Date, ForeignKey, CheckConstraint, Numeric, UniqueConstraint, Index

from backoffice.core.db import Base
from backoffice.models.base.mixins import TimestampMixin


class SiteItem(Base, TimestampMixin):
    """Running closing stock of an item at a site."""

    __tablename__ = "site_items"

    site_id = Column(Integer, ForeignKey("sites.id", ondelete="RESTRICT"), primary_key=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), primary_key=True)
    closing_qty = Column(Numeric(14, 4), nullable=False, default=0)
    closing_value = Column(Numeric(16, 4), nullable=False, default=0)
    unit_rate = Column(Numeric(14, 4), nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("closing_qty >= 0", name="ck_site_item_closing_qty_non_negative"),
        CheckConstraint("closing_value >= 0", name="ck_site_item_closing_value_non_negative"),
    )

    def __repr__(self):
        return f"<SiteItem site_id={self.site_id} item_id={self.item_id} qty={self.closing_qty}>"


class SiteItemBatch(Base, TimestampMixin):
    """Running closing stock of one expiry batch of an item at a site."""

    __tablename__ = "site_item_batches"

    id = Column(Integer, primary_key=True)
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="RESTRICT"), nullable=False)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    batch_number = Column(String(100), nullable=False)
    expiry_date = Column(Date, nullable=False)
    closing_qty = Column(Numeric(14, 4), nullable=False, default=0)
    closing_value = Column(Numeric(16, 4), nullable=False, default=0)
    unit_rate = Column(Numeric(14, 4), nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("site_id", "item_id", "batch_number", name="uq_site_item_batch"),
        CheckConstraint("closing_qty >= 0", name="ck_site_item_batch_closing_qty_non_negative"),
        Index("ix_site_item_batch_site_item", "site_id", "item_id"),
    )

    def __repr__(self):
        return (
            f"<SiteItemBatch id={self.id} site_id={self.site_id} item_id={self.item_id} "
            f"batch={self.batch_number} qty={self.closing_qty}>"
        )
