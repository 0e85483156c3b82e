from sqlalchemy import Column, Integer, String, Boolean

from backoffice.core.db import Base
from backoffice.models.base.mixins import TimestampMixin


class Item(Base, TimestampMixin):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    unit = Column(String(20), nullable=False, default="NOS")
    # expiry tracked items are stocked per batch number
    is_expiry_tracked = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<Item id={self.id} code={self.code} expiry_tracked={self.is_expiry_tracked}>"
