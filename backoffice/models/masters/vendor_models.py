from sqlalchemy import Column, Integer, String, Boolean

from backoffice.core.db import Base
from backoffice.models.base.mixins import TimestampMixin


class Vendor(Base, TimestampMixin):
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False, index=True)
    gstin = Column(String(15), nullable=True, unique=True)
    contact_phone = Column(String(20), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<Vendor id={self.id} name={self.name}>"
