from sqlalchemy import Column, Integer, String, Boolean, Text

from backoffice.core.db import Base
from backoffice.models.base.mixins import TimestampMixin


class Site(Base, TimestampMixin):
    __tablename__ = "sites"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    code = Column(String(50), unique=True, nullable=False, index=True)
    address = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<Site id={self.id} code={self.code}>"
