import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Boolean, DateTime, Text

from ..database import Base
from .enums import FoodCategory


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PotluckResponse(Base):
    __tablename__ = "responses"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False, index=True)
    attending = Column(Boolean, nullable=False, default=True)
    category = Column(String, nullable=False, default=FoodCategory.MAIN.value)
    dish = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def to_row(self) -> dict:
        """Row shape as returned by the hosted table API"""
        return {
            "id": self.id,
            "name": self.name,
            "attending": self.attending,
            "category": self.category,
            "dish": self.dish,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
