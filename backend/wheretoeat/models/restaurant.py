"""Restaurant listing with the capacity and opening-hours settings used by booking admission.

opening_hours is keyed by French weekday name ("Lundi" .. "Dimanche"); each value holds
isOpen, hasSecondService, openTime1, closeTime1, openTime2, closeTime2 (HH:MM strings).
"""
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import false, func

from wheretoeat.db.base import Base

DEFAULT_CAPACITY = 40


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    name = Column(String(256), nullable=False)
    cuisine = Column(String(128), nullable=True)
    location = Column(String(128), nullable=True)
    description = Column(Text, nullable=True)
    address = Column(String(512), nullable=True)
    phone = Column(String(64), nullable=True)
    public_email = Column(String(255), nullable=True)  # receives new-booking emails with action links
    website = Column(String(512), nullable=True)
    price_range = Column(String(16), nullable=True)

    capacity = Column(Integer, nullable=False, default=DEFAULT_CAPACITY, server_default=str(DEFAULT_CAPACITY))
    online_capacity = Column(Integer, nullable=True)  # None = same as capacity
    min_guests = Column(Integer, nullable=False, default=1, server_default="1")
    max_guests = Column(Integer, nullable=False, default=12, server_default="12")
    opening_hours = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)

    approval_status = Column(String(16), nullable=False, default="pending", server_default="pending", index=True)
    is_blocked = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def admission_ceiling(self) -> int:
        """Covers accepted automatically for online requests."""
        if self.online_capacity is not None:
            return self.online_capacity
        return self.capacity if self.capacity is not None else DEFAULT_CAPACITY
