"""Reservation request/commitment.

status follows the booking state machine (wheretoeat.services.booking_states). arrival_time,
departure_time, bill_requested and bill_amount are service-desk fields set independently of status.
version is the ORM version column: an UPDATE against a row changed since it was read fails.
"""
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.sql import false, func

from wheretoeat.db.base import Base


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD
    time = Column(String(5), nullable=False)   # HH:MM
    guests = Column(Integer, nullable=False)
    children = Column(Integer, nullable=False, default=0, server_default="0")
    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(64), nullable=False)
    special_request = Column(Text, nullable=True)
    newsletter = Column(Boolean, nullable=False, default=False, server_default=false())
    status = Column(String(16), nullable=False)
    cancel_token = Column(String(64), nullable=False, unique=True, index=True)

    # Provenance: "owner-created" / "owner_<userId>_<ms>" mark staff-entered bookings
    client_ip = Column(String(64), nullable=True, index=True)
    client_id = Column(String(128), nullable=True, index=True)

    table_id = Column(String(64), nullable=True)
    zone_id = Column(String(64), nullable=True)
    arrival_time = Column(String(5), nullable=True)
    departure_time = Column(String(5), nullable=True)
    bill_requested = Column(Boolean, nullable=False, default=False, server_default=false())
    bill_amount = Column(Float, nullable=True)

    version = Column(Integer, nullable=False, default=1, server_default="1")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_bookings_restaurant_date_time", "restaurant_id", "date", "time"),
    )

    @property
    def covers(self) -> int:
        return self.guests + (self.children or 0)
