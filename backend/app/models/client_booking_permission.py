from sqlalchemy import Boolean, Column, Integer, String, UniqueConstraint

from .base import BaseModel


class ClientBookingPermission(BaseModel):
    __tablename__ = "client_booking_permissions"
    __table_args__ = (
        UniqueConstraint("provider_id", "client_id", name="uq_booking_permission_pair"),
    )

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(String(64), nullable=False, index=True)
    client_id = Column(String(64), nullable=False, index=True)
    enabled = Column(Boolean, nullable=False, default=True)
    granted_by = Column(String(16), nullable=False, default="provider")  # provider | system
