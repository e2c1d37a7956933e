"""Modele Appareil (PDA, imprimante mobile) / Device model (PDA, mobile printer)."""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from custody.database import Base


class DeviceType(str, enum.Enum):
    """Type d'appareil / Device type."""
    PDA = "PDA"
    MOBILE_PRINTER = "MOBILE_PRINTER"


class DeviceStatus(str, enum.Enum):
    """Statut de l'appareil / Device status."""
    AVAILABLE = "AVAILABLE"
    ISSUED = "ISSUED"
    LOST = "LOST"
    BROKEN = "BROKEN"
    IN_SERVICE = "IN_SERVICE"


class Device(Base):
    """Appareil du parc / Fleet device.

    current_holder_id NULL = en stock / in stock.
    """
    __tablename__ = "devices"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    asset_tag: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    type: Mapped[DeviceType] = mapped_column(Enum(DeviceType), nullable=False)
    status: Mapped[DeviceStatus] = mapped_column(Enum(DeviceStatus), default=DeviceStatus.AVAILABLE, nullable=False)
    current_holder_id: Mapped[int | None] = mapped_column(ForeignKey("persons.id"), nullable=True)
    description: Mapped[str | None] = mapped_column(Text)

    # PDA uniquement / PDA only
    sim_card_id: Mapped[str | None] = mapped_column(String(50))
    phone_number: Mapped[str | None] = mapped_column(String(30))

    # Etat physique, note obligatoire si vrai / Condition flags, note required when true
    is_damaged: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    damage_note: Mapped[str | None] = mapped_column(Text)
    is_faulty: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    fault_note: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relations
    current_holder: Mapped[Optional["Person"]] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return f"<Device {self.asset_tag}>"
