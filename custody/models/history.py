"""Historique des champs et drapeaux appareil / Device field and flag history."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from custody.database import Base


class DeviceHistory(Base):
    """Changement d'un champ scalaire, ajout seul / Scalar field change, append-only."""
    __tablename__ = "device_history"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    device_id: Mapped[int] = mapped_column(ForeignKey("devices.id"), nullable=False, index=True)
    field: Mapped[str] = mapped_column(String(50), nullable=False)
    old_value: Mapped[str | None] = mapped_column(Text)
    new_value: Mapped[str | None] = mapped_column(Text)
    changed_by: Mapped[int | None] = mapped_column(ForeignKey("persons.id"))
    changed_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class DeviceFlagHistory(Base):
    """Changement de valeur / note d'un drapeau / Flag value or note change."""
    __tablename__ = "device_flag_history"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    device_id: Mapped[int] = mapped_column(ForeignKey("devices.id"), nullable=False, index=True)
    flag_id: Mapped[int] = mapped_column(ForeignKey("device_flag_definitions.id"), nullable=False)
    old_value: Mapped[bool | None] = mapped_column(Boolean)
    new_value: Mapped[bool | None] = mapped_column(Boolean)
    old_note: Mapped[str | None] = mapped_column(Text)
    new_note: Mapped[str | None] = mapped_column(Text)
    changed_by: Mapped[int | None] = mapped_column(ForeignKey("persons.id"))
    changed_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
