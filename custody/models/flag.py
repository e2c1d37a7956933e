"""Modeles drapeaux personnalises / Custom flag models."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from custody.database import Base


class FlagDefinition(Base):
    """Attribut booleen defini par l'admin (ex: "Housse fournie") / Admin-defined boolean attribute."""
    __tablename__ = "device_flag_definitions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    def __repr__(self) -> str:
        return f"<FlagDefinition {self.name}>"


class FlagValue(Base):
    """Valeur d'un drapeau pour un appareil, derniere ecriture gagne / Per-device flag value, most recent wins."""
    __tablename__ = "device_flag_values"

    device_id: Mapped[int] = mapped_column(ForeignKey("devices.id"), primary_key=True)
    flag_id: Mapped[int] = mapped_column(ForeignKey("device_flag_definitions.id"), primary_key=True)
    value: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    note: Mapped[str | None] = mapped_column(Text)  # Informative, jamais obligatoire / Informational only
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relations
    definition: Mapped["FlagDefinition"] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return f"<FlagValue device={self.device_id} flag={self.flag_id} {self.value}>"
