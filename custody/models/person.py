"""
Modele Personne (admin / coursier) / Person model (admin / courier).
"""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, String, func
from sqlalchemy.orm import Mapped, mapped_column

from custody.database import Base


class PersonRole(str, enum.Enum):
    """Role d'une personne / Person role.

    Le dispatcher est l'ADMIN authentifie qui effectue la remise.
    The dispatcher is whichever active ADMIN performs the handover.
    """
    ADMIN = "ADMIN"
    COURIER = "COURIER"


class Person(Base):
    """Membre du personnel / Staff member."""

    __tablename__ = "persons"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str | None] = mapped_column(String(150), unique=True, nullable=True)
    full_name: Mapped[str | None] = mapped_column(String(150))
    role: Mapped[PersonRole] = mapped_column(Enum(PersonRole), nullable=False)
    hashed_password: Mapped[str | None] = mapped_column(String(255))  # Admins uniquement / Admins only
    pin_hash: Mapped[str | None] = mapped_column(String(255))  # Coursiers uniquement / Couriers only
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def display_name(self) -> str | None:
        return self.full_name or self.email

    def __repr__(self) -> str:
        return f"<Person {self.id} {self.role.value if self.role else '?'}>"
