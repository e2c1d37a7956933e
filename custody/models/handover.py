"""Modeles remise / retour d'appareils / Device handover models."""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from custody.database import Base


class HandoverAction(str, enum.Enum):
    """Type de remise / Handover action."""
    ISSUE = "ISSUE"
    RETURN = "RETURN"


class HandoverBatch(Base):
    """Une transaction de remise (N appareils, 1 coursier, 2 signatures) / One handover transaction.

    Immuable sauf document_path, renseigne une fois le bon genere.
    Immutable except document_path, back-filled once the receipt is stored.
    """
    __tablename__ = "handover_batches"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    action_type: Mapped[HandoverAction] = mapped_column(Enum(HandoverAction), nullable=False)
    courier_id: Mapped[int] = mapped_column(ForeignKey("persons.id"), nullable=False)
    dispatcher_id: Mapped[int] = mapped_column(ForeignKey("persons.id"), nullable=False)
    courier_signature_path: Mapped[str] = mapped_column(String(255), nullable=False)
    dispatcher_signature_path: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    document_path: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    # Relations
    logs: Mapped[list["HandoverLog"]] = relationship(
        back_populates="batch", lazy="selectin", order_by="HandoverLog.id"
    )

    def __repr__(self) -> str:
        return f"<HandoverBatch {self.id} {self.action_type.value}>"


class HandoverLog(Base):
    """Participation d'un appareil a une remise / One device's participation in a batch."""
    __tablename__ = "handover_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    device_id: Mapped[int] = mapped_column(ForeignKey("devices.id"), nullable=False, index=True)
    batch_id: Mapped[int] = mapped_column(ForeignKey("handover_batches.id"), nullable=False)
    action_type: Mapped[HandoverAction] = mapped_column(Enum(HandoverAction), nullable=False)
    from_person_id: Mapped[int | None] = mapped_column(ForeignKey("persons.id"))
    to_person_id: Mapped[int | None] = mapped_column(ForeignKey("persons.id"))
    timestamp: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    # Relations
    batch: Mapped["HandoverBatch"] = relationship(back_populates="logs")

    def __repr__(self) -> str:
        return f"<HandoverLog device={self.device_id} batch={self.batch_id}>"
