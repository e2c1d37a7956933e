"""Schemas remise / retour / Handover schemas."""

import enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from custody.models.handover import HandoverAction
from custody.schemas.flag import FlagValueInput
from custody.schemas.history import HandoverLogRead


class DeviceConditionUpdate(BaseModel):
    """Etat atteste d'un appareil lors de la remise / Device condition attested at handover.

    Porte l'etat *courant* : un drapeau absent vaut False.
    Carries the *current* state: an omitted flag means False.
    """
    id: int
    is_damaged: bool = False
    damage_note: str | None = None
    is_faulty: bool = False
    fault_note: str | None = None
    custom_flags: list[FlagValueInput] = []


class HandoverRequest(BaseModel):
    """Requete de remise / Handover request. Les regles metier sont verifiees par le service."""
    courier_id: int | None = None
    device_ids: list[int] = []
    pin: str = ""
    signature: str = ""
    dispatcher_signature: str = ""
    notes: str | None = Field(default=None, max_length=2000)
    device_updates: list[DeviceConditionUpdate] = []


class HandoverStatus(str, enum.Enum):
    """Issue d'une remise acceptee / Outcome of an accepted handover."""
    COMPLETED = "COMPLETED"
    DOCUMENT_PENDING = "DOCUMENT_PENDING"


class HandoverResult(BaseModel):
    status: HandoverStatus
    batch_id: int
    action_type: HandoverAction
    device_count: int
    document_reference: str | None = None
    document_url: str | None = None
    message: str | None = None


class HandoverBatchRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    action_type: HandoverAction
    courier_id: int
    dispatcher_id: int
    courier_signature_path: str
    dispatcher_signature_path: str
    notes: str | None = None
    document_path: str | None = None
    document_url: str | None = None
    created_at: datetime | None = None
    logs: list[HandoverLogRead] = []
