"""Schemas appareils / Device schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from custody.models.device import DeviceStatus, DeviceType
from custody.schemas.flag import FlagValueInput, FlagValueRead
from custody.schemas.person import PersonBrief


class DeviceCreate(BaseModel):
    asset_tag: str = Field(min_length=1, max_length=50)
    type: DeviceType
    description: str | None = None
    sim_card_id: str | None = Field(default=None, max_length=50)
    phone_number: str | None = Field(default=None, max_length=30)
    is_damaged: bool = False
    damage_note: str | None = None
    is_faulty: bool = False
    fault_note: str | None = None

class DeviceUpdate(BaseModel):
    """Modification partielle / Partial patch. Le detenteur ne change que par remise."""
    asset_tag: str | None = Field(default=None, min_length=1, max_length=50)
    type: DeviceType | None = None
    description: str | None = None
    status: DeviceStatus | None = None
    sim_card_id: str | None = Field(default=None, max_length=50)
    phone_number: str | None = Field(default=None, max_length=30)
    is_damaged: bool | None = None
    damage_note: str | None = None
    is_faulty: bool | None = None
    fault_note: str | None = None
    custom_flags: list[FlagValueInput] | None = None

class DeviceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    asset_tag: str
    type: DeviceType
    status: DeviceStatus
    current_holder_id: int | None = None
    description: str | None = None
    sim_card_id: str | None = None
    phone_number: str | None = None
    is_damaged: bool
    damage_note: str | None = None
    is_faulty: bool
    fault_note: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

class DeviceDetail(DeviceRead):
    """Appareil + detenteur + drapeaux / Device with holder and flag values."""
    current_holder: PersonBrief | None = None
    flags: list[FlagValueRead] = []
