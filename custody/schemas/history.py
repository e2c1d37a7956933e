"""Schemas historique / History schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from custody.models.handover import HandoverAction


class DeviceHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    device_id: int
    field: str
    old_value: str | None = None
    new_value: str | None = None
    changed_by: int | None = None
    changed_at: datetime | None = None


class DeviceFlagHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    device_id: int
    flag_id: int
    old_value: bool | None = None
    new_value: bool | None = None
    old_note: str | None = None
    new_note: str | None = None
    changed_by: int | None = None
    changed_at: datetime | None = None


class HandoverLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    device_id: int
    batch_id: int
    action_type: HandoverAction
    from_person_id: int | None = None
    to_person_id: int | None = None
    timestamp: datetime | None = None
