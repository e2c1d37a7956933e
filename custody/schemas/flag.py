"""Schemas drapeaux personnalises / Custom flag schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ─── FlagDefinition ───

class FlagDefinitionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=255)

class FlagDefinitionUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=255)

class FlagDefinitionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    description: str | None = None
    created_at: datetime | None = None


# ─── FlagValue ───

class FlagValueInput(BaseModel):
    flag_id: int
    value: bool = False
    note: str | None = Field(default=None, max_length=1000)

class DeviceFlagsUpdate(BaseModel):
    """Liste vide = effacer tous les drapeaux de l'appareil / Empty list clears every flag of the device."""
    flags: list[FlagValueInput] = []

class FlagValueRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    device_id: int
    flag_id: int
    name: str
    value: bool
    note: str | None = None
    updated_at: datetime | None = None
