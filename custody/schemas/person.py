"""
Schémas Personne / Person schemas.
Admins (email + mot de passe) et coursiers (PIN).
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from custody.models.person import PersonRole


class PersonCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=150)
    role: PersonRole
    email: str | None = Field(default=None, max_length=150)
    password: str | None = Field(default=None, max_length=200)
    pin: str | None = None


class PersonUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=150)
    role: PersonRole | None = None
    email: str | None = Field(default=None, max_length=150)
    password: str | None = Field(default=None, min_length=1, max_length=200)
    is_active: bool | None = None
    pin: str | None = None  # Reinitialisation PIN / PIN reset


class PersonRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    email: str | None = None
    full_name: str | None = None
    role: PersonRole
    is_active: bool
    has_pin: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_person(cls, person) -> "PersonRead":
        read = cls.model_validate(person)
        read.has_pin = bool(person.pin_hash)
        return read


class PersonBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    full_name: str | None = None
    email: str | None = None
    role: PersonRole
