"""
CRUD Personnes / Person CRUD routes.
Admins (email + mot de passe) et coursiers (PIN). Réservé aux admins.
"""

import re

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from custody.database import get_db
from custody.models.person import Person, PersonRole
from custody.schemas.person import PersonCreate, PersonRead, PersonUpdate
from custody.utils.audit import audit_entry
from custody.utils.auth import hash_password, hash_pin, is_valid_pin
from custody.api.deps import require_admin

router = APIRouter()

# PIN initial d'un coursier : exactement 4 chiffres / Initial courier PIN: exactly 4 digits
NEW_PIN_PATTERN = re.compile(r"^[0-9]{4}$")


async def _ensure_unique_email(db: AsyncSession, email: str, exclude_id: int | None = None) -> None:
    query = select(Person.id).where(Person.email == email)
    if exclude_id is not None:
        query = query.where(Person.id != exclude_id)
    if (await db.execute(query)).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already exists")


@router.get("/", response_model=list[PersonRead])
async def list_persons(
    role: PersonRole | None = Query(default=None),
    active: bool | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    user: Person = Depends(require_admin),
):
    """Lister les personnes (filtre role) / List persons (role filter)."""
    query = select(Person).order_by(Person.full_name, Person.id)
    if role is not None:
        query = query.where(Person.role == role)
    if active is not None:
        query = query.where(Person.is_active == active)
    result = await db.execute(query)
    return [PersonRead.from_person(p) for p in result.scalars().all()]


@router.get("/{person_id}", response_model=PersonRead)
async def get_person(
    person_id: int,
    db: AsyncSession = Depends(get_db),
    user: Person = Depends(require_admin),
):
    person = await db.get(Person, person_id)
    if not person:
        raise HTTPException(status_code=404, detail="Person not found")
    return PersonRead.from_person(person)


@router.post("/", response_model=PersonRead, status_code=status.HTTP_201_CREATED)
async def create_person(
    data: PersonCreate,
    db: AsyncSession = Depends(get_db),
    user: Person = Depends(require_admin),
):
    """Créer un admin ou un coursier / Create an admin or a courier."""
    email = data.email.strip().lower() if data.email else None
    person = Person(full_name=data.full_name.strip(), role=data.role, email=email, is_active=True)

    if data.role == PersonRole.COURIER:
        if not data.pin or not NEW_PIN_PATTERN.fullmatch(data.pin):
            raise HTTPException(status_code=400, detail="Courier PIN must be exactly 4 digits")
        person.pin_hash = hash_pin(data.pin)
    else:
        if not email or not data.password:
            raise HTTPException(status_code=400, detail="Admin requires email and password")
        person.hashed_password = hash_password(data.password)

    if email:
        await _ensure_unique_email(db, email)

    db.add(person)
    await db.flush()
    db.add(audit_entry(
        "person", person.id, "PERSON_CREATE",
        {"role": person.role.value, "full_name": person.full_name, "email": email},
        user.email,
    ))
    await db.flush()
    await db.refresh(person)
    return PersonRead.from_person(person)


@router.patch("/{person_id}", response_model=PersonRead)
async def update_person(
    person_id: int,
    data: PersonUpdate,
    db: AsyncSession = Depends(get_db),
    user: Person = Depends(require_admin),
):
    """Modifier une personne, réinitialiser le PIN / Update a person, reset the PIN."""
    person = await db.get(Person, person_id)
    if not person:
        raise HTTPException(status_code=404, detail="Person not found")

    changes = data.model_dump(exclude_unset=True)
    pin = changes.pop("pin", None)
    password = changes.pop("password", None)

    if pin is not None:
        if not is_valid_pin(pin):
            raise HTTPException(status_code=400, detail="PIN must be 4 to 6 digits")
        person.pin_hash = hash_pin(pin)
        db.add(audit_entry("person", person.id, "PIN_RESET", None, user.email))

    if password:
        person.hashed_password = hash_password(password)

    if changes.get("email"):
        changes["email"] = changes["email"].strip().lower()
        await _ensure_unique_email(db, changes["email"], exclude_id=person.id)

    for key in ("full_name", "role", "is_active"):
        if key in changes and changes[key] is None:
            changes.pop(key)

    for key, value in changes.items():
        setattr(person, key, value)

    if changes or password:
        logged = {k: (v.value if isinstance(v, PersonRole) else v) for k, v in changes.items()}
        if password:
            logged["password"] = "***"
        db.add(audit_entry("person", person.id, "PERSON_UPDATE", logged, user.email))

    await db.flush()
    await db.refresh(person)
    return PersonRead.from_person(person)
