"""
Routes drapeaux personnalises / Custom flag routes.
Definitions (CRUD admin) et valeurs par appareil / Definitions (admin CRUD) and per-device values.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from custody.database import get_db
from custody.models.flag import FlagDefinition, FlagValue
from custody.models.history import DeviceFlagHistory
from custody.models.person import Person
from custody.schemas.flag import (
    DeviceFlagsUpdate,
    FlagDefinitionCreate,
    FlagDefinitionRead,
    FlagDefinitionUpdate,
    FlagValueRead,
)
from custody.services import device_service
from custody.api.deps import get_current_user, require_admin

router = APIRouter()


async def _get_definition(db: AsyncSession, flag_id: int) -> FlagDefinition:
    definition = await db.get(FlagDefinition, flag_id)
    if not definition:
        raise HTTPException(status_code=404, detail="Flag definition not found")
    return definition


async def _ensure_unreferenced(db: AsyncSession, flag_id: int) -> None:
    """Definition figee des qu'une valeur ou un historique la reference / Frozen once a value or history row uses it."""
    for query in (
        select(FlagValue.device_id).where(FlagValue.flag_id == flag_id).limit(1),
        select(DeviceFlagHistory.id).where(DeviceFlagHistory.flag_id == flag_id).limit(1),
    ):
        if (await db.execute(query)).first():
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Flag definition is in use")


async def _ensure_unique_name(db: AsyncSession, name: str, exclude_id: int | None = None) -> None:
    query = select(FlagDefinition.id).where(FlagDefinition.name == name)
    if exclude_id is not None:
        query = query.where(FlagDefinition.id != exclude_id)
    if (await db.execute(query)).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Flag name already exists")


# ─── Definitions ───

@router.get("/definitions", response_model=list[FlagDefinitionRead])
async def list_definitions(
    db: AsyncSession = Depends(get_db),
    user: Person = Depends(get_current_user),
):
    result = await db.execute(select(FlagDefinition).order_by(FlagDefinition.name))
    return result.scalars().all()


@router.post("/definitions", response_model=FlagDefinitionRead, status_code=201)
async def create_definition(
    data: FlagDefinitionCreate,
    db: AsyncSession = Depends(get_db),
    user: Person = Depends(require_admin),
):
    name = data.name.strip()
    await _ensure_unique_name(db, name)
    definition = FlagDefinition(name=name, description=data.description)
    db.add(definition)
    await db.flush()
    await db.refresh(definition)
    return definition


@router.put("/definitions/{flag_id}", response_model=FlagDefinitionRead)
async def update_definition(
    flag_id: int,
    data: FlagDefinitionUpdate,
    db: AsyncSession = Depends(get_db),
    user: Person = Depends(require_admin),
):
    definition = await _get_definition(db, flag_id)
    await _ensure_unreferenced(db, flag_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("name"):
        changes["name"] = changes["name"].strip()
        await _ensure_unique_name(db, changes["name"], exclude_id=flag_id)
    elif "name" in changes:
        changes.pop("name")
    for key, value in changes.items():
        setattr(definition, key, value)
    await db.flush()
    return definition


@router.delete("/definitions/{flag_id}", status_code=204)
async def delete_definition(
    flag_id: int,
    db: AsyncSession = Depends(get_db),
    user: Person = Depends(require_admin),
):
    definition = await _get_definition(db, flag_id)
    await _ensure_unreferenced(db, flag_id)
    await db.delete(definition)


# ─── Valeurs par appareil / Per-device values ───

@router.get("/{device_id}", response_model=list[FlagValueRead])
async def get_device_flags(
    device_id: int,
    db: AsyncSession = Depends(get_db),
    user: Person = Depends(get_current_user),
):
    await device_service.get_device(db, device_id)
    return await device_service.list_device_flags(db, [device_id])


@router.post("/{device_id}", response_model=list[FlagValueRead])
async def update_device_flags(
    device_id: int,
    data: DeviceFlagsUpdate,
    db: AsyncSession = Depends(get_db),
    user: Person = Depends(require_admin),
):
    """Remplacer / effacer les drapeaux d'un appareil / Upsert or clear a device's flags."""
    return await device_service.update_device_flags(db, device_id, data.flags, user.id)
