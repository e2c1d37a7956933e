"""
Service appareils et drapeaux / Device and flag store service.

Toute modification d'un champ ou d'un drapeau ajoute une ligne d'historique.
Every field or flag change appends a history entry.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from custody.exceptions import Conflict, InvalidInput, NotFound, ValidationFailed
from custody.models.device import Device, DeviceStatus
from custody.models.flag import FlagDefinition, FlagValue
from custody.schemas.device import DeviceCreate, DeviceUpdate
from custody.schemas.flag import FlagValueInput
from custody.services.history_service import record_field_change, record_flag_change

logger = logging.getLogger(__name__)

# Champs non nullables ignores si envoyes a null / Non-nullable fields dropped when sent as null
_NON_NULLABLE = ("asset_tag", "type", "status", "is_damaged", "is_faulty")
_NOTE_FIELDS = ("damage_note", "fault_note")


@dataclass(frozen=True)
class FlagSummaryRow:
    """Ligne jointe valeur + definition / Joined flag value + definition row."""
    device_id: int
    flag_id: int
    name: str
    value: bool
    note: str | None
    updated_at: datetime | None = None


def normalize_note(note: str | None) -> str | None:
    """Note nettoyee, vide => None / Trimmed note, empty => None."""
    if note is None:
        return None
    note = note.strip()
    return note or None


def check_condition_notes(
    is_damaged: bool,
    damage_note: str | None,
    is_faulty: bool,
    fault_note: str | None,
    asset_tag: str | None = None,
) -> None:
    """Un drapeau d'etat vrai exige sa note / A true condition flag requires its note."""
    suffix = f" ({asset_tag})" if asset_tag else ""
    if is_damaged and not normalize_note(damage_note):
        raise ValidationFailed(
            f"Damage note is required for damaged devices{suffix}",
            {"field": "damage_note", "asset_tag": asset_tag},
        )
    if is_faulty and not normalize_note(fault_note):
        raise ValidationFailed(
            f"Fault note is required for faulty devices{suffix}",
            {"field": "fault_note", "asset_tag": asset_tag},
        )


async def get_device(db: AsyncSession, device_id: int) -> Device:
    device = await db.get(Device, device_id)
    if device is None:
        raise NotFound("Device not found", {"device_id": device_id})
    return device


async def ensure_flags_exist(db: AsyncSession, flag_ids: set[int]) -> None:
    """Verifier que chaque drapeau reference existe / Check every referenced flag exists."""
    if not flag_ids:
        return
    result = await db.execute(select(FlagDefinition.id).where(FlagDefinition.id.in_(flag_ids)))
    missing = sorted(flag_ids - set(result.scalars().all()))
    if missing:
        raise InvalidInput("Unknown flag definition", {"flag_ids": missing})


def apply_device_changes(db: AsyncSession, device: Device, changes: dict, actor_id: int | None) -> None:
    """Appliquer des champs scalaires avec historique / Apply scalar fields with history."""
    for field, value in changes.items():
        record_field_change(db, device.id, field, getattr(device, field), value, actor_id)
        setattr(device, field, value)


async def list_device_flags(db: AsyncSession, device_ids: list[int]) -> list[FlagSummaryRow]:
    """Valeurs de drapeaux jointes a leur definition / Flag values joined with their definition."""
    if not device_ids:
        return []
    result = await db.execute(
        select(
            FlagValue.device_id,
            FlagValue.flag_id,
            FlagDefinition.name,
            FlagValue.value,
            FlagValue.note,
            FlagValue.updated_at,
        )
        .join(FlagDefinition, FlagDefinition.id == FlagValue.flag_id)
        .where(FlagValue.device_id.in_(device_ids))
        .order_by(FlagValue.device_id, FlagDefinition.name)
    )
    return [
        FlagSummaryRow(
            device_id=row.device_id,
            flag_id=row.flag_id,
            name=row.name,
            value=bool(row.value),
            note=row.note,
            updated_at=row.updated_at,
        )
        for row in result.all()
    ]


async def upsert_flag_values(
    db: AsyncSession,
    device_id: int,
    flags: list[FlagValueInput],
    actor_id: int | None,
) -> None:
    """Une ligne par (appareil, drapeau), derniere ecriture gagne / One row per (device, flag), last write wins.

    La note est conservee telle quelle meme si la valeur est False.
    The note is kept as given even when the value is False.
    """
    result = await db.execute(select(FlagValue).where(FlagValue.device_id == device_id))
    existing = {fv.flag_id: fv for fv in result.scalars().all()}

    for flag in flags:
        note = normalize_note(flag.note)
        current = existing.get(flag.flag_id)
        if current is None:
            record_flag_change(db, device_id, flag.flag_id, None, flag.value, None, note, actor_id)
            current = FlagValue(device_id=device_id, flag_id=flag.flag_id, value=flag.value, note=note)
            db.add(current)
            existing[flag.flag_id] = current
        else:
            record_flag_change(db, device_id, flag.flag_id, current.value, flag.value, current.note, note, actor_id)
            current.value = flag.value
            current.note = note
    await db.flush()


async def clear_flag_values(db: AsyncSession, device_id: int, actor_id: int | None) -> int:
    """Supprimer toutes les valeurs de drapeaux d'un appareil / Delete every flag value of a device."""
    result = await db.execute(select(FlagValue).where(FlagValue.device_id == device_id))
    values = result.scalars().all()
    for fv in values:
        record_flag_change(db, device_id, fv.flag_id, fv.value, None, fv.note, None, actor_id)
        await db.delete(fv)
    await db.flush()
    return len(values)


async def update_device_flags(
    db: AsyncSession,
    device_id: int,
    flags: list[FlagValueInput],
    actor_id: int | None,
) -> list[FlagSummaryRow]:
    """Mettre a jour les drapeaux ; liste vide = tout effacer / Update flags; empty list clears all."""
    await get_device(db, device_id)
    if not flags:
        removed = await clear_flag_values(db, device_id, actor_id)
        logger.info("Device %s: %d flag value(s) cleared", device_id, removed)
    else:
        await ensure_flags_exist(db, {f.flag_id for f in flags})
        await upsert_flag_values(db, device_id, flags, actor_id)
    return await list_device_flags(db, [device_id])


async def _ensure_unique_asset_tag(db: AsyncSession, asset_tag: str, exclude_id: int | None = None) -> None:
    query = select(Device.id).where(Device.asset_tag == asset_tag)
    if exclude_id is not None:
        query = query.where(Device.id != exclude_id)
    if (await db.execute(query)).first():
        raise Conflict("Asset tag already exists", {"asset_tag": asset_tag})


async def create_device(db: AsyncSession, data: DeviceCreate, actor_id: int | None) -> Device:
    """Creer un appareil en stock / Create an in-stock device."""
    check_condition_notes(data.is_damaged, data.damage_note, data.is_faulty, data.fault_note, data.asset_tag)
    asset_tag = data.asset_tag.strip()
    await _ensure_unique_asset_tag(db, asset_tag)

    device = Device(
        asset_tag=asset_tag,
        type=data.type,
        description=data.description,
        status=DeviceStatus.AVAILABLE,
        sim_card_id=data.sim_card_id or None,
        phone_number=data.phone_number or None,
        is_damaged=data.is_damaged,
        damage_note=normalize_note(data.damage_note),
        is_faulty=data.is_faulty,
        fault_note=normalize_note(data.fault_note),
    )
    db.add(device)
    await db.flush()
    logger.info("Device %s created by %s", device.asset_tag, actor_id)
    return device


async def update_device(db: AsyncSession, device_id: int, patch: DeviceUpdate, actor_id: int | None) -> Device:
    """Modification directe d'un appareil / Direct device edit.

    Rejete un drapeau d'etat vrai sans note dans l'etat resultant.
    La garde (statut ISSUED, detenteur) ne change que par une remise.
    """
    device = await get_device(db, device_id)
    changes = patch.model_dump(exclude_unset=True)
    custom_flags = changes.pop("custom_flags", None)
    for field in _NON_NULLABLE:
        if field in changes and changes[field] is None:
            changes.pop(field)
    for field in _NOTE_FIELDS:
        if field in changes:
            changes[field] = normalize_note(changes[field])

    new_status = changes.get("status")
    if new_status is not None and new_status != device.status:
        if new_status == DeviceStatus.ISSUED:
            raise InvalidInput("Devices can only be issued through a handover")
        if device.status == DeviceStatus.ISSUED and new_status == DeviceStatus.AVAILABLE:
            raise InvalidInput("Issued devices can only be returned through a handover")

    check_condition_notes(
        changes.get("is_damaged", device.is_damaged),
        changes["damage_note"] if "damage_note" in changes else device.damage_note,
        changes.get("is_faulty", device.is_faulty),
        changes["fault_note"] if "fault_note" in changes else device.fault_note,
        device.asset_tag,
    )
    if "asset_tag" in changes:
        changes["asset_tag"] = changes["asset_tag"].strip()
        await _ensure_unique_asset_tag(db, changes["asset_tag"], exclude_id=device.id)
    if custom_flags:
        await ensure_flags_exist(db, {f["flag_id"] for f in custom_flags})

    apply_device_changes(db, device, changes, actor_id)
    if custom_flags:
        await upsert_flag_values(db, device.id, [FlagValueInput(**f) for f in custom_flags], actor_id)
    await db.flush()
    return device
