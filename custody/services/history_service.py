"""
Enregistreurs d'historique (ajout seul) / Append-only history recorders.

Jamais lus par le moteur de remise, uniquement par les vues d'historique.
Never read by the handover engine, only by history views.
"""

import enum

from sqlalchemy.ext.asyncio import AsyncSession

from custody.models.history import DeviceFlagHistory, DeviceHistory


def _to_text(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, enum.Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def record_field_change(
    db: AsyncSession,
    device_id: int,
    field: str,
    old_value,
    new_value,
    actor_id: int | None,
) -> DeviceHistory | None:
    """Ajouter une ligne si la valeur change / Append an entry when the value changed."""
    old_text, new_text = _to_text(old_value), _to_text(new_value)
    if old_text == new_text:
        return None
    entry = DeviceHistory(
        device_id=device_id,
        field=field,
        old_value=old_text,
        new_value=new_text,
        changed_by=actor_id,
    )
    db.add(entry)
    return entry


def record_flag_change(
    db: AsyncSession,
    device_id: int,
    flag_id: int,
    old_value: bool | None,
    new_value: bool | None,
    old_note: str | None,
    new_note: str | None,
    actor_id: int | None,
) -> DeviceFlagHistory | None:
    """Ajouter une ligne si la valeur ou la note change / Append an entry when value or note changed."""
    if old_value == new_value and old_note == new_note:
        return None
    entry = DeviceFlagHistory(
        device_id=device_id,
        flag_id=flag_id,
        old_value=old_value,
        new_value=new_value,
        old_note=old_note,
        new_note=new_note,
        changed_by=actor_id,
    )
    db.add(entry)
    return entry
