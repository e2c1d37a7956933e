"""
Preparation du bon de remise / Handover receipt payload assembly.

Transforme un lot, ses appareils et leurs drapeaux en charge utile pour le moteur PDF.
Turns a batch, its devices and their flags into the PDF renderer's payload.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from custody.models.device import Device, DeviceType
from custody.models.handover import HandoverAction
from custody.models.person import Person
from custody.services.device_service import FlagSummaryRow

QUANTITY_ONE = "1 pc"
EMPTY_CELL = "-"
NOT_SPECIFIED = "Not specified"


@dataclass
class GeneralItem:
    name: str
    quantity: str = QUANTITY_ONE


@dataclass
class PdaItem:
    name: str
    type: str
    custom_flags: str
    system_flags: str
    sim_card_id: str
    phone_number: str
    description: str
    quantity: str = QUANTITY_ONE


@dataclass
class PrinterItem:
    name: str
    type: str
    custom_flags: str
    system_flags: str
    description: str
    quantity: str = QUANTITY_ONE


@dataclass
class HandoverDocumentPayload:
    title: str
    giver_name: str
    receiver_name: str
    giver_label: str
    receiver_label: str
    date: str
    location: str
    notes: str = ""
    general_items: list[GeneralItem] = field(default_factory=list)
    pda_items: list[PdaItem] = field(default_factory=list)
    printer_items: list[PrinterItem] = field(default_factory=list)
    giver_signature: bytes | None = None
    receiver_signature: bytes | None = None


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def format_flag_entry(label: str, value: bool, note: str | None = None) -> str:
    """"Damaged: Yes (hairline crack)" """
    suffix = f" ({note})" if note else ""
    return f"{label}: {_yes_no(value)}{suffix}"


def format_condition_flags(device: Device) -> str:
    """Resume des drapeaux d'etat integres / Built-in condition flags summary."""
    return "; ".join([
        format_flag_entry("Damaged", device.is_damaged, device.damage_note),
        format_flag_entry("Faulty", device.is_faulty, device.fault_note),
    ])


def format_custom_flags(rows: Iterable[FlagSummaryRow]) -> str:
    """Resume des drapeaux personnalises / Custom flags summary."""
    entries = [format_flag_entry(row.name, row.value, row.note) for row in rows]
    return "; ".join(entries) if entries else NOT_SPECIFIED


def _person_name(person: Person | None, fallback: str) -> str:
    return (person.display_name if person else None) or fallback


def build_document_payload(
    action: HandoverAction,
    courier: Person | None,
    dispatcher: Person | None,
    devices: list[Device],
    flag_rows: list[FlagSummaryRow],
    courier_signature: bytes | None,
    dispatcher_signature: bytes | None,
    notes: str | None,
    location: str,
    document_date: date,
    date_format: str = "%Y-%m-%d",
) -> HandoverDocumentPayload:
    """Assembler la charge utile du bon / Assemble the receipt payload.

    ISSUE : le dispatcher remet, le coursier recoit. RETURN : l'inverse.
    ISSUE: the dispatcher gives, the courier receives. RETURN: the reverse.
    """
    courier_name = _person_name(courier, "Unknown courier")
    dispatcher_name = _person_name(dispatcher, "Unknown dispatcher")
    if action == HandoverAction.ISSUE:
        giver_name, receiver_name = dispatcher_name, courier_name
        giver_signature, receiver_signature = dispatcher_signature, courier_signature
        title = "Device handover receipt"
    else:
        giver_name, receiver_name = courier_name, dispatcher_name
        giver_signature, receiver_signature = courier_signature, dispatcher_signature
        title = "Device return receipt"

    flags_by_device: dict[int, list[FlagSummaryRow]] = defaultdict(list)
    for row in flag_rows:
        flags_by_device[row.device_id].append(row)

    payload = HandoverDocumentPayload(
        title=title,
        giver_name=giver_name,
        receiver_name=receiver_name,
        giver_label="Handed over by",
        receiver_label="Received by",
        date=document_date.strftime(date_format),
        location=location or EMPTY_CELL,
        notes=notes or "",
        giver_signature=giver_signature,
        receiver_signature=receiver_signature,
    )

    for device in devices:
        payload.general_items.append(GeneralItem(name=device.asset_tag))
        custom_flags = format_custom_flags(flags_by_device.get(device.id, []))
        system_flags = format_condition_flags(device)
        description = device.description or EMPTY_CELL
        if device.type == DeviceType.PDA:
            payload.pda_items.append(PdaItem(
                name=device.asset_tag,
                type=device.type.value,
                custom_flags=custom_flags,
                system_flags=system_flags,
                sim_card_id=device.sim_card_id or EMPTY_CELL,
                phone_number=device.phone_number or EMPTY_CELL,
                description=description,
            ))
        elif device.type == DeviceType.MOBILE_PRINTER:
            payload.printer_items.append(PrinterItem(
                name=device.asset_tag,
                type=device.type.value,
                custom_flags=custom_flags,
                system_flags=system_flags,
                description=description,
            ))
    return payload
