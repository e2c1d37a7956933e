"""
Moteur de remise d'appareils / Device handover transaction engine.

Valide, deplace la garde d'un lot d'appareils, journalise puis genere le bon signe.
Validates, moves custody of a device batch, logs it, then renders the signed receipt.

Point de validation / Commit point: une fois la garde enregistree, un echec du bon
n'annule rien et se traduit par DOCUMENT_PENDING.
Once custody is committed, a receipt failure undoes nothing and yields DOCUMENT_PENDING.
"""

import asyncio
import logging
import uuid
from datetime import date
from typing import Callable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from custody.config import settings
from custody.exceptions import (
    CourierInvalid,
    InvalidInput,
    NotFound,
    PreconditionFailed,
    StorageFailure,
    Unauthorized,
)
from custody.models.device import Device, DeviceStatus
from custody.models.handover import HandoverAction, HandoverBatch, HandoverLog
from custody.models.person import Person, PersonRole
from custody.schemas.handover import DeviceConditionUpdate, HandoverResult, HandoverStatus
from custody.services.device_service import (
    apply_device_changes,
    check_condition_notes,
    ensure_flags_exist,
    list_device_flags,
    normalize_note,
    upsert_flag_values,
)
from custody.services.document_renderer import render_handover_document
from custody.services.history_service import record_field_change
from custody.services.receipt_service import HandoverDocumentPayload, build_document_payload
from custody.services.storage import ObjectStore, ObjectStoreError
from custody.utils.auth import is_valid_pin, verify_pin
from custody.utils.signature import SignatureImage, parse_signature

logger = logging.getLogger(__name__)

DOCUMENT_CONTENT_TYPE = "application/pdf"


class HandoverService:
    """Remises ISSUE / RETURN sur une session DB / ISSUE and RETURN handovers on one DB session."""

    def __init__(
        self,
        db: AsyncSession,
        store: ObjectStore,
        renderer: Callable[[HandoverDocumentPayload], bytes] = render_handover_document,
        signature_bucket: str = settings.SIGNATURE_BUCKET,
        documents_bucket: str = settings.HANDOVER_DOCUMENTS_BUCKET,
        location: str = settings.HANDOVER_DOCUMENT_LOCATION,
        date_format: str = settings.HANDOVER_DATE_FORMAT,
    ):
        self.db = db
        self.store = store
        self.renderer = renderer
        self.signature_bucket = signature_bucket
        self.documents_bucket = documents_bucket
        self.location = location
        self.date_format = date_format

    # --- Lecture / Reads ---

    async def _fetch_devices(self, device_ids: list[int]) -> list[Device]:
        """Appareils dans l'ordre demande, ids inconnus omis / Devices in request order, unknown ids skipped."""
        result = await self.db.execute(select(Device).where(Device.id.in_(device_ids)))
        by_id = {device.id: device for device in result.scalars().all()}
        return [by_id[device_id] for device_id in device_ids if device_id in by_id]

    async def _get_courier(self, courier_id: int) -> Person:
        courier = await self.db.get(Person, courier_id)
        if courier is None or not courier.is_active or courier.role != PersonRole.COURIER:
            logger.warning("Handover refused: courier %s unknown, inactive or not a courier", courier_id)
            raise CourierInvalid("Courier not found or inactive", {"courier_id": courier_id})
        return courier

    @staticmethod
    def _check_preconditions(action: HandoverAction, courier: Person, devices: list[Device]) -> None:
        """Tout le lot respecte la precondition, sinon rien ne bouge / Whole batch or nothing."""
        if action == HandoverAction.ISSUE:
            offending = [d.asset_tag for d in devices if d.status != DeviceStatus.AVAILABLE]
            message = "Some devices are not available for issue"
        else:
            offending = [
                d.asset_tag for d in devices
                if d.status != DeviceStatus.ISSUED or d.current_holder_id != courier.id
            ]
            message = "Some devices are not held by this courier"
        if offending:
            raise PreconditionFailed(message, {"asset_tags": offending})

    # --- Ecritures / Writes ---

    async def _store_signatures(self, courier_id: int, dispatcher_id: int, signatures: list[SignatureImage]) -> list[str]:
        """Deposer les signatures coursier puis dispatcher / Upload courier then dispatcher signatures."""
        references: list[str] = []
        try:
            for person_id, signature in zip((courier_id, dispatcher_id), signatures):
                key = f"{person_id}/{uuid.uuid4().hex}.{signature.extension}"
                references.append(
                    await self.store.put(self.signature_bucket, key, signature.data, signature.content_type)
                )
        except ObjectStoreError as exc:
            await self._discard(references)
            raise StorageFailure("Signature storage unavailable") from exc
        return references

    async def _discard(self, references: list[str]) -> None:
        for reference in references:
            try:
                await self.store.delete(reference)
            except ObjectStoreError:
                logger.warning("Orphan signature left in store: %s", reference)

    def _apply_condition_updates(self, devices_by_id: dict[int, Device], updates: list[DeviceConditionUpdate], actor_id: int):
        for item in updates:
            device = devices_by_id[item.id]
            apply_device_changes(self.db, device, {
                "is_damaged": item.is_damaged,
                "damage_note": normalize_note(item.damage_note),
                "is_faulty": item.is_faulty,
                "fault_note": normalize_note(item.fault_note),
            }, actor_id)

    async def _move_custody(self, action: HandoverAction, courier: Person, device: Device, actor_id: int) -> bool:
        """Mise a jour conditionnelle du statut / Conditional status + holder update.

        0 ligne modifiee = un lot concurrent a gagne. 0 rows = a concurrent batch won.
        """
        if action == HandoverAction.ISSUE:
            guard = Device.status == DeviceStatus.AVAILABLE
            new_status, new_holder = DeviceStatus.ISSUED, courier.id
        else:
            guard = (Device.status == DeviceStatus.ISSUED) & (Device.current_holder_id == courier.id)
            new_status, new_holder = DeviceStatus.AVAILABLE, None

        result = await self.db.execute(
            update(Device)
            .where(Device.id == device.id, guard)
            .values(status=new_status, current_holder_id=new_holder)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False

        record_field_change(self.db, device.id, "status", device.status, new_status, actor_id)
        record_field_change(self.db, device.id, "current_holder_id", device.current_holder_id, new_holder, actor_id)
        await self.db.refresh(device, attribute_names=["status", "current_holder_id", "updated_at"])
        return True

    # --- Bon de remise / Receipt ---

    async def _generate_document(
        self,
        batch: HandoverBatch,
        courier: Person,
        dispatcher: Person,
        devices: list[Device],
        courier_signature: bytes | None,
        dispatcher_signature: bytes | None,
        document_date: date,
    ) -> str:
        flag_rows = await list_device_flags(self.db, [d.id for d in devices])
        payload = build_document_payload(
            batch.action_type,
            courier,
            dispatcher,
            devices,
            flag_rows,
            courier_signature,
            dispatcher_signature,
            batch.notes,
            self.location,
            document_date,
            self.date_format,
        )
        pdf = await asyncio.to_thread(self.renderer, payload)
        reference = await self.store.put(
            self.documents_bucket,
            f"{batch.courier_id}/{batch.id}.pdf",
            pdf,
            DOCUMENT_CONTENT_TYPE,
            upsert=True,
        )
        batch.document_path = reference
        await self.db.commit()
        return reference

    async def _load_signature(self, reference: str | None) -> bytes | None:
        """Image stockee ou None (=> mention sur le bon) / Stored image or None (placeholder on the receipt)."""
        if not reference:
            return None
        try:
            return await self.store.get(reference)
        except ObjectStoreError:
            logger.warning("Signature %s unavailable, rendering placeholder", reference)
            return None

    # --- Operations ---

    async def perform_handover(
        self,
        action: HandoverAction,
        courier_id: int | None,
        device_ids: list[int],
        pin: str,
        courier_signature: str,
        dispatcher_signature: str,
        notes: str | None,
        device_updates: list[DeviceConditionUpdate],
        dispatcher: Person,
    ) -> HandoverResult:
        """Executer une remise ISSUE ou RETURN / Perform an ISSUE or RETURN handover.

        Toutes les verifications precedent toute ecriture.
        Every check runs before any write.
        """
        # 1. Entrees / Inputs
        if courier_id is None:
            raise InvalidInput("Courier is required", {"field": "courier_id"})
        device_ids = list(dict.fromkeys(device_ids or []))
        if not device_ids:
            raise InvalidInput("At least one device is required", {"field": "device_ids"})

        # 2. Syntaxe PIN / PIN syntax
        if not is_valid_pin(pin):
            raise InvalidInput("PIN must be 4 to 6 digits", {"field": "pin"})

        # 3. Signatures
        signatures: list[SignatureImage] = []
        for field, data_url in (("signature", courier_signature), ("dispatcher_signature", dispatcher_signature)):
            try:
                signatures.append(parse_signature(data_url))
            except ValueError as exc:
                raise InvalidInput(f"{field}: {exc}", {"field": field}) from exc

        # 4-5. Coursier et PIN / Courier and PIN
        courier = await self._get_courier(courier_id)
        if not await asyncio.to_thread(verify_pin, pin, courier.pin_hash):
            logger.warning("Handover refused: PIN mismatch for courier %s", courier_id)
            raise Unauthorized("PIN mismatch", {"courier_id": courier_id})

        # 6. Appareils / Devices
        devices = await self._fetch_devices(device_ids)
        devices_by_id = {device.id: device for device in devices}
        missing = [device_id for device_id in device_ids if device_id not in devices_by_id]
        if missing:
            raise PreconditionFailed("Unknown devices", {"device_ids": missing})
        self._check_preconditions(action, courier, devices)

        # 7. Etat atteste / Attested condition (hors lot ignore / outside the batch ignored)
        updates = [item for item in device_updates or [] if item.id in devices_by_id]
        for item in updates:
            check_condition_notes(
                item.is_damaged, item.damage_note, item.is_faulty, item.fault_note,
                devices_by_id[item.id].asset_tag,
            )
        await ensure_flags_exist(self.db, {flag.flag_id for item in updates for flag in item.custom_flags})

        # --- Ecritures / Writes ---
        self._apply_condition_updates(devices_by_id, updates, dispatcher.id)
        for item in updates:
            if item.custom_flags:
                await upsert_flag_values(self.db, item.id, item.custom_flags, dispatcher.id)
        await self.db.flush()

        # Un rollback expire les objets ORM : ids lus avant / A rollback expires ORM objects: ids read first
        dispatcher_id = dispatcher.id
        try:
            courier_ref, dispatcher_ref = await self._store_signatures(courier_id, dispatcher_id, signatures)
        except StorageFailure:
            await self.db.rollback()
            logger.error("Handover aborted: signature storage failed (courier %s)", courier_id)
            raise

        batch = HandoverBatch(
            action_type=action,
            courier_id=courier.id,
            dispatcher_id=dispatcher.id,
            courier_signature_path=courier_ref,
            dispatcher_signature_path=dispatcher_ref,
            notes=normalize_note(notes),
        )
        self.db.add(batch)
        await self.db.flush()

        for device in devices:
            if action == HandoverAction.ISSUE:
                from_person, to_person = device.current_holder_id, courier.id
            else:
                from_person, to_person = courier.id, None
            self.db.add(HandoverLog(
                device_id=device.id,
                batch_id=batch.id,
                action_type=action,
                from_person_id=from_person,
                to_person_id=to_person,
            ))
        await self.db.flush()

        for device in devices:
            asset_tag = device.asset_tag
            if not await self._move_custody(action, courier, device, dispatcher_id):
                await self.db.rollback()
                await self._discard([courier_ref, dispatcher_ref])
                logger.warning("Handover lost a race on device %s (courier %s)", asset_tag, courier_id)
                raise PreconditionFailed(
                    "Device state changed during the handover",
                    {"asset_tags": [asset_tag]},
                )

        # Point de validation / Commit point
        await self.db.commit()
        batch_id = batch.id
        logger.info(
            "Handover batch %s committed: %s of %d device(s), courier %s, dispatcher %s",
            batch_id, action.value, len(devices), courier.id, dispatcher.id,
        )

        try:
            reference = await self._generate_document(
                batch, courier, dispatcher, devices,
                signatures[0].data, signatures[1].data, date.today(),
            )
        except Exception:
            logger.exception("Receipt generation failed for batch %s, custody is recorded", batch_id)
            await self.db.rollback()
            return HandoverResult(
                status=HandoverStatus.DOCUMENT_PENDING,
                batch_id=batch_id,
                action_type=action,
                device_count=len(devices),
                message="Custody recorded; the receipt could not be generated",
            )

        return HandoverResult(
            status=HandoverStatus.COMPLETED,
            batch_id=batch_id,
            action_type=action,
            device_count=len(devices),
            document_reference=reference,
            document_url=self.store.public_url(reference),
            message="Handover completed",
        )

    async def regenerate_document(self, batch_id: int) -> HandoverResult:
        """Regenerer le bon d'un lot existant / Re-render the receipt of an existing batch.

        Utilise l'etat actuel des appareils et les signatures stockees.
        Uses the devices' current condition and the stored signatures.
        """
        batch = await self.db.get(HandoverBatch, batch_id, populate_existing=True)
        if batch is None:
            raise NotFound("Handover batch not found", {"batch_id": batch_id})

        courier = await self.db.get(Person, batch.courier_id)
        dispatcher = await self.db.get(Person, batch.dispatcher_id)
        devices = await self._fetch_devices([log.device_id for log in batch.logs])
        courier_signature = await self._load_signature(batch.courier_signature_path)
        dispatcher_signature = await self._load_signature(batch.dispatcher_signature_path)
        document_date = batch.created_at.date() if batch.created_at else date.today()

        try:
            reference = await self._generate_document(
                batch, courier, dispatcher, devices,
                courier_signature, dispatcher_signature, document_date,
            )
        except Exception as exc:
            logger.exception("Receipt regeneration failed for batch %s", batch_id)
            await self.db.rollback()
            raise StorageFailure("Receipt could not be generated", {"batch_id": batch_id}) from exc

        logger.info("Receipt regenerated for batch %s: %s", batch_id, reference)
        return HandoverResult(
            status=HandoverStatus.COMPLETED,
            batch_id=batch_id,
            action_type=batch.action_type,
            device_count=len(devices),
            document_reference=reference,
            document_url=self.store.public_url(reference),
            message="Receipt regenerated",
        )
