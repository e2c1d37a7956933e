"""Routes appareils (PDA, imprimantes) / Device routes (PDAs, printers)."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from custody.database import get_db
from custody.models.device import Device, DeviceStatus, DeviceType
from custody.models.handover import HandoverLog
from custody.models.history import DeviceFlagHistory, DeviceHistory
from custody.models.person import Person
from custody.schemas.device import DeviceCreate, DeviceDetail, DeviceRead, DeviceUpdate
from custody.schemas.flag import FlagValueRead
from custody.schemas.history import DeviceFlagHistoryRead, DeviceHistoryRead, HandoverLogRead
from custody.services import device_service
from custody.api.deps import get_current_user, require_admin

router = APIRouter()


async def _detail(db: AsyncSession, device: Device) -> DeviceDetail:
    """Appareil + detenteur + drapeaux / Device with holder and flags."""
    detail = DeviceDetail.model_validate(device)
    rows = await device_service.list_device_flags(db, [device.id])
    detail.flags = [FlagValueRead.model_validate(row) for row in rows]
    return detail


@router.get("/", response_model=list[DeviceRead])
async def list_devices(
    status: DeviceStatus | None = Query(default=None),
    type: DeviceType | None = Query(default=None),
    holder_id: int | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    user: Person = Depends(get_current_user),
):
    """Lister les appareils (filtres statut, type, detenteur) / List devices."""
    query = select(Device).order_by(Device.asset_tag)
    if status is not None:
        query = query.where(Device.status == status)
    if type is not None:
        query = query.where(Device.type == type)
    if holder_id is not None:
        query = query.where(Device.current_holder_id == holder_id)
    result = await db.execute(query)
    return result.scalars().all()


@router.post("/", response_model=DeviceRead, status_code=201)
async def create_device(
    data: DeviceCreate,
    db: AsyncSession = Depends(get_db),
    user: Person = Depends(require_admin),
):
    """Creer un appareil en stock / Create an in-stock device."""
    device = await device_service.create_device(db, data, user.id)
    await db.refresh(device)
    return device


@router.get("/{device_id}", response_model=DeviceDetail)
async def get_device(
    device_id: int,
    db: AsyncSession = Depends(get_db),
    user: Person = Depends(get_current_user),
):
    device = await device_service.get_device(db, device_id)
    return await _detail(db, device)


@router.patch("/{device_id}", response_model=DeviceDetail)
async def update_device(
    device_id: int,
    data: DeviceUpdate,
    db: AsyncSession = Depends(get_db),
    user: Person = Depends(require_admin),
):
    """Modification directe (hors garde) / Direct edit (custody excluded)."""
    device = await device_service.update_device(db, device_id, data, user.id)
    await db.refresh(device)
    return await _detail(db, device)


@router.get("/{device_id}/history", response_model=list[HandoverLogRead])
async def device_handover_history(
    device_id: int,
    db: AsyncSession = Depends(get_db),
    user: Person = Depends(get_current_user),
):
    """Chaine de garde de l'appareil / Device chain of custody."""
    await device_service.get_device(db, device_id)
    result = await db.execute(
        select(HandoverLog).where(HandoverLog.device_id == device_id).order_by(HandoverLog.id.desc())
    )
    return result.scalars().all()


@router.get("/{device_id}/field-history", response_model=list[DeviceHistoryRead])
async def device_field_history(
    device_id: int,
    db: AsyncSession = Depends(get_db),
    user: Person = Depends(get_current_user),
):
    await device_service.get_device(db, device_id)
    result = await db.execute(
        select(DeviceHistory).where(DeviceHistory.device_id == device_id).order_by(DeviceHistory.id.desc())
    )
    return result.scalars().all()


@router.get("/{device_id}/flag-history", response_model=list[DeviceFlagHistoryRead])
async def device_flag_history(
    device_id: int,
    db: AsyncSession = Depends(get_db),
    user: Person = Depends(get_current_user),
):
    await device_service.get_device(db, device_id)
    result = await db.execute(
        select(DeviceFlagHistory)
        .where(DeviceFlagHistory.device_id == device_id)
        .order_by(DeviceFlagHistory.id.desc())
    )
    return result.scalars().all()
