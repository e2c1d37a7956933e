"""
Routes de remise / Handover routes.
ISSUE (stock -> coursier) et RETURN (coursier -> stock), lots et bons de remise.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from custody.config import settings
from custody.database import get_db
from custody.models.handover import HandoverAction, HandoverBatch
from custody.models.person import Person
from custody.rate_limit import limiter
from custody.schemas.handover import HandoverBatchRead, HandoverRequest, HandoverResult, HandoverStatus
from custody.services.handover_service import HandoverService
from custody.services.storage import ObjectStore
from custody.api.deps import get_handover_service, get_object_store, require_admin

router = APIRouter()


async def _perform(
    action: HandoverAction,
    data: HandoverRequest,
    service: HandoverService,
    dispatcher: Person,
    response: Response,
) -> HandoverResult:
    result = await service.perform_handover(
        action,
        data.courier_id,
        data.device_ids,
        data.pin,
        data.signature,
        data.dispatcher_signature,
        data.notes,
        data.device_updates,
        dispatcher,
    )
    # Garde enregistree, bon en attente / Custody recorded, receipt pending
    if result.status == HandoverStatus.DOCUMENT_PENDING:
        response.status_code = status.HTTP_202_ACCEPTED
    return result


@router.post("/issue", response_model=HandoverResult, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_HANDOVER)
async def issue_devices(
    request: Request,
    response: Response,
    data: HandoverRequest,
    service: HandoverService = Depends(get_handover_service),
    user: Person = Depends(require_admin),
):
    """Remettre des appareils a un coursier / Issue devices to a courier."""
    return await _perform(HandoverAction.ISSUE, data, service, user, response)


@router.post("/return", response_model=HandoverResult, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_HANDOVER)
async def return_devices(
    request: Request,
    response: Response,
    data: HandoverRequest,
    service: HandoverService = Depends(get_handover_service),
    user: Person = Depends(require_admin),
):
    """Retour d'appareils par le coursier / Devices returned by the courier."""
    return await _perform(HandoverAction.RETURN, data, service, user, response)


def _batch_read(batch: HandoverBatch, store: ObjectStore) -> HandoverBatchRead:
    read = HandoverBatchRead.model_validate(batch)
    read.document_url = store.public_url(batch.document_path)
    return read


@router.get("/batches", response_model=list[HandoverBatchRead])
async def list_batches(
    courier_id: int | None = Query(default=None),
    action: HandoverAction | None = Query(default=None),
    missing_document: bool = Query(default=False),
    limit: int = Query(default=100, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    user: Person = Depends(require_admin),
):
    """Lister les lots (plus recents d'abord) / List batches, newest first."""
    query = select(HandoverBatch).order_by(HandoverBatch.id.desc())
    if courier_id is not None:
        query = query.where(HandoverBatch.courier_id == courier_id)
    if action is not None:
        query = query.where(HandoverBatch.action_type == action)
    if missing_document:
        query = query.where(HandoverBatch.document_path.is_(None))
    result = await db.execute(query.offset(offset).limit(limit))
    return [_batch_read(batch, store) for batch in result.scalars().all()]


@router.get("/batches/{batch_id}", response_model=HandoverBatchRead)
async def get_batch(
    batch_id: int,
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    user: Person = Depends(require_admin),
):
    batch = await db.get(HandoverBatch, batch_id)
    if not batch:
        raise HTTPException(status_code=404, detail="Handover batch not found")
    return _batch_read(batch, store)


@router.post("/batches/{batch_id}/document", response_model=HandoverResult)
async def regenerate_document(
    batch_id: int,
    service: HandoverService = Depends(get_handover_service),
    user: Person = Depends(require_admin),
):
    """Regenerer un bon manquant / Regenerate a missing receipt."""
    return await service.regenerate_document(batch_id)
