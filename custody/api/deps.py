"""
Dépendances d'authentification et d'autorisation / Authentication and authorization dependencies.
Injectées dans les routes via Depends().
"""

from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from custody.config import settings
from custody.database import get_db
from custody.models.person import Person, PersonRole
from custody.services.document_renderer import render_handover_document
from custody.services.handover_service import HandoverService
from custody.services.receipt_service import HandoverDocumentPayload
from custody.services.storage import LocalObjectStore, ObjectStore
from custody.utils.auth import decode_token

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Person:
    """Extraire et valider la personne depuis le JWT / Extract and validate the person from the JWT."""
    payload = decode_token(credentials.credentials)
    if payload is None or payload.get("type") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    person_id = int(payload["sub"])
    result = await db.execute(select(Person).where(Person.id == person_id))
    person = result.scalar_one_or_none()

    if person is None or not person.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")

    return person


async def require_admin(user: Person = Depends(get_current_user)) -> Person:
    """Seul un ADMIN actif agit comme dispatcher / Only an active ADMIN acts as dispatcher."""
    if user.role != PersonRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin only")
    return user


def get_object_store() -> ObjectStore:
    return LocalObjectStore(settings.STORAGE_DIR, settings.PUBLIC_BASE_URL)


def get_document_renderer() -> Callable[[HandoverDocumentPayload], bytes]:
    return render_handover_document


async def get_handover_service(
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    renderer: Callable[[HandoverDocumentPayload], bytes] = Depends(get_document_renderer),
) -> HandoverService:
    """Moteur de remise lie a la requete / Request-scoped handover engine."""
    return HandoverService(db, store, renderer)
