"""
Routes d'authentification / Authentication routes.
Login, refresh token, profil de la personne connectée.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from custody.config import settings
from custody.database import get_db
from custody.models.person import Person, PersonRole
from custody.rate_limit import limiter
from custody.schemas.auth import LoginRequest, RefreshRequest, TokenResponse
from custody.schemas.person import PersonRead
from custody.utils.audit import audit_entry, client_ip
from custody.utils.auth import create_access_token, create_refresh_token, decode_token, verify_password
from custody.api.deps import get_current_user

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.RATE_LIMIT_LOGIN)
async def login(request: Request, data: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Connexion admin par identifiants / Admin login with credentials."""
    result = await db.execute(select(Person).where(Person.email == data.email))
    person = result.scalar_one_or_none()
    ip = client_ip(request)

    if (
        person is None
        or person.role != PersonRole.ADMIN
        or not verify_password(data.password, person.hashed_password)
    ):
        # Journal de tentative échouée / Log failed login attempt
        db.add(audit_entry("auth", 0, "LOGIN_FAILED", {"email": data.email, "ip": ip}, data.email))
        await db.commit()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if not person.is_active:
        db.add(audit_entry("auth", person.id, "LOGIN_DISABLED", {"ip": ip}, person.email))
        await db.commit()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account disabled")

    # Journal de connexion réussie / Log successful login
    db.add(audit_entry("auth", person.id, "LOGIN", {"ip": ip}, person.email))

    return TokenResponse(
        access_token=create_access_token(person.id),
        refresh_token=create_refresh_token(person.id),
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh(data: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Rafraîchir les tokens / Refresh tokens."""
    payload = decode_token(data.refresh_token)
    if payload is None or payload.get("type") != "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    person = await db.get(Person, int(payload["sub"]))
    if person is None or not person.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")

    return TokenResponse(
        access_token=create_access_token(person.id),
        refresh_token=create_refresh_token(person.id),
    )


@router.get("/me", response_model=PersonRead)
async def me(user: Person = Depends(get_current_user)):
    """Profil de la personne connectée / Current person profile."""
    return PersonRead.from_person(user)
