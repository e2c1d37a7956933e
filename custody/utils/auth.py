"""
Utilitaires d'authentification / Authentication utilities.
Hashing des mots de passe et PIN, gestion des tokens JWT.
Password and PIN hashing, JWT token management.
"""

import re
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from custody.config import settings

PIN_PATTERN = re.compile(r"^[0-9]{4,6}$")


def hash_password(password: str) -> str:
    """Hasher un mot de passe / Hash a password."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Vérifier un mot de passe / Verify a password."""
    if not hashed_password:
        return False
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def is_valid_pin(pin: str | None) -> bool:
    """Syntaxe PIN 4-6 chiffres / 4-6 digit PIN syntax."""
    return bool(pin) and PIN_PATTERN.fullmatch(pin) is not None


def hash_pin(pin: str) -> str:
    """Nouveau hash sale du PIN (creation / reinitialisation uniquement) / New salted PIN hash.

    Appele a la creation d'un coursier ou a la reinitialisation du PIN, jamais a la verification.
    """
    salt = bcrypt.gensalt(rounds=settings.PIN_HASH_ROUNDS)
    return bcrypt.hashpw(pin.encode("utf-8"), salt).decode("utf-8")


def verify_pin(pin: str, stored_hash: str | None) -> bool:
    """Verifier un PIN coursier / Verify a courier PIN.

    Echoue ferme : pas de hash (ou hash illisible) => False, jamais d'exception.
    Fails closed: a missing or unreadable hash returns False, never raises.
    """
    if not stored_hash:
        return False
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), stored_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(person_id: int) -> str:
    """Créer un access token JWT / Create a JWT access token."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": str(person_id), "type": "access", "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(person_id: int) -> str:
    """Créer un refresh token JWT / Create a JWT refresh token."""
    expire = datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    payload = {"sub": str(person_id), "type": "refresh", "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict | None:
    """Décoder un token JWT / Decode a JWT token. Returns None if invalid."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
