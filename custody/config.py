"""
Configuration de l'application / Application configuration.
Utilise pydantic-settings pour charger depuis .env ou variables d'environnement.
"""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Device Custody Tracker"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = True

    # Database - SQLite par défaut pour le développement
    # Database - SQLite by default for development
    DATABASE_URL: str = "sqlite+aiosqlite:///./custody.db"

    # CORS - origines autorisées / allowed origins
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # JWT Authentication
    SECRET_KEY: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_LOGIN: str = "5/minute"
    RATE_LIMIT_HANDOVER: str = "10/minute"

    # Hachage des PIN coursiers / Courier PIN hashing (bcrypt cost factor)
    PIN_HASH_ROUNDS: int = 12

    # Stockage objets (signatures, bons) / Object storage (signatures, receipts)
    STORAGE_DIR: Path = Path("data/storage")
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    SIGNATURE_BUCKET: str = "signatures"
    HANDOVER_DOCUMENTS_BUCKET: str = "handover-documents"

    # Bon de remise / Handover receipt
    HANDOVER_DOCUMENT_LOCATION: str = "-"
    HANDOVER_DATE_FORMAT: str = "%Y-%m-%d"

    # Compte admin initial / First-run admin account
    SEED_ADMIN_EMAIL: str = "admin@custody.local"
    SEED_ADMIN_PASSWORD: str = "admin"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
