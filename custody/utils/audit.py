"""Journal de sécurité / Security audit trail helpers."""

import json
from datetime import datetime, timezone

from fastapi import Request

from custody.models.audit import AuditLog


def client_ip(request: Request) -> str:
    """Extraire l'IP client / Extract client IP (supports X-Forwarded-For behind proxy)."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def audit_entry(entity_type: str, entity_id: int, action: str, changes: dict | None, user: str | None) -> AuditLog:
    """Ligne d'audit horodatée / Timestamped audit row."""
    return AuditLog(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        changes=json.dumps(changes) if changes else None,
        user=user,
        timestamp=datetime.now(timezone.utc).isoformat(timespec="seconds"),
    )
