"""
Exceptions metier / Domain exceptions.

Chaque erreur porte son code HTTP et un code machine ; le handler de main.py
les convertit en reponse JSON.
Each error carries its HTTP status and machine code; main.py's handler turns
them into JSON responses.
"""

from typing import Any


class CustodyError(Exception):
    """Erreur metier de base / Base domain error."""

    status_code = 400
    code = "custody_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInput(CustodyError):
    """Requete mal formee ou incomplete / Malformed or missing request fields."""

    status_code = 400
    code = "invalid_input"


class AuthError(CustodyError):
    """Echec d'authentification coursier / Courier authentication failure.

    Le message expose est toujours generique pour ne pas reveler quelle
    verification a echoue. The exposed message is always generic.
    """

    status_code = 401
    code = "auth_failed"
    public_message = "Courier authentication failed"


class CourierInvalid(AuthError):
    """Coursier inconnu, inactif ou mauvais role / Unknown, inactive or wrong-role courier."""


class Unauthorized(AuthError):
    """PIN incorrect / PIN mismatch."""


class NotFound(CustodyError):
    status_code = 404
    code = "not_found"


class Conflict(CustodyError):
    status_code = 409
    code = "conflict"


class PreconditionFailed(CustodyError):
    """Etat appareil incompatible avec l'action / Device state does not match the action."""

    status_code = 409
    code = "precondition_failed"


class ValidationFailed(CustodyError):
    """Note obligatoire manquante / Missing mandatory condition note."""

    status_code = 422
    code = "validation_failed"


class StorageFailure(CustodyError):
    """Stockage objet ou rendu indisponible / Object store or renderer unavailable."""

    status_code = 503
    code = "storage_failure"
