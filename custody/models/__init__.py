"""
Modèles SQLAlchemy / SQLAlchemy models.
Importer tous les modèles ici pour que Base.metadata les connaisse.
Import all models here so Base.metadata knows every table.
"""

from custody.models.person import Person, PersonRole
from custody.models.device import Device, DeviceStatus, DeviceType
from custody.models.flag import FlagDefinition, FlagValue
from custody.models.handover import HandoverAction, HandoverBatch, HandoverLog
from custody.models.history import DeviceFlagHistory, DeviceHistory
from custody.models.audit import AuditLog

__all__ = [
    "Person",
    "PersonRole",
    "Device",
    "DeviceStatus",
    "DeviceType",
    "FlagDefinition",
    "FlagValue",
    "HandoverAction",
    "HandoverBatch",
    "HandoverLog",
    "DeviceHistory",
    "DeviceFlagHistory",
    "AuditLog",
]
