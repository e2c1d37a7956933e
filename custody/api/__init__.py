"""Routes API / API routes."""

from fastapi import APIRouter

from custody.api import (
    auth,
    users,
    devices,
    device_flags,
    handover,
    audit,
    files,
)

api_router = APIRouter(prefix="/api")

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(devices.router, prefix="/devices", tags=["devices"])
api_router.include_router(device_flags.router, prefix="/device-flags", tags=["device-flags"])
api_router.include_router(handover.router, prefix="/handover", tags=["handover"])
api_router.include_router(audit.router, prefix="/audit", tags=["audit"])
api_router.include_router(files.router, prefix="/files", tags=["files"])
