"""Service des objets stockes (signatures, bons) / Stored object download (signatures, receipts)."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from custody.models.person import Person
from custody.services.storage import LocalObjectStore, ObjectStore, ObjectStoreError
from custody.api.deps import get_object_store, require_admin

router = APIRouter()

_MEDIA_TYPES = {
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
}


@router.get("/{reference:path}")
async def download_file(
    reference: str,
    store: ObjectStore = Depends(get_object_store),
    user: Person = Depends(require_admin),
):
    """Telecharger un objet stocke / Download a stored object."""
    if not isinstance(store, LocalObjectStore):
        raise HTTPException(status_code=501, detail="File serving requires the local store")
    try:
        path = store.local_path(reference)
    except ObjectStoreError:
        raise HTTPException(status_code=404, detail="File not found")
    if not path.is_file():
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(path, media_type=_MEDIA_TYPES.get(path.suffix.lower(), "application/octet-stream"))
