"""
Stockage objet (signatures, bons de remise) / Object storage (signatures, receipts).

Une reference est le chemin "<bucket>/<cle>" ; public_url la transforme en URL servie par /api/files.
A reference is the "<bucket>/<key>" path; public_url turns it into a URL served by /api/files.
"""

import logging
from pathlib import Path

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)


class ObjectStoreError(Exception):
    """Stockage indisponible ou objet introuvable / Store unavailable or object missing."""


class ObjectStore:
    """Interface du stockage objet / Object store interface."""

    async def put(self, bucket: str, key: str, data: bytes, content_type: str, upsert: bool = False) -> str:
        raise NotImplementedError

    async def get(self, reference: str) -> bytes:
        raise NotImplementedError

    async def delete(self, reference: str) -> None:
        raise NotImplementedError

    def public_url(self, reference: str | None) -> str | None:
        raise NotImplementedError


class LocalObjectStore(ObjectStore):
    """Stockage sur disque local / Local filesystem storage."""

    def __init__(self, root: Path, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _path(self, reference: str) -> Path:
        root = self.root.resolve()
        path = (root / reference).resolve()
        # Refuser toute sortie du repertoire racine / Reject anything outside the root
        if root not in path.parents:
            raise ObjectStoreError(f"Invalid object reference: {reference}")
        return path

    async def put(self, bucket: str, key: str, data: bytes, content_type: str, upsert: bool = False) -> str:
        reference = f"{bucket}/{key}"
        path = self._path(reference)
        if path.exists() and not upsert:
            raise ObjectStoreError(f"Object already exists: {reference}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)
        except OSError as exc:
            raise ObjectStoreError(f"Cannot write {reference}: {exc}") from exc
        logger.debug("Stored %s (%d bytes, %s)", reference, len(data), content_type)
        return reference

    async def get(self, reference: str) -> bytes:
        path = self._path(reference)
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except OSError as exc:
            raise ObjectStoreError(f"Cannot read {reference}: {exc}") from exc

    async def delete(self, reference: str) -> None:
        path = self._path(reference)
        try:
            if path.exists():
                await aiofiles.os.remove(path)
        except OSError as exc:
            raise ObjectStoreError(f"Cannot delete {reference}: {exc}") from exc

    def public_url(self, reference: str | None) -> str | None:
        if not reference:
            return None
        return f"{self.base_url}/api/files/{reference}"

    def local_path(self, reference: str) -> Path:
        """Chemin disque pour FileResponse / Disk path for FileResponse."""
        return self._path(reference)
