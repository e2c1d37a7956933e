"""Decodage des signatures manuscrites (data URL) / Handwritten signature decoding (data URL)."""

import base64
import binascii
import re
from dataclasses import dataclass

_DATA_URL = re.compile(r"^data:(image/[\w.+-]+);base64,(.+)$", re.DOTALL)


@dataclass(frozen=True)
class SignatureImage:
    content_type: str
    data: bytes

    @property
    def extension(self) -> str:
        return self.content_type.split("/")[-1].replace("jpeg", "jpg").replace("svg+xml", "svg")


def parse_signature(data_url: str | None) -> SignatureImage:
    """Extraire type MIME et octets d'une data URL image / Extract MIME type and bytes from an image data URL.

    Leve ValueError si la charge est vide ou mal formee.
    """
    if not data_url or not data_url.strip():
        raise ValueError("Signature is empty")
    match = _DATA_URL.match(data_url.strip())
    if not match:
        raise ValueError("Invalid signature data")
    content_type, payload = match.groups()
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Invalid signature encoding") from exc
    if not data:
        raise ValueError("Signature is empty")
    return SignatureImage(content_type=content_type, data=data)
