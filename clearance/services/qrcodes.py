"""Scannable codes for subject identity display."""

import base64
import json
from datetime import datetime, timezone
from typing import Protocol

import qrcode
from qrcode.image.svg import SvgPathImage


class ScannableCodeGenerator(Protocol):
    """Encodes a payload into image data."""

    media_type: str

    def encode(self, payload: bytes) -> bytes:
        ...


class QrCodeGenerator:
    """QR codes rendered as SVG."""

    media_type = "image/svg+xml"

    def encode(self, payload: bytes) -> bytes:
        image = qrcode.make(payload, image_factory=SvgPathImage)
        return image.to_string()


def identity_payload(subject_id: str) -> bytes:
    """Payload identifying a subject at a point in time."""
    timestamp = int(datetime.now(timezone.utc).timestamp() * 1000)
    return json.dumps({"subject_id": subject_id, "timestamp": timestamp}).encode("utf-8")


def to_data_url(image: bytes, media_type: str) -> str:
    return f"data:{media_type};base64,{base64.b64encode(image).decode('ascii')}"
