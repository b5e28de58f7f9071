"""Serialización del lienzo final a un data URI autodescriptivo."""

from __future__ import annotations

import base64
from io import BytesIO

from PIL import Image

from mosaic_worker.config import settings
from mosaic_worker.errors import EncodeError


def encode_canvas(canvas: Image.Image, image_format: str | None = None) -> str:
    """Codifica el lienzo y lo devuelve como `data:<mime>;base64,<datos>`."""
    image_format = (image_format or settings.output_format).upper()
    Image.init()
    mime_type = Image.MIME.get(image_format)
    if mime_type is None:
        raise EncodeError(f"Formato de salida no soportado: {image_format}")

    if image_format in {"JPEG", "BMP"} and canvas.mode == "RGBA":
        canvas = canvas.convert("RGB")

    buffer = BytesIO()
    try:
        canvas.save(buffer, image_format)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodeError(f"No se pudo codificar el mosaico como {image_format}: {exc}") from exc

    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def decode_data_uri(data_uri: str) -> bytes:
    """Recupera los bytes de imagen contenidos en un data URI base64."""
    header, _, payload = data_uri.partition(",")
    if not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("El data URI no tiene el formato data:<mime>;base64,<datos>")
    return base64.b64decode(payload)


__all__ = ["decode_data_uri", "encode_canvas"]
