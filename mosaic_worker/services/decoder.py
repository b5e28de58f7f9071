"""
Decodificación de los búferes reensamblados a mapas de bits en memoria.

La decodificación es todo o nada: si cualquier búfer no es una imagen válida,
el trabajo completo se aborta.
"""

from __future__ import annotations

from io import BytesIO
from typing import List, Sequence, Tuple

from PIL import Image, UnidentifiedImageError

from mosaic_worker.errors import DecodeError


def decode_image(data: bytes, label: str = "imagen") -> Image.Image:
    """Decodifica un búfer PNG (o compatible) a una imagen RGBA completamente cargada."""
    if not data:
        raise DecodeError(f"La {label} está vacía")
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"La {label} no es una imagen válida: {exc}") from exc
    except (OSError, ValueError, SyntaxError) as exc:
        raise DecodeError(f"No se pudo decodificar la {label}: {exc}") from exc


def decode_buffers(target: bytes, pool: Sequence[bytes]) -> Tuple[Image.Image, List[Image.Image]]:
    """Decodifica la imagen objetivo y las del pool conservando el orden del pool."""
    target_image = decode_image(target, "imagen objetivo")
    pool_images = [
        decode_image(buffer, f"imagen de pool #{index + 1}")
        for index, buffer in enumerate(pool)
    ]
    return target_image, pool_images


__all__ = ["decode_buffers", "decode_image"]
