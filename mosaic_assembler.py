"""
Ensamblador de fotomosaicos por color promedio.

Recorre el lienzo de trabajo tesela por tesela (filas primero), elige la imagen
del pool con el color promedio más cercano y la compone mezclada con un
relleno plano del color promedio de la tesela.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from color_analyzer import ColorAnalyzer, RGBColor
from mosaic_worker.errors import ConfigError


ProgressCallback = Callable[[int, int, str], None]


class MosaicAssembler:
    """Construye el lienzo final a partir del objetivo y las imágenes del pool."""

    def __init__(self,
                 tile_size: int,
                 color_blend: float = 1.0,
                 progress_callback: Optional[ProgressCallback] = None,
                 progress_interval: int = 100,
                 resample: Image.Resampling = Image.Resampling.BILINEAR):
        if isinstance(tile_size, bool) or not isinstance(tile_size, int) or tile_size <= 0:
            raise ConfigError(f"El tamaño de tesela debe ser un entero positivo, se recibió {tile_size!r}")
        if not 0.0 <= color_blend <= 1.0:
            raise ConfigError(f"La mezcla de color debe estar en [0, 1], se recibió {color_blend!r}")
        self.tile_size = tile_size
        self.color_blend = float(color_blend)
        self.progress_callback = progress_callback
        self.progress_interval = max(1, progress_interval)
        self.resample = resample
        self.mosaic_description: List[List[int]] = []

    @staticmethod
    def canvas_size(width: int, height: int, tile_size: int) -> Tuple[int, int]:
        """Mayores múltiplos de `tile_size` que no exceden las dimensiones dadas."""
        return (width // tile_size) * tile_size, (height // tile_size) * tile_size

    def build(self, target: Image.Image, pool: Sequence[Image.Image]) -> Image.Image:
        if not pool:
            raise ConfigError("El pool de imágenes está vacío; no hay candidatos para las teselas")

        tile = self.tile_size
        width, height = self.canvas_size(target.width, target.height, tile)
        if width == 0 or height == 0:
            raise ConfigError(
                f"La imagen objetivo ({target.width}x{target.height}) es más pequeña que una tesela de {tile}px"
            )

        canvas = target.convert("RGBA").resize((width, height), self.resample)
        # Los colores del pool no cambian durante el trabajo: se calculan una sola vez.
        pool_colors = ColorAnalyzer.get_average_colors(pool)
        textures: Dict[int, Image.Image] = {}

        total_tiles = (width // tile) * (height // tile)
        processed = 0
        self.mosaic_description = []

        for y in range(0, height, tile):
            row_description: List[int] = []
            for x in range(0, width, tile):
                box = (x, y, x + tile, y + tile)
                region = canvas.crop(box)
                average = ColorAnalyzer.get_average_color_from_rgba(np.asarray(region))
                index = ColorAnalyzer.best_match_index(average, pool_colors)

                texture = textures.get(index)
                if texture is None:
                    texture = pool[index].convert("RGBA").resize((tile, tile), self.resample)
                    textures[index] = texture

                canvas.paste(self._composite(region, texture, average), box)
                row_description.append(index)

                processed += 1
                if self.progress_callback and (processed % self.progress_interval == 0 or processed == total_tiles):
                    self.progress_callback(processed, total_tiles, f"Processed {processed}/{total_tiles} tiles")

            self.mosaic_description.append(row_description)

        return canvas

    def _composite(self, region: Image.Image, texture: Image.Image, average: RGBColor) -> Image.Image:
        """Dibuja la textura con opacidad `color_blend` y encima el color plano con `1 - color_blend`."""
        drawn = Image.blend(region, texture, self.color_blend)
        flat = Image.new("RGBA", region.size, tuple(int(round(channel)) for channel in average) + (255,))
        return Image.blend(drawn, flat, 1.0 - self.color_blend)

    def get_mosaic_stats(self) -> Dict[str, Any]:
        usage = Counter(index for row in self.mosaic_description for index in row)
        rows = len(self.mosaic_description)
        cols = len(self.mosaic_description[0]) if rows else 0
        return {
            "grid_size": (cols, rows),
            "total_tiles": rows * cols,
            "unique_images": len(usage),
            "usage": dict(sorted(usage.items())),
        }


__all__ = ["MosaicAssembler"]
