"""
Utilidades de configuración para el motor de fotomosaicos.

Centraliza los parámetros predeterminados del protocolo y del generador para
que el proceso trabajador y quien lo invoca compartan una sola fuente de verdad.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from PIL import Image

from paths import LOG_DIR, OUTPUT_DIR


@dataclass(slots=True)
class Settings:
    """Contenedor de parámetros de ejecución."""

    outputs_dir: Path = OUTPUT_DIR
    logs_dir: Path = LOG_DIR
    default_tile_size: int = 20  # Se usa cuando el mensaje `start` no indica tileSize.
    default_color_blend: float = 1.0  # 1.0 equivale a teselado puro sin relleno plano.
    progress_interval: int = 100  # Teselas procesadas entre mensajes de avance.
    setup_percentage: int = 5
    finalize_percentage: int = 95
    output_format: str = "PNG"
    resample: Image.Resampling = Image.Resampling.BILINEAR
    chunk_size: int = 64 * 1024  # Tamaño de fragmento usado por los clientes que parten archivos.

    def ensure_directories(self) -> None:
        """Crea los directorios grabables si no existen."""
        for directory in (self.outputs_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)


settings = Settings()
settings.ensure_directories()

__all__ = ["settings", "Settings"]
