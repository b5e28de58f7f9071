"""
Canalización de un trabajo de fotomosaico: decodificar, ensamblar y codificar.

La decodificación y la codificación se esperan en un ejecutor de un solo hilo;
el recorrido de teselas corre de forma síncrona hasta terminar y emite su
avance en línea.
"""

from __future__ import annotations

import asyncio
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import mosaic_assembler

from mosaic_worker.config import Settings, settings as default_settings
from mosaic_worker.logging_config import get_logger

from .decoder import decode_buffers
from .encoder import encode_canvas
from .reporter import ProgressReporter
from .session import Session


LOGGER = get_logger("mosaic_worker.pipeline")


class MosaicPipeline:
    """Ejecuta las etapas de un trabajo sobre los búferes de una sesión."""

    def __init__(self, config: Optional[Settings] = None) -> None:
        self._settings = config or default_settings
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mosaic")

    async def run(self, session: Session, target: bytes, pool: List[bytes], reporter: ProgressReporter) -> str:
        """Devuelve el mosaico codificado como data URI."""
        loop = asyncio.get_running_loop()
        overall_start = time.perf_counter()

        reporter.preparing()
        target_image, pool_images = await loop.run_in_executor(self._executor, decode_buffers, target, pool)
        LOGGER.info(
            "Decodificadas objetivo %sx%s y %s imagenes de pool",
            target_image.width,
            target_image.height,
            len(pool_images),
        )

        reporter.generating()
        assembly_start = time.perf_counter()
        assembler = mosaic_assembler.MosaicAssembler(
            tile_size=session.tile_size,
            color_blend=session.color_blend,
            progress_callback=reporter.tiles,
            progress_interval=self._settings.progress_interval,
            resample=self._settings.resample,
        )
        canvas = assembler.build(target_image, pool_images)
        assembly_duration = time.perf_counter() - assembly_start

        stats = assembler.get_mosaic_stats()
        LOGGER.info(
            "Mosaico %sx%s teselas, %s imagenes distintas usadas",
            stats["grid_size"][0],
            stats["grid_size"][1],
            stats["unique_images"],
        )

        reporter.finalizing()
        data_uri = await loop.run_in_executor(
            self._executor, encode_canvas, canvas, self._settings.output_format
        )

        total_duration = time.perf_counter() - overall_start
        LOGGER.info(
            "Trabajo completado en %.2fs (ensamblado %.2fs, %s bytes codificados)",
            total_duration,
            assembly_duration,
            len(data_uri),
        )
        return data_uri

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)


__all__ = ["MosaicPipeline"]
