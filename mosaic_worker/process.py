"""
Ejecución del trabajador en un proceso aislado.

El proceso hijo no comparte memoria con quien lo invoca: recibe mensajes por
una cola de entrada y publica avance, resultado o error en una cola de salida.
No existe una orden de cancelación; para abortar un trabajo se termina el
proceso y se lanza uno nuevo.
"""

from __future__ import annotations

import asyncio
import multiprocessing
from typing import Any, Iterator, Mapping, Optional

from mosaic_worker.logging_config import configure_logging, get_logger
from mosaic_worker.main import create_worker
from mosaic_worker.models import chunk_messages


LOGGER = get_logger("mosaic_worker.process")

TERMINAL_KEYS = ("mosaicImage", "error")


def is_terminal(message: Mapping[str, Any]) -> bool:
    return any(key in message for key in TERMINAL_KEYS)


def _serve(inbox, outbox, log_level: str) -> None:
    configure_logging(log_level)
    asyncio.run(_serve_async(inbox, outbox))


async def _serve_async(inbox, outbox) -> None:
    loop = asyncio.get_running_loop()
    worker = create_worker(outbox.put)
    try:
        while True:
            message = await loop.run_in_executor(None, inbox.get)
            if message is None:
                break
            await worker.handle(message)
    finally:
        worker.shutdown()
        LOGGER.info("Proceso trabajador detenido")


class WorkerHandle:
    """Extremo del llamador para un trabajador que corre en otro proceso."""

    def __init__(self, process, inbox, outbox) -> None:
        self._process = process
        self._inbox = inbox
        self._outbox = outbox

    @property
    def alive(self) -> bool:
        return self._process.is_alive()

    def post(self, message: Mapping[str, Any]) -> None:
        self._inbox.put(dict(message))

    def send_image(self, data: bytes, chunk_size: int) -> None:
        """Envía una imagen completa partida en fragmentos secuenciales."""
        for message in chunk_messages(data, chunk_size):
            self.post(message)

    def get(self, timeout: Optional[float] = None) -> dict:
        """Devuelve el siguiente mensaje saliente; lanza `queue.Empty` al agotar el tiempo."""
        return self._outbox.get(timeout=timeout)

    def messages(self, timeout: Optional[float] = None) -> Iterator[dict]:
        """Itera los mensajes salientes hasta el primero terminal (resultado o error), incluido."""
        while True:
            message = self.get(timeout=timeout)
            yield message
            if is_terminal(message):
                return

    def close(self, timeout: float = 5.0) -> None:
        if self._process.is_alive():
            self._inbox.put(None)
            self._process.join(timeout)
        if self._process.is_alive():
            LOGGER.warning("El trabajador no se detuvo a tiempo; se termina el proceso")
            self.terminate()

    def terminate(self) -> None:
        self._process.terminate()
        self._process.join()

    def __enter__(self) -> "WorkerHandle":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def spawn_worker(log_level: str = "INFO") -> WorkerHandle:
    """Lanza un proceso trabajador nuevo con su propia sesión."""
    context = multiprocessing.get_context("spawn")
    inbox = context.Queue()
    outbox = context.Queue()
    process = context.Process(target=_serve, args=(inbox, outbox, log_level), name="mosaic-worker", daemon=True)
    process.start()
    LOGGER.info("Proceso trabajador lanzado (pid %s)", process.pid)
    return WorkerHandle(process, inbox, outbox)


__all__ = ["WorkerHandle", "is_terminal", "spawn_worker"]
