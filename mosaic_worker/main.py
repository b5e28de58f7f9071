"""
Instancia del trabajador de fotomosaicos y despacho de mensajes.

Cada instancia posee su propia sesión; la comunicación con quien la invoca es
exclusivamente por mensajes: `handle()` recibe diccionarios entrantes y
`post` recibe los diccionarios salientes (avance, resultado o error).
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from mosaic_worker.config import Settings, settings as default_settings
from mosaic_worker.errors import MosaicError, StateError
from mosaic_worker.logging_config import get_logger
from mosaic_worker.models import (
    ChunkMessage,
    ClearMessage,
    ErrorMessage,
    ProcessMessage,
    ProgressMessage,
    SessionPhase,
    StartMessage,
    parse_message,
    to_wire,
)
from mosaic_worker.services import MosaicPipeline, ProgressReporter, SessionManager


LOGGER = get_logger("mosaic_worker.worker")

Poster = Callable[[dict], None]


class MosaicWorker:
    """Motor de fotomosaicos con un solo trabajo en curso por instancia."""

    def __init__(self, post: Poster, config: Optional[Settings] = None) -> None:
        self._post = post
        self._settings = config or default_settings
        self._sessions = SessionManager(notify=self._notify)
        self._pipeline = MosaicPipeline(self._settings)
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def phase(self) -> SessionPhase:
        return self._sessions.phase

    async def handle(self, raw: Mapping[str, Any]) -> None:
        """Procesa un mensaje entrante. Nunca propaga excepciones."""
        if self._busy:
            # El trabajo en curso conserva sus búferes; solo se rechaza el mensaje.
            error = StateError("Hay un mosaico en proceso; espera su mensaje final antes de enviar otro")
            LOGGER.warning("Mensaje rechazado durante un trabajo: %s", error)
            self._post(to_wire(ErrorMessage(error=error.describe())))
            return

        try:
            message = parse_message(raw)
            if isinstance(message, ChunkMessage):
                self._sessions.receive_chunk(message.chunk, message.start, message.end, message.total)
            elif isinstance(message, StartMessage):
                self._start(message)
            elif isinstance(message, ClearMessage):
                self._sessions.clear()
                LOGGER.info("Sesion limpiada")
            elif isinstance(message, ProcessMessage):
                await self._process()
        except MosaicError as exc:
            LOGGER.warning("Trabajo abortado: %s", exc.describe())
            self._fail(exc.describe())
        except Exception as exc:
            LOGGER.exception("Fallo inesperado en el trabajador: %s", exc)
            self._fail(f"{type(exc).__name__}: {exc}")

    def shutdown(self) -> None:
        self._sessions.release()
        self._pipeline.shutdown()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _start(self, message: StartMessage) -> None:
        tile_size = message.tile_size if message.tile_size is not None else self._settings.default_tile_size
        color_blend = message.color_blend if message.color_blend is not None else self._settings.default_color_blend
        self._sessions.start(tile_size, color_blend)

    async def _process(self) -> None:
        target, pool = self._sessions.take_buffers()
        session = self._sessions.session
        assert session is not None  # for type-checkers

        LOGGER.info("Iniciando mosaico con %s imagenes de pool", len(pool))
        reporter = ProgressReporter(
            self._post,
            setup_percentage=self._settings.setup_percentage,
            finalize_percentage=self._settings.finalize_percentage,
        )
        self._busy = True
        try:
            data_uri = await self._pipeline.run(session, target, pool, reporter)
        finally:
            self._busy = False

        reporter.complete(data_uri)
        self._sessions.release()

    def _notify(self, message: str, percentage: Optional[int]) -> None:
        self._post(to_wire(ProgressMessage(progress=message, percentage=percentage)))

    def _fail(self, reason: str) -> None:
        self._post(to_wire(ErrorMessage(error=reason)))
        self._sessions.release()


def create_worker(post: Poster, config: Optional[Settings] = None) -> MosaicWorker:
    LOGGER.info("Inicializando trabajador de fotomosaicos")
    return MosaicWorker(post, config=config)


__all__ = ["MosaicWorker", "create_worker"]
