"""
Emisión de mensajes de avance y de resultado para un trabajo de mosaico.

Reparto de porcentajes: la preparación ocupa 0-5 %, el recorrido de teselas
se proyecta sobre 5-95 % y la finalización sobre 95-100 %. El 100 % solo
aparece en el mensaje terminal de éxito.
"""

from __future__ import annotations

from typing import Callable, Optional

from mosaic_worker.models import ProgressMessage, ResultMessage, to_wire


Poster = Callable[[dict], None]


class ProgressReporter:
    """Publica el avance de un único trabajo con porcentajes no decrecientes."""

    def __init__(self, post: Poster, setup_percentage: int = 5, finalize_percentage: int = 95) -> None:
        if not 0 <= setup_percentage <= finalize_percentage < 100:
            raise ValueError("Se requiere 0 <= setup_percentage <= finalize_percentage < 100")
        self._post = post
        self._setup = setup_percentage
        self._finalize = finalize_percentage
        self._last = 0

    @property
    def last_percentage(self) -> int:
        return self._last

    def progress(self, message: str, percentage: Optional[int] = None) -> None:
        if percentage is not None:
            percentage = max(self._last, min(int(percentage), 99))
            self._last = percentage
        self._post(to_wire(ProgressMessage(progress=message, percentage=percentage)))

    def preparing(self, message: str = "Processing images...") -> None:
        self.progress(message, 0)

    def generating(self, message: str = "Generating mosaic...") -> None:
        self.progress(message, self._setup)

    def tiles(self, processed: int, total: int, message: str) -> None:
        """Callback del ensamblador: proyecta teselas procesadas sobre el tramo central."""
        fraction = processed / total if total > 0 else 1.0
        span = self._finalize - self._setup
        self.progress(message, self._setup + int(span * fraction))

    def finalizing(self, message: str = "Finalizing mosaic...") -> None:
        self.progress(message, self._finalize)

    def complete(self, data_uri: str) -> None:
        self._last = 100
        self._post(to_wire(ResultMessage(mosaic_image=data_uri, percentage=100)))


__all__ = ["ProgressReporter"]
