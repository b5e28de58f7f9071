"""
Sesión del trabajador y reensamblado de transferencias fragmentadas.

La imagen objetivo llega primero y después las imágenes del pool, una tras
otra y sin intercalarse. Cada imagen se transfiere en fragmentos secuenciales:
el primero (offset 0) reserva un búfer de exactamente `total` bytes y los
siguientes escriben en su offset hasta cubrirlo por completo.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from mosaic_worker.errors import ConfigError, ProtocolError, StateError
from mosaic_worker.logging_config import get_logger
from mosaic_worker.models import SessionPhase


LOGGER = get_logger("mosaic_worker.session")

ProgressNotifier = Callable[[str, Optional[int]], None]


@dataclass
class ChunkedTransfer:
    """Búfer preasignado de una imagen que se recibe por fragmentos."""

    total: int
    buffer: bytearray = field(init=False)
    received: int = 0

    def __post_init__(self) -> None:
        if self.total <= 0:
            raise ProtocolError(f"Tamaño total inválido para la transferencia: {self.total}")
        self.buffer = bytearray(self.total)

    @property
    def complete(self) -> bool:
        return self.received == self.total

    def write(self, payload: bytes, offset: int, end: int, total: int) -> None:
        if total != self.total:
            raise ProtocolError(
                f"El fragmento declara total={total} pero la transferencia en curso tiene {self.total}"
            )
        if offset != self.received:
            raise ProtocolError(
                f"Fragmento fuera de orden: se esperaba offset {self.received}, llegó {offset}"
            )
        self.buffer[offset:end] = payload
        self.received = end

    def to_bytes(self) -> bytes:
        return bytes(self.buffer)


@dataclass
class Session:
    """Estado de un trabajo: parámetros y búferes en exclusiva del trabajador."""

    tile_size: int
    color_blend: float
    target: Optional[ChunkedTransfer] = None
    pool: List[ChunkedTransfer] = field(default_factory=list)

    def in_progress(self) -> Optional[ChunkedTransfer]:
        """Devuelve la transferencia que todavía se está llenando, si existe."""
        if self.target is not None and not self.target.complete:
            return self.target
        if self.pool and not self.pool[-1].complete:
            return self.pool[-1]
        return None


class SessionManager:
    """Acumula los fragmentos entrantes en la sesión activa."""

    def __init__(self, notify: ProgressNotifier) -> None:
        self._notify = notify
        self._session: Optional[Session] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def phase(self) -> SessionPhase:
        session = self._session
        if session is None:
            return SessionPhase.idle
        if session.target is None:
            return SessionPhase.awaiting_target
        if not session.target.complete:
            return SessionPhase.receiving_target
        if session.pool and not session.pool[-1].complete:
            return SessionPhase.receiving_pool
        if session.pool:
            return SessionPhase.ready
        return SessionPhase.awaiting_pool

    def start(self, tile_size: int, color_blend: float) -> Session:
        """Descarta cualquier búfer previo y guarda los parámetros del trabajo."""
        self._session = None
        if isinstance(tile_size, bool) or not isinstance(tile_size, int) or tile_size <= 0:
            raise ConfigError(f"El tamaño de tesela debe ser un entero positivo, se recibió {tile_size!r}")
        if not 0.0 <= color_blend <= 1.0:
            raise ConfigError(f"colorAdjustment debe estar en [0, 1], se recibió {color_blend!r}")
        self._session = Session(tile_size=tile_size, color_blend=float(color_blend))
        LOGGER.info("Sesion iniciada (tesela=%s, mezcla=%.2f)", tile_size, color_blend)
        return self._session

    def clear(self) -> None:
        """Libera los búferes y notifica el reinicio; se puede llamar varias veces."""
        self.release()
        self._notify("Session cleared", 0)

    def release(self) -> None:
        """Libera los búferes sin emitir mensajes (fin de un trabajo)."""
        if self._session is not None:
            LOGGER.debug("Liberando bufers de la sesion")
        self._session = None

    def receive_chunk(self, payload: bytes, offset: int, end: int, total: int) -> None:
        session = self._session
        if session is None:
            raise StateError("La sesión no está iniciada; envía un mensaje start antes de los fragmentos")
        if not 0 <= offset < end <= total:
            raise ProtocolError(f"Rango de fragmento inválido: start={offset}, end={end}, total={total}")
        if len(payload) != end - offset:
            raise ProtocolError(
                f"El fragmento trae {len(payload)} bytes pero declara el rango {offset}..{end}"
            )

        current = session.in_progress()
        if offset == 0:
            if current is not None:
                raise ProtocolError("Llegó el inicio de una imagen nueva antes de completar la anterior")
            current = ChunkedTransfer(total=total)
            if session.target is None:
                session.target = current
            else:
                session.pool.append(current)
        elif current is None:
            raise ProtocolError(
                f"Fragmento de continuación (offset {offset}) sin un fragmento inicial previo"
            )

        current.write(payload, offset, end, total)
        if end != total:
            return

        if current is session.target:
            LOGGER.debug("Imagen objetivo recibida (%s bytes)", total)
            self._notify("Target image received. Processing pool images...", None)
        else:
            LOGGER.debug("Imagen de pool %s recibida (%s bytes)", len(session.pool), total)
            self._notify(f"Received {len(session.pool)} pool images", None)

    def take_buffers(self) -> Tuple[bytes, List[bytes]]:
        """Devuelve los bytes de la imagen objetivo y del pool si la sesión está lista."""
        phase = self.phase
        if phase is SessionPhase.awaiting_pool:
            raise ConfigError("El pool de imágenes está vacío; no hay candidatos para las teselas")
        if phase is not SessionPhase.ready:
            raise StateError(f"No se puede procesar en el estado '{phase.value}'")
        session = self._session
        assert session is not None and session.target is not None  # for type-checkers
        return session.target.to_bytes(), [transfer.to_bytes() for transfer in session.pool]


__all__ = ["ChunkedTransfer", "Session", "SessionManager"]
