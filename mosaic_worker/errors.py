"""
Jerarquía de errores del motor de fotomosaicos.

Todos los errores son terminales para el trabajo en curso: el trabajador los
convierte en un único mensaje de error y libera los búferes de la sesión.
"""

from __future__ import annotations


class MosaicError(Exception):
    """Base de los errores que el trabajador reporta a quien lo invoca."""

    @property
    def kind(self) -> str:
        return type(self).__name__

    def describe(self) -> str:
        return f"{self.kind}: {self}"


class ConfigError(MosaicError):
    """Tamaño de tesela inválido, pool vacío o lienzo degenerado."""


class ProtocolError(MosaicError):
    """Fragmentos mal formados o fuera de secuencia."""


class DecodeError(MosaicError):
    """Bytes de imagen corruptos o en un formato no soportado."""


class StateError(MosaicError):
    """Acción recibida en un estado de sesión que no la admite."""


class EncodeError(MosaicError):
    """Fallo al serializar el lienzo final."""


__all__ = [
    "ConfigError",
    "DecodeError",
    "EncodeError",
    "MosaicError",
    "ProtocolError",
    "StateError",
]
