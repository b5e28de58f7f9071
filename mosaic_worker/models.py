"""
Esquemas Pydantic de los mensajes que intercambian el trabajador y quien lo invoca.

Los nombres de campo en Python siguen snake_case; los alias conservan los
nombres del protocolo (`tileSize`, `colorAdjustment`, `mosaicImage`).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterator, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError, ProtocolError


class SessionPhase(str, Enum):
    idle = "idle"
    awaiting_target = "awaiting_target"
    receiving_target = "receiving_target"
    awaiting_pool = "awaiting_pool"
    receiving_pool = "receiving_pool"
    ready = "ready"


class StartMessage(BaseModel):
    """
    Inicializa (o reinicia) la sesión.

    Los campos omitidos toman los valores predeterminados de `Settings`.
    """

    model_config = ConfigDict(populate_by_name=True)

    action: Literal["start"] = "start"
    tile_size: Optional[int] = Field(
        None,
        alias="tileSize",
        gt=0,
        description="Longitud del lado en píxeles de cada tesela.",
    )
    color_blend: Optional[float] = Field(
        None,
        alias="colorAdjustment",
        ge=0.0,
        le=1.0,
        description="Opacidad de la tesela elegida frente al relleno plano del color promedio.",
    )


class ClearMessage(BaseModel):
    action: Literal["clear"] = "clear"


class ProcessMessage(BaseModel):
    action: Literal["process"] = "process"


class ChunkMessage(BaseModel):
    """Un fragmento contiguo de la imagen que se está transfiriendo."""

    chunk: bytes
    start: int = Field(0, ge=0)
    end: int
    total: int

    @field_validator("start", mode="before")
    def _missing_start_is_zero(cls, value: Any) -> Any:  # noqa: N805
        # Un `start` ausente o nulo marca el primer fragmento de una imagen nueva.
        return 0 if value is None else value

    @field_validator("chunk", mode="before")
    def _coerce_buffer(cls, value: Any) -> Any:  # noqa: N805
        if isinstance(value, (bytearray, memoryview)):
            return bytes(value)
        return value


class ProgressMessage(BaseModel):
    progress: str
    percentage: Optional[int] = None


class ResultMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mosaic_image: str = Field(alias="mosaicImage", description="Imagen final como data URI.")
    percentage: int = 100


class ErrorMessage(BaseModel):
    error: str


InboundMessage = Union[StartMessage, ClearMessage, ProcessMessage, ChunkMessage]
OutboundMessage = Union[ProgressMessage, ResultMessage, ErrorMessage]

_ACTIONS = {
    "start": StartMessage,
    "clear": ClearMessage,
    "process": ProcessMessage,
}


def _summarize(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "message"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def parse_message(raw: Mapping[str, Any]) -> InboundMessage:
    """Valida un mensaje entrante y devuelve el modelo correspondiente."""
    if not isinstance(raw, Mapping):
        raise ProtocolError(f"Se esperaba un mapeo como mensaje, se recibió {type(raw).__name__}")

    action = raw.get("action")
    if action is None and "chunk" in raw:
        model: type[BaseModel] = ChunkMessage
    else:
        model = _ACTIONS.get(action) if isinstance(action, str) else None  # type: ignore[assignment]
        if model is None:
            raise ProtocolError(f"Acción desconocida: {action!r}")

    try:
        return model.model_validate(dict(raw))
    except ValidationError as exc:
        if model is StartMessage:
            raise ConfigError(f"Parámetros inválidos: {_summarize(exc)}") from exc
        raise ProtocolError(f"Mensaje inválido: {_summarize(exc)}") from exc


def to_wire(message: OutboundMessage) -> dict:
    """Serializa un mensaje saliente con los nombres de campo del protocolo."""
    return message.model_dump(by_alias=True, exclude_none=True)


def chunk_messages(data: bytes, chunk_size: int) -> Iterator[dict]:
    """Parte una imagen en mensajes de fragmento secuenciales listos para enviar."""
    if chunk_size <= 0:
        raise ValueError("chunk_size debe ser positivo")
    total = len(data)
    if total == 0:
        raise ValueError("No se puede transferir una imagen vacía")
    for start in range(0, total, chunk_size):
        end = min(start + chunk_size, total)
        yield {"chunk": bytes(data[start:end]), "start": start, "end": end, "total": total}


__all__ = [
    "ChunkMessage",
    "ClearMessage",
    "ErrorMessage",
    "InboundMessage",
    "OutboundMessage",
    "ProcessMessage",
    "ProgressMessage",
    "ResultMessage",
    "SessionPhase",
    "StartMessage",
    "chunk_messages",
    "parse_message",
    "to_wire",
]
