"""
Motor de fotomosaicos que trabaja por mensajes.

El paquete expone la fábrica `create_worker` (ver `mosaic_worker.main`) y
`spawn_worker` para ejecutar el motor en un proceso aislado.
"""

from .main import MosaicWorker, create_worker
from .process import WorkerHandle, spawn_worker

__all__ = ["MosaicWorker", "WorkerHandle", "create_worker", "spawn_worker"]
