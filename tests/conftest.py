from __future__ import annotations

import asyncio
from io import BytesIO
from typing import Iterable, List, Tuple

import pytest
from PIL import Image

from mosaic_worker import MosaicWorker
from mosaic_worker.models import chunk_messages

RED = (255, 0, 0)
BLUE = (0, 0, 255)


def png_bytes(image: Image.Image) -> bytes:
    buffer = BytesIO()
    image.save(buffer, "PNG")
    return buffer.getvalue()


def solid_image(size: Tuple[int, int], color: Tuple[int, int, int]) -> Image.Image:
    return Image.new("RGB", size, color)


def quadrant_image(size: int, top_left, top_right, bottom_left, bottom_right) -> Image.Image:
    half = size // 2
    image = Image.new("RGB", (size, size))
    image.paste(top_left, (0, 0, half, half))
    image.paste(top_right, (half, 0, size, half))
    image.paste(bottom_left, (0, half, half, size))
    image.paste(bottom_right, (half, half, size, size))
    return image


def image_messages(data: bytes, chunk_size: int = 64) -> List[dict]:
    return list(chunk_messages(data, chunk_size))


def run_worker(messages: Iterable[dict], worker: MosaicWorker | None = None):
    posted: List[dict] = []
    worker = worker or MosaicWorker(posted.append)

    async def drive() -> None:
        for message in messages:
            await worker.handle(message)

    asyncio.run(drive())
    worker.shutdown()
    return worker, posted


@pytest.fixture
def checkerboard_target() -> bytes:
    return png_bytes(quadrant_image(40, RED, BLUE, BLUE, RED))


@pytest.fixture
def red_blue_pool() -> List[bytes]:
    return [png_bytes(solid_image((10, 10), RED)), png_bytes(solid_image((10, 10), BLUE))]
