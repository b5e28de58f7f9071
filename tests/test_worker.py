import asyncio
from io import BytesIO

from PIL import Image

from conftest import BLUE, RED, image_messages, png_bytes, run_worker, solid_image
from mosaic_worker import MosaicWorker
from mosaic_worker.models import SessionPhase
from mosaic_worker.services import decode_data_uri

START = {"action": "start", "tileSize": 20, "colorAdjustment": 1.0}
PROCESS = {"action": "process"}


def job_messages(target, pool, start=START):
    messages = [start, *image_messages(target, chunk_size=50)]
    for image in pool:
        messages.extend(image_messages(image, chunk_size=50))
    messages.append(PROCESS)
    return messages


def errors(posted):
    return [message["error"] for message in posted if "error" in message]


def test_full_job_produces_the_mosaic(checkerboard_target, red_blue_pool):
    worker, posted = run_worker(job_messages(checkerboard_target, red_blue_pool))

    result = posted[-1]
    assert result["percentage"] == 100
    assert errors(posted) == []
    with Image.open(BytesIO(decode_data_uri(result["mosaicImage"]))) as mosaic:
        mosaic = mosaic.convert("RGB")
        assert mosaic.size == (40, 40)
        assert mosaic.getpixel((5, 5)) == RED
        assert mosaic.getpixel((30, 5)) == BLUE
    assert worker.phase is SessionPhase.idle


def test_progress_is_monotonic_and_reaches_100_only_at_the_end(checkerboard_target, red_blue_pool):
    _, posted = run_worker(job_messages(checkerboard_target, red_blue_pool))

    percentages = [message["percentage"] for message in posted if "percentage" in message]
    assert percentages == sorted(percentages)
    assert percentages.count(100) == 1
    assert "mosaicImage" in posted[-1]
    assert [message.get("progress") for message in posted[:3]] == [
        "Target image received. Processing pool images...",
        "Received 1 pool images",
        "Received 2 pool images",
    ]
    assert {"progress": "Processed 4/4 tiles", "percentage": 95} in posted


def test_processing_without_pool_images_fails(checkerboard_target):
    worker, posted = run_worker(job_messages(checkerboard_target, []))

    assert errors(posted) and errors(posted)[0].startswith("ConfigError")
    assert not any("mosaicImage" in message for message in posted)
    assert worker.phase is SessionPhase.idle


def test_zero_tile_size_is_rejected_before_chunks_are_accepted(checkerboard_target, red_blue_pool):
    start = {"action": "start", "tileSize": 0, "colorAdjustment": 1.0}
    _, posted = run_worker(job_messages(checkerboard_target, red_blue_pool, start=start))

    reported = errors(posted)
    assert reported[0].startswith("ConfigError")
    assert all(reason.startswith("StateError") for reason in reported[1:])
    assert not any("mosaicImage" in message for message in posted)


def test_process_on_empty_session_is_a_state_error():
    _, posted = run_worker([PROCESS])
    assert len(posted) == 1
    assert posted[0]["error"].startswith("StateError")


def test_session_is_one_shot(checkerboard_target, red_blue_pool):
    _, posted = run_worker([*job_messages(checkerboard_target, red_blue_pool), PROCESS])

    assert "mosaicImage" in posted[-2]
    assert posted[-1]["error"].startswith("StateError")


def test_clear_replies_with_reset_progress(checkerboard_target):
    worker, posted = run_worker([START, *image_messages(checkerboard_target), {"action": "clear"}])

    assert posted[-1] == {"progress": "Session cleared", "percentage": 0}
    assert worker.phase is SessionPhase.idle


def test_undecodable_target_aborts_the_job(red_blue_pool):
    worker, posted = run_worker(job_messages(b"not a png at all", red_blue_pool))

    assert posted[-1]["error"].startswith("DecodeError")
    assert worker.phase is SessionPhase.idle


def test_target_smaller_than_tile_fails(red_blue_pool):
    target = png_bytes(solid_image((15, 15), RED))
    _, posted = run_worker(job_messages(target, red_blue_pool))
    assert posted[-1]["error"].startswith("ConfigError")


def test_bad_messages_never_crash_the_worker(checkerboard_target, red_blue_pool):
    garbage = ["hello", {"action": "dance"}, {"chunk": b"xx", "start": 4, "end": 6, "total": 6}]
    _, posted = run_worker([*garbage, *job_messages(checkerboard_target, red_blue_pool)])

    reported = errors(posted)
    assert [reason.split(":")[0] for reason in reported] == ["ProtocolError", "ProtocolError", "StateError"]
    assert "mosaicImage" in posted[-1]


def test_out_of_order_chunk_clears_the_session(checkerboard_target):
    chunks = image_messages(checkerboard_target, chunk_size=10)
    _, posted = run_worker([START, chunks[0], chunks[2]])

    assert posted[-1]["error"].startswith("ProtocolError")


def test_messages_during_a_running_job_are_rejected(checkerboard_target, red_blue_pool):
    posted = []
    worker = MosaicWorker(posted.append)

    async def drive():
        for message in job_messages(checkerboard_target, red_blue_pool)[:-1]:
            await worker.handle(message)
        # The job suspends while decoding, so the second message arrives mid-job.
        await asyncio.gather(worker.handle(PROCESS), worker.handle(START))

    asyncio.run(drive())
    worker.shutdown()

    reported = errors(posted)
    assert len(reported) == 1 and reported[0].startswith("StateError")
    assert "mosaicImage" in posted[-1]
