import random

import pytest

from mosaic_worker.errors import ConfigError, ProtocolError, StateError
from mosaic_worker.models import SessionPhase
from mosaic_worker.services import ChunkedTransfer, SessionManager


@pytest.fixture
def events():
    return []


@pytest.fixture
def manager(events):
    manager = SessionManager(notify=lambda message, percentage: events.append((message, percentage)))
    manager.start(tile_size=20, color_blend=1.0)
    return manager


def feed(manager, data, cuts):
    bounds = [0, *cuts, len(data)]
    for start, end in zip(bounds, bounds[1:]):
        manager.receive_chunk(data[start:end], start, end, len(data))


def random_cuts(rng, length):
    return sorted(rng.sample(range(1, length), k=min(5, length - 1)))


def test_chunks_reassemble_target_and_pool_exactly(manager):
    rng = random.Random(1234)
    target = bytes(rng.randrange(256) for _ in range(997))
    pool = [bytes(rng.randrange(256) for _ in range(n)) for n in (1, 64, 513)]

    feed(manager, target, random_cuts(rng, len(target)))
    for image in pool:
        feed(manager, image, random_cuts(rng, len(image)) if len(image) > 1 else [])

    assert manager.take_buffers() == (target, pool)


def test_completed_transfers_report_progress(manager, events):
    feed(manager, b"target-bytes", [3])
    feed(manager, b"first", [])
    feed(manager, b"second", [2, 4])

    assert events == [
        ("Target image received. Processing pool images...", None),
        ("Received 1 pool images", None),
        ("Received 2 pool images", None),
    ]


def test_phase_follows_the_transfers(manager):
    assert manager.phase is SessionPhase.awaiting_target
    manager.receive_chunk(b"ab", 0, 2, 4)
    assert manager.phase is SessionPhase.receiving_target
    manager.receive_chunk(b"cd", 2, 4, 4)
    assert manager.phase is SessionPhase.awaiting_pool
    manager.receive_chunk(b"x", 0, 1, 3)
    assert manager.phase is SessionPhase.receiving_pool
    manager.receive_chunk(b"yz", 1, 3, 3)
    assert manager.phase is SessionPhase.ready


def test_continuation_before_initiating_chunk_is_rejected(manager):
    with pytest.raises(ProtocolError):
        manager.receive_chunk(b"cd", 2, 4, 4)
    assert manager.session.target is None


def test_out_of_order_chunk_is_rejected(manager):
    manager.receive_chunk(b"ab", 0, 2, 6)
    with pytest.raises(ProtocolError):
        manager.receive_chunk(b"ef", 4, 6, 6)


def test_new_image_cannot_start_while_another_is_filling(manager):
    manager.receive_chunk(b"ab", 0, 2, 6)
    with pytest.raises(ProtocolError):
        manager.receive_chunk(b"zz", 0, 2, 2)


@pytest.mark.parametrize(
    "payload,start,end,total",
    [
        (b"abc", 0, 2, 4),  # payload longer than the declared range
        (b"", 0, 0, 4),  # empty range
        (b"abcde", 0, 5, 4),  # range past the end of the image
    ],
)
def test_malformed_chunks_are_rejected(manager, payload, start, end, total):
    with pytest.raises(ProtocolError):
        manager.receive_chunk(payload, start, end, total)


def test_continuation_with_different_total_is_rejected(manager):
    manager.receive_chunk(b"ab", 0, 2, 4)
    with pytest.raises(ProtocolError):
        manager.receive_chunk(b"cd", 2, 4, 5)


def test_chunks_require_a_started_session(events):
    manager = SessionManager(notify=lambda *args: events.append(args))
    with pytest.raises(StateError):
        manager.receive_chunk(b"ab", 0, 2, 2)


@pytest.mark.parametrize("tile_size,color_blend", [(0, 1.0), (-5, 0.5), (20, 1.5), (20, -0.1)])
def test_start_validates_parameters(manager, tile_size, color_blend):
    with pytest.raises(ConfigError):
        manager.start(tile_size=tile_size, color_blend=color_blend)
    assert manager.phase is SessionPhase.idle


def test_start_discards_previous_buffers(manager):
    feed(manager, b"target", [])
    manager.start(tile_size=10, color_blend=0.25)
    assert manager.phase is SessionPhase.awaiting_target
    assert manager.session.tile_size == 10
    assert manager.session.color_blend == 0.25


def test_clear_is_idempotent(manager, events):
    feed(manager, b"target", [])
    events.clear()
    manager.clear()
    manager.clear()
    assert manager.phase is SessionPhase.idle
    assert events == [("Session cleared", 0), ("Session cleared", 0)]


def test_take_buffers_without_pool_is_a_config_error(manager):
    feed(manager, b"target", [])
    with pytest.raises(ConfigError):
        manager.take_buffers()


@pytest.mark.parametrize("prefix", [b"", b"partial"])
def test_take_buffers_requires_ready_session(manager, prefix):
    if prefix:
        manager.receive_chunk(prefix, 0, len(prefix), len(prefix) + 10)
    with pytest.raises(StateError):
        manager.take_buffers()


def test_transfer_rejects_non_positive_total():
    with pytest.raises(ProtocolError):
        ChunkedTransfer(total=0)
