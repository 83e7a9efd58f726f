import itertools
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest
from conftest import FakeClock, ScriptedClock

from smart_idworker.core.error_codes import IdWorkerErrorCode
from smart_idworker.core.exceptions import (
    ClockMovedBackwardException,
    InvalidArgumentException,
)
from smart_idworker.utils.id_worker import (
    MAX_BATCH_CHUNK,
    MAX_DATACENTER_ID,
    MAX_SEQUENCE,
    MAX_TIMESTAMP_OFFSET,
    MAX_WORKER_ID,
    TWEPOCH,
    IdComponents,
    IdWorker,
    compose_id,
    parse_id,
)


def test_layout_constants_match_twitter_snowflake():
    assert MAX_DATACENTER_ID == 31
    assert MAX_WORKER_ID == 31
    assert MAX_SEQUENCE == 4095
    assert MAX_TIMESTAMP_OFFSET == 2**41 - 1


def test_ids_are_unique_and_strictly_increasing():
    worker = IdWorker(1, 1)

    ids = [worker.next_id() for _ in range(20000)]

    assert len(set(ids)) == len(ids)
    assert all(a < b for a, b in zip(ids, ids[1:]))
    assert all(0 < i < 2**63 for i in ids)


def test_generated_id_decodes_to_its_fields(fake_clock):
    worker = IdWorker(7, 19, clock=fake_clock)

    first = IdWorker.parse(worker.next_id())
    second = IdWorker.parse(worker.next_id())

    assert first == IdComponents(fake_clock.now - TWEPOCH, 7, 19, 0)
    assert second == IdComponents(fake_clock.now - TWEPOCH, 7, 19, 1)
    assert first.timestamp_ms == fake_clock.now


def test_packing_formula():
    assert compose_id(1, 2, 3, 4) == (1 << 22) | (2 << 17) | (3 << 12) | 4
    assert parse_id((5 << 22) | (31 << 17) | (0 << 12) | 4095) == (5, 31, 0, 4095)
    assert compose_id(*parse_id(1541815603606036480)) == 1541815603606036480


def test_compose_rejects_fields_wider_than_their_bits():
    with pytest.raises(InvalidArgumentException) as exc_info:
        compose_id(0, 0, 0, MAX_SEQUENCE + 1)
    assert exc_info.value.error_code == IdWorkerErrorCode.INVALID_COMPONENT

    with pytest.raises(InvalidArgumentException):
        parse_id(-1)
    with pytest.raises(InvalidArgumentException):
        parse_id(2**63)


def test_created_at_is_utc_from_epoch():
    parts = parse_id(compose_id(0, 0, 0, 0))
    assert parts.created_at == datetime(2010, 11, 4, 1, 42, 54, 657000, tzinfo=timezone.utc)


def test_distinct_workers_never_collide_on_same_tick_and_sequence(fake_clock):
    a = IdWorker(0, 1, clock=fake_clock)
    b = IdWorker(1, 0, clock=fake_clock)
    c = IdWorker(0, 0, clock=fake_clock)

    ids = [w.next_id() for w in (a, b, c) for _ in range(3)]

    assert len(set(ids)) == 9


@pytest.mark.parametrize(
    "datacenter_id, worker_id",
    [(MAX_DATACENTER_ID, 0), (0, MAX_WORKER_ID), (MAX_DATACENTER_ID, MAX_WORKER_ID)],
)
def test_accepts_maximum_ids(datacenter_id, worker_id):
    worker = IdWorker(datacenter_id, worker_id)
    assert worker.datacenter_id == datacenter_id
    assert worker.worker_id == worker_id


@pytest.mark.parametrize(
    "datacenter_id, worker_id, error_code",
    [
        (MAX_DATACENTER_ID + 1, 0, IdWorkerErrorCode.INVALID_DATACENTER_ID),
        (-1, 0, IdWorkerErrorCode.INVALID_DATACENTER_ID),
        (0, MAX_WORKER_ID + 1, IdWorkerErrorCode.INVALID_WORKER_ID),
        (0, -1, IdWorkerErrorCode.INVALID_WORKER_ID),
        (0, "3", IdWorkerErrorCode.INVALID_WORKER_ID),
        (True, 0, IdWorkerErrorCode.INVALID_DATACENTER_ID),
    ],
)
def test_rejects_out_of_range_ids(datacenter_id, worker_id, error_code):
    with pytest.raises(InvalidArgumentException) as exc_info:
        IdWorker(datacenter_id, worker_id)

    assert exc_info.value.error_code == error_code
    assert isinstance(exc_info.value, ValueError)
    assert exc_info.value.retryable is False


def test_clock_rollback_raises_without_issuing_an_id(fake_clock):
    worker = IdWorker(1, 1, clock=fake_clock)
    issued = worker.next_id()

    fake_clock.now -= 5
    with pytest.raises(ClockMovedBackwardException) as exc_info:
        worker.next_id()

    assert exc_info.value.rollback_ms == 5
    assert exc_info.value.details["rollback_ms"] == 5
    assert exc_info.value.error_code == IdWorkerErrorCode.CLOCK_MOVED_BACKWARD
    assert exc_info.value.retryable is True

    # state untouched: once the clock catches up the sequence continues
    fake_clock.now += 5
    following = worker.next_id()
    assert following > issued
    assert parse_id(following).sequence == 1


def test_sequence_rollover_waits_for_next_millisecond():
    start = TWEPOCH + 5_000
    spins = 3
    # one read per id, then the exhausted call spins on the same tick before it moves
    clock = ScriptedClock([start] * (MAX_SEQUENCE + 2 + spins) + [start + 1])
    worker = IdWorker(2, 3, clock=clock)

    ids = [worker.next_id() for _ in range(MAX_SEQUENCE + 2)]
    parts = [parse_id(i) for i in ids]

    assert [p.sequence for p in parts[:-1]] == list(range(MAX_SEQUENCE + 1))
    assert {p.timestamp_ms for p in parts[:-1]} == {start}
    assert parts[-1].timestamp_ms == start + 1
    assert parts[-1].sequence == 0
    assert clock.reads == MAX_SEQUENCE + 2 + spins + 1
    assert all(a < b for a, b in zip(ids, ids[1:]))


def test_clock_rollback_during_rollover_wait_raises():
    start = TWEPOCH + 5_000
    clock = ScriptedClock([start] * (MAX_SEQUENCE + 2) + [start - 50] + [start + 1])
    worker = IdWorker(2, 3, clock=clock)
    for _ in range(MAX_SEQUENCE + 1):
        worker.next_id()

    with pytest.raises(ClockMovedBackwardException) as exc_info:
        worker.next_id()

    assert exc_info.value.rollback_ms == 50
    # no spinning once the clock is seen going backwards
    assert clock.reads == MAX_SEQUENCE + 3

    parts = parse_id(worker.next_id())
    assert (parts.timestamp_ms, parts.sequence) == (start + 1, 0)


def test_failed_rollover_wait_does_not_reissue_an_id():
    start = TWEPOCH + 5_000
    clock = ScriptedClock(
        [start] * (MAX_SEQUENCE + 2) + [TWEPOCH - 1] + [start, start + 1]
    )
    worker = IdWorker(2, 3, clock=clock)
    issued = {worker.next_id() for _ in range(MAX_SEQUENCE + 1)}

    with pytest.raises(InvalidArgumentException) as exc_info:
        worker.next_id()
    assert exc_info.value.error_code == IdWorkerErrorCode.CLOCK_BEFORE_EPOCH

    following = worker.next_id()
    assert following not in issued
    parts = parse_id(following)
    assert (parts.timestamp_ms, parts.sequence) == (start + 1, 0)


def test_sequence_resets_on_new_millisecond(fake_clock):
    worker = IdWorker(0, 0, clock=fake_clock)
    worker.next_id()
    worker.next_id()

    fake_clock.now += 1
    assert parse_id(worker.next_id()).sequence == 0


def test_clock_before_epoch_is_rejected():
    worker = IdWorker(0, 0, clock=FakeClock(TWEPOCH - 1))

    with pytest.raises(InvalidArgumentException) as exc_info:
        worker.next_id()
    assert exc_info.value.error_code == IdWorkerErrorCode.CLOCK_BEFORE_EPOCH


def test_timestamp_beyond_41_bits_is_rejected():
    worker = IdWorker(0, 0, clock=FakeClock(TWEPOCH + MAX_TIMESTAMP_OFFSET + 1))

    with pytest.raises(InvalidArgumentException) as exc_info:
        worker.next_id()
    assert exc_info.value.error_code == IdWorkerErrorCode.TIMESTAMP_OVERFLOW


def test_next_ids_batch(fake_clock):
    worker = IdWorker(4, 4, clock=fake_clock)

    batch = worker.next_ids(5)

    assert [parse_id(i).sequence for i in batch] == [0, 1, 2, 3, 4]
    assert worker.next_id() > batch[-1]


class CountingLock:
    def __init__(self):
        self._lock = threading.Lock()
        self.acquisitions = 0

    def __enter__(self):
        self._lock.acquire()
        self.acquisitions += 1
        return self

    def __exit__(self, *exc_info):
        self._lock.release()


def test_large_batch_releases_lock_between_chunks():
    ticks = itertools.count(TWEPOCH + 1_000)
    worker = IdWorker(4, 4, clock=lambda: next(ticks))
    lock = CountingLock()
    worker._lock = lock

    batch = worker.next_ids(2 * MAX_BATCH_CHUNK + 3)

    assert lock.acquisitions == 3
    assert len(batch) == 2 * MAX_BATCH_CHUNK + 3
    assert all(a < b for a, b in zip(batch, batch[1:]))


@pytest.mark.parametrize("count", [0, -3, 1.5])
def test_next_ids_rejects_bad_count(count):
    with pytest.raises(InvalidArgumentException) as exc_info:
        IdWorker(0, 0).next_ids(count)
    assert exc_info.value.error_code == IdWorkerErrorCode.INVALID_BATCH_SIZE


def test_next_id_str():
    value = IdWorker(3, 3).next_id_str()
    assert value.isdigit()
    assert parse_id(int(value)).datacenter_id == 3


def test_concurrent_callers_get_distinct_ids():
    worker = IdWorker(9, 9)
    threads, per_thread = 8, 5000

    def draw(_):
        return [worker.next_id() for _ in range(per_thread)]

    with ThreadPoolExecutor(max_workers=threads) as pool:
        results = list(pool.map(draw, range(threads)))

    all_ids = [i for chunk in results for i in chunk]
    assert len(all_ids) == threads * per_thread
    assert len(set(all_ids)) == len(all_ids)
    # each thread still sees its own ids in increasing order
    for chunk in results:
        assert all(a < b for a, b in zip(chunk, chunk[1:]))
