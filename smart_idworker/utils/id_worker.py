"""
Snowflake ID Worker

Distributed unique 64-bit id generation in the Twitter Snowflake layout.

Id structure (most significant bit first):
- 1 bit, always 0 so ids stay positive as signed 64-bit integers
- 41 bits for milliseconds elapsed since TWEPOCH (about 69 years)
- 5 bits for the datacenter id
- 5 bits for the worker id
- 12 bits for a per-millisecond sequence

The fields are fixed; changing any of them changes the id format.
"""

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, List, NamedTuple, Optional

from smart_idworker.core.config import settings
from smart_idworker.core.error_codes import (
    ConfigurationErrorCode,
    IdWorkerErrorCode,
)
from smart_idworker.core.exceptions import (
    ClockMovedBackwardException,
    ConfigurationException,
    InvalidArgumentException,
)
from smart_idworker.core.logger import get_logger

logger = get_logger(__name__)

# 2010-11-04T01:42:54.657Z
TWEPOCH = 1288834974657

TIMESTAMP_BITS = 41
DATACENTER_ID_BITS = 5
WORKER_ID_BITS = 5
SEQUENCE_BITS = 12

MAX_TIMESTAMP_OFFSET = (1 << TIMESTAMP_BITS) - 1
MAX_DATACENTER_ID = (1 << DATACENTER_ID_BITS) - 1
MAX_WORKER_ID = (1 << WORKER_ID_BITS) - 1
MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1
SEQUENCE_MASK = MAX_SEQUENCE

WORKER_ID_SHIFT = SEQUENCE_BITS
DATACENTER_ID_SHIFT = SEQUENCE_BITS + WORKER_ID_BITS
TIMESTAMP_LEFT_SHIFT = SEQUENCE_BITS + WORKER_ID_BITS + DATACENTER_ID_BITS

MAX_ID = (1 << (TIMESTAMP_LEFT_SHIFT + TIMESTAMP_BITS)) - 1

# Ids produced per lock acquisition in IdWorker.next_ids
MAX_BATCH_CHUNK = MAX_SEQUENCE + 1

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def current_millis() -> int:
    """Wall-clock time in milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


class IdComponents(NamedTuple):
    """Decoded fields of a snowflake id."""

    timestamp_offset_ms: int
    datacenter_id: int
    worker_id: int
    sequence: int

    @property
    def timestamp_ms(self) -> int:
        """Absolute Unix time in milliseconds."""
        return self.timestamp_offset_ms + TWEPOCH

    @property
    def created_at(self) -> datetime:
        """UTC time the id was issued."""
        return _UNIX_EPOCH + timedelta(milliseconds=self.timestamp_ms)


def _check_range(value: int, maximum: int, field: str, error_code: IdWorkerErrorCode) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentException(
            f"{field} must be an integer, got {type(value).__name__}",
            error_code,
            {field: value},
        )
    if value < 0 or value > maximum:
        raise InvalidArgumentException(
            f"{field} must be between 0 and {maximum}, got {value}",
            error_code,
            {field: value, "max": maximum},
        )


def compose_id(
    timestamp_offset_ms: int, datacenter_id: int, worker_id: int, sequence: int
) -> int:
    """
    Pack id fields into a single integer.

    Raises:
        InvalidArgumentException: If a field does not fit its bit width
    """
    code = IdWorkerErrorCode.INVALID_COMPONENT
    _check_range(timestamp_offset_ms, MAX_TIMESTAMP_OFFSET, "timestamp_offset_ms", code)
    _check_range(datacenter_id, MAX_DATACENTER_ID, "datacenter_id", code)
    _check_range(worker_id, MAX_WORKER_ID, "worker_id", code)
    _check_range(sequence, MAX_SEQUENCE, "sequence", code)
    return (
        (timestamp_offset_ms << TIMESTAMP_LEFT_SHIFT)
        | (datacenter_id << DATACENTER_ID_SHIFT)
        | (worker_id << WORKER_ID_SHIFT)
        | sequence
    )


def parse_id(snowflake_id: int) -> IdComponents:
    """
    Split an id back into its fields.

    Raises:
        InvalidArgumentException: If the value is negative or wider than 63 bits
    """
    _check_range(snowflake_id, MAX_ID, "snowflake_id", IdWorkerErrorCode.INVALID_COMPONENT)
    return IdComponents(
        timestamp_offset_ms=snowflake_id >> TIMESTAMP_LEFT_SHIFT,
        datacenter_id=(snowflake_id >> DATACENTER_ID_SHIFT) & MAX_DATACENTER_ID,
        worker_id=(snowflake_id >> WORKER_ID_SHIFT) & MAX_WORKER_ID,
        sequence=snowflake_id & SEQUENCE_MASK,
    )


class IdWorker:
    """
    Thread-safe snowflake id generator bound to one (datacenter id, worker id) pair.

    Every instance running at the same time must hold a distinct pair; see
    ``smart_idworker.utils.worker_identity`` for handing pairs out from a shared
    counter. The sequence restarts at 0 on every new millisecond. When the 4096
    sequence values of one millisecond are used up, the caller spins on the
    clock (no sleep) until the next millisecond, holding the lock for at most
    the rest of that millisecond. A clock that reads earlier than the last
    issued id raises ClockMovedBackwardException instead of waiting.
    """

    def __init__(
        self,
        datacenter_id: int,
        worker_id: int,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        """
        Args:
            datacenter_id: Datacenter id, 0..MAX_DATACENTER_ID
            worker_id: Worker id, 0..MAX_WORKER_ID
            clock: Zero-argument callable returning Unix time in milliseconds

        Raises:
            InvalidArgumentException: If either id is out of range
        """
        _check_range(
            datacenter_id,
            MAX_DATACENTER_ID,
            "datacenter_id",
            IdWorkerErrorCode.INVALID_DATACENTER_ID,
        )
        _check_range(
            worker_id, MAX_WORKER_ID, "worker_id", IdWorkerErrorCode.INVALID_WORKER_ID
        )

        self._datacenter_id = datacenter_id
        self._worker_id = worker_id
        self._clock = clock or current_millis
        self._lock = threading.Lock()
        self._last_timestamp = -1
        self._sequence = 0

        logger.info(
            "IdWorker initialized - datacenter_id: %d, worker_id: %d",
            datacenter_id,
            worker_id,
        )

    @property
    def datacenter_id(self) -> int:
        return self._datacenter_id

    @property
    def worker_id(self) -> int:
        return self._worker_id

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"datacenter_id={self._datacenter_id}, worker_id={self._worker_id})"
        )

    def _read_clock(self) -> int:
        now = self._clock()
        if now < TWEPOCH:
            raise InvalidArgumentException(
                f"Clock reads {now} ms, earlier than epoch {TWEPOCH}",
                IdWorkerErrorCode.CLOCK_BEFORE_EPOCH,
                {"timestamp_ms": now, "epoch_ms": TWEPOCH},
            )
        if now - TWEPOCH > MAX_TIMESTAMP_OFFSET:
            raise InvalidArgumentException(
                f"Clock reads {now} ms, beyond the {TIMESTAMP_BITS}-bit timestamp range",
                IdWorkerErrorCode.TIMESTAMP_OVERFLOW,
                {"timestamp_ms": now, "epoch_ms": TWEPOCH},
            )
        return now

    def _clock_moved_backward(self, timestamp: int) -> ClockMovedBackwardException:
        rollback_ms = self._last_timestamp - timestamp
        logger.error(
            "Clock moved backwards by %d ms, refusing to generate id", rollback_ms
        )
        return ClockMovedBackwardException(
            f"Clock moved backwards. Refusing to generate id for {rollback_ms} ms",
            rollback_ms,
            IdWorkerErrorCode.CLOCK_MOVED_BACKWARD,
            {"last_timestamp_ms": self._last_timestamp, "timestamp_ms": timestamp},
        )

    def _til_next_millis(self, last_timestamp: int) -> int:
        timestamp = self._read_clock()
        while timestamp <= last_timestamp:
            if timestamp < last_timestamp:
                raise self._clock_moved_backward(timestamp)
            timestamp = self._read_clock()
        return timestamp

    def _next_id_locked(self) -> int:
        timestamp = self._read_clock()

        if timestamp < self._last_timestamp:
            raise self._clock_moved_backward(timestamp)

        # state is committed only once a usable timestamp is in hand
        if timestamp == self._last_timestamp:
            sequence = (self._sequence + 1) & SEQUENCE_MASK
            if sequence == 0:
                logger.debug(
                    "Sequence exhausted at %d ms, waiting for next millisecond",
                    timestamp,
                )
                timestamp = self._til_next_millis(self._last_timestamp)
        else:
            sequence = 0

        self._sequence = sequence
        self._last_timestamp = timestamp

        return (
            ((timestamp - TWEPOCH) << TIMESTAMP_LEFT_SHIFT)
            | (self._datacenter_id << DATACENTER_ID_SHIFT)
            | (self._worker_id << WORKER_ID_SHIFT)
            | sequence
        )

    def next_id(self) -> int:
        """
        Generate a unique snowflake id.

        Returns:
            int: Positive id, strictly greater than every id this worker issued before

        Raises:
            ClockMovedBackwardException: If the clock reads earlier than the last issued id
        """
        with self._lock:
            return self._next_id_locked()

    def next_id_str(self) -> str:
        """
        Generate a unique snowflake id as string.

        Returns:
            str: Decimal id, safe for JSON clients limited to 53-bit integers
        """
        return str(self.next_id())

    def next_ids(self, count: int) -> List[int]:
        """
        Generate ``count`` ids.

        The lock is taken once per chunk of at most MAX_BATCH_CHUNK ids, so a large
        batch does not keep other callers waiting for more than one exhaustion wait.

        Raises:
            InvalidArgumentException: If count is smaller than 1
            ClockMovedBackwardException: If the clock moves backwards mid-batch
        """
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise InvalidArgumentException(
                f"count must be a positive integer, got {count!r}",
                IdWorkerErrorCode.INVALID_BATCH_SIZE,
                {"count": count},
            )
        ids: List[int] = []
        while len(ids) < count:
            chunk = min(MAX_BATCH_CHUNK, count - len(ids))
            with self._lock:
                ids.extend(self._next_id_locked() for _ in range(chunk))
        return ids

    @staticmethod
    def parse(snowflake_id: int) -> IdComponents:
        """Decode an id produced by any worker sharing this layout."""
        return parse_id(snowflake_id)


class _IdWorkerHolder:
    """
    Process-wide IdWorker slot.

    Filled once, either explicitly through install() or lazily from settings on
    the first get(); lives until process exit or clear().
    """

    def __init__(self) -> None:
        self._worker: Optional[IdWorker] = None
        self._lock = threading.Lock()

    def install(self, worker: IdWorker) -> IdWorker:
        with self._lock:
            current = self._worker
            if current is None:
                self._worker = worker
                return worker
            if (current.datacenter_id, current.worker_id) == (
                worker.datacenter_id,
                worker.worker_id,
            ):
                return current
            raise ConfigurationException(
                "IdWorker already initialized with a different identity",
                ConfigurationErrorCode.ALREADY_INITIALIZED,
                {
                    "current": (current.datacenter_id, current.worker_id),
                    "requested": (worker.datacenter_id, worker.worker_id),
                },
            )

    def get(self) -> IdWorker:
        if self._worker is not None:
            return self._worker

        with self._lock:
            if self._worker is None:
                self._worker = self._from_settings()
            return self._worker

    def clear(self) -> None:
        with self._lock:
            self._worker = None

    @staticmethod
    def _from_settings() -> IdWorker:
        if not settings.has_fixed_identity:
            raise ConfigurationException(
                "IdWorker is not initialized; set IDWORKER__DATACENTER_ID and "
                "IDWORKER__WORKER_ID or call init_id_worker() at startup",
                ConfigurationErrorCode.MISSING_CONFIG,
            )
        return IdWorker(settings.idworker__datacenter_id, settings.idworker__worker_id)


_holder = _IdWorkerHolder()


def init_id_worker(datacenter_id: int, worker_id: int) -> IdWorker:
    """
    Install the process-wide IdWorker.

    Calling again with the same identity returns the installed worker.

    Raises:
        InvalidArgumentException: If either id is out of range
        ConfigurationException: If a worker with another identity is installed
    """
    return _holder.install(IdWorker(datacenter_id, worker_id))


def get_id_worker() -> IdWorker:
    """
    Get the process-wide IdWorker, creating it from settings on first use.

    Raises:
        ConfigurationException: If nothing is installed and settings hold no identity
    """
    return _holder.get()


def reset_id_worker() -> None:
    """Drop the process-wide IdWorker."""
    _holder.clear()


def generate_id() -> int:
    """Convenience function to generate an id from the process-wide worker."""
    return get_id_worker().next_id()


def generate_id_str() -> str:
    """Convenience function to generate an id string from the process-wide worker."""
    return get_id_worker().next_id_str()
