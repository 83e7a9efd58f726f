"""
Worker Identity Assignment

Picks the (datacenter id, worker id) pair for this process at startup, either
from explicit settings or from shared atomic counters.
"""

from typing import NamedTuple, Optional

from smart_idworker.core.config import Settings, settings as default_settings
from smart_idworker.core.error_codes import IdWorkerErrorCode
from smart_idworker.core.exceptions import WorkerIdAssignmentException
from smart_idworker.core.logger import get_logger
from smart_idworker.stores.counter_store import AtomicCounterStore
from smart_idworker.utils.id_worker import (
    MAX_DATACENTER_ID,
    MAX_WORKER_ID,
    IdWorker,
    init_id_worker,
)

logger = get_logger(__name__)


class WorkerIdentity(NamedTuple):
    """The pair of ids that makes one IdWorker's output unique."""

    datacenter_id: int
    worker_id: int


def counter_to_id(counter_value: int, max_id: int) -> int:
    """
    Map a counter value onto 0..max_id.

    Negative values (a counter that overflowed on another client) map into range too.
    """
    return counter_value % (max_id + 1)


async def _next_from_counter(store: AtomicCounterStore, key: str, max_id: int) -> int:
    try:
        counter_value = await store.increment_and_get(key)
    except Exception as e:
        logger.error("Failed to increment counter %s: %s", key, str(e))
        raise WorkerIdAssignmentException.wrap(
            e,
            f"Failed to obtain id from counter {key}: {str(e)}",
            IdWorkerErrorCode.ASSIGNMENT_FAILED,
            key=key,
        ) from e
    return counter_to_id(counter_value, max_id)


async def assign_worker_identity(
    store: AtomicCounterStore, config: Optional[Settings] = None
) -> WorkerIdentity:
    """
    Resolve this process's worker identity.

    Each id comes from settings when configured there, otherwise from its counter.
    Counters are not touched for ids fixed in settings.

    Args:
        store: Shared counter backend
        config: Settings to read; the global settings by default

    Returns:
        WorkerIdentity: Assigned ids

    Raises:
        WorkerIdAssignmentException: If the counter store fails
    """
    config = config or default_settings

    if config.idworker__datacenter_id is not None:
        datacenter_id = config.idworker__datacenter_id
    else:
        datacenter_id = await _next_from_counter(
            store, config.idworker__datacenter_id_key, MAX_DATACENTER_ID
        )

    if config.idworker__worker_id is not None:
        worker_id = config.idworker__worker_id
    else:
        worker_id = await _next_from_counter(
            store, config.idworker__worker_id_key, MAX_WORKER_ID
        )

    identity = WorkerIdentity(datacenter_id=datacenter_id, worker_id=worker_id)
    logger.info(
        "Worker identity assigned - datacenter_id: %d, worker_id: %d",
        identity.datacenter_id,
        identity.worker_id,
    )
    return identity


async def init_id_worker_from_store(
    store: AtomicCounterStore, config: Optional[Settings] = None
) -> IdWorker:
    """
    Assign an identity and install the process-wide IdWorker with it.

    Raises:
        WorkerIdAssignmentException: If the counter store fails
        ConfigurationException: If a worker with another identity is installed
    """
    identity = await assign_worker_identity(store, config)
    return init_id_worker(identity.datacenter_id, identity.worker_id)
