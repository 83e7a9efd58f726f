"""
Utils Package

Snowflake id generation and worker identity assignment.
"""

# Id worker utilities - fast-failing imports
from .id_worker import (
    MAX_DATACENTER_ID,
    MAX_SEQUENCE,
    MAX_WORKER_ID,
    TWEPOCH,
    IdComponents,
    IdWorker,
    compose_id,
    generate_id,
    generate_id_str,
    get_id_worker,
    init_id_worker,
    parse_id,
    reset_id_worker,
)
from .worker_identity import (
    WorkerIdentity,
    assign_worker_identity,
    init_id_worker_from_store,
)

__all__ = [
    "TWEPOCH",
    "MAX_DATACENTER_ID",
    "MAX_WORKER_ID",
    "MAX_SEQUENCE",
    "IdComponents",
    "IdWorker",
    "compose_id",
    "parse_id",
    "init_id_worker",
    "get_id_worker",
    "reset_id_worker",
    "generate_id",
    "generate_id_str",
    "WorkerIdentity",
    "assign_worker_identity",
    "init_id_worker_from_store",
]
