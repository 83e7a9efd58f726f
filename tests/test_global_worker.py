from concurrent.futures import ThreadPoolExecutor

import pytest

from smart_idworker.core.config import settings
from smart_idworker.core.error_codes import ConfigurationErrorCode
from smart_idworker.core.exceptions import ConfigurationException
from smart_idworker.utils.id_worker import (
    generate_id,
    generate_id_str,
    get_id_worker,
    init_id_worker,
    parse_id,
)


def test_init_is_idempotent_for_same_identity():
    first = init_id_worker(1, 2)
    second = init_id_worker(1, 2)

    assert second is first
    assert get_id_worker() is first


def test_init_with_other_identity_is_refused():
    init_id_worker(1, 2)

    with pytest.raises(ConfigurationException) as exc_info:
        init_id_worker(1, 3)

    assert exc_info.value.error_code == ConfigurationErrorCode.ALREADY_INITIALIZED
    assert get_id_worker().worker_id == 2


def test_lazy_init_from_settings(monkeypatch):
    monkeypatch.setattr(settings, "idworker__datacenter_id", 6)
    monkeypatch.setattr(settings, "idworker__worker_id", 7)

    parts = parse_id(generate_id())

    assert (parts.datacenter_id, parts.worker_id) == (6, 7)
    assert generate_id_str().isdigit()


def test_lazy_init_without_identity_fails(monkeypatch):
    monkeypatch.setattr(settings, "idworker__datacenter_id", None)
    monkeypatch.setattr(settings, "idworker__worker_id", None)

    with pytest.raises(ConfigurationException) as exc_info:
        get_id_worker()

    assert exc_info.value.error_code == ConfigurationErrorCode.MISSING_CONFIG


def test_concurrent_first_use_builds_one_worker(monkeypatch):
    monkeypatch.setattr(settings, "idworker__datacenter_id", 1)
    monkeypatch.setattr(settings, "idworker__worker_id", 1)

    with ThreadPoolExecutor(max_workers=8) as pool:
        workers = list(pool.map(lambda _: get_id_worker(), range(32)))

    assert len({id(w) for w in workers}) == 1
