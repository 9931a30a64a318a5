import pytest

from cms.cache import ATTRIBUTE_TYPE_MAP, FIELD_TYPE_MAP, TypeMapCache
from cms.filters import ScalarType


def test_loader_runs_once_per_key() -> None:
    cache = TypeMapCache()
    calls = []

    def loader() -> dict:
        calls.append(1)
        return {"id": ScalarType.INT}

    first = cache.get_or_compute(FIELD_TYPE_MAP, "post_types", loader)
    second = cache.get_or_compute(FIELD_TYPE_MAP, "post_types", loader)
    assert first == second == {"id": ScalarType.INT}
    assert len(calls) == 1
    assert (FIELD_TYPE_MAP, "post_types") in cache


def test_namespaces_are_separate() -> None:
    cache = TypeMapCache()
    cache.get_or_compute(FIELD_TYPE_MAP, "posts", lambda: {"id": ScalarType.INT})
    attrs = cache.get_or_compute(ATTRIBUTE_TYPE_MAP, "posts", lambda: {"rating": ScalarType.FLOAT})
    assert attrs == {"rating": ScalarType.FLOAT}
    assert len(cache) == 2


def test_loader_failure_is_not_cached() -> None:
    cache = TypeMapCache()

    def broken() -> dict:
        raise RuntimeError("database unavailable")

    with pytest.raises(RuntimeError):
        cache.get_or_compute(FIELD_TYPE_MAP, "posts", broken)
    assert (FIELD_TYPE_MAP, "posts") not in cache
    assert cache.get_or_compute(FIELD_TYPE_MAP, "posts", lambda: {"id": ScalarType.INT}) == {
        "id": ScalarType.INT
    }


def test_update_overwrites_and_clear_resets() -> None:
    cache = TypeMapCache()
    cache.get_or_compute(ATTRIBUTE_TYPE_MAP, "posts", lambda: {})
    cache.update(ATTRIBUTE_TYPE_MAP, "posts", lambda: {"color": ScalarType.STRING})
    assert cache.get(ATTRIBUTE_TYPE_MAP, "posts") == {"color": ScalarType.STRING}
    cache.clear()
    assert len(cache) == 0
    assert cache.get(ATTRIBUTE_TYPE_MAP, "posts") is None
