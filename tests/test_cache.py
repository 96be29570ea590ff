"""Tests for the statistics cache."""

import pytest

from utils.cache import cached_statistics, clear_all_caches, invalidate_statistics


@pytest.fixture(autouse=True)
def _clear_cache():
    clear_all_caches()
    yield
    clear_all_caches()


def test_result_is_cached():
    calls = []

    @cached_statistics
    def compute():
        calls.append(1)
        return {"total": len(calls)}

    assert compute() == {"total": 1}
    assert compute() == {"total": 1}
    assert len(calls) == 1


def test_invalidate_forces_recompute():
    calls = []

    @cached_statistics
    def compute():
        calls.append(1)
        return {"total": len(calls)}

    compute()
    invalidate_statistics()

    assert compute() == {"total": 2}
