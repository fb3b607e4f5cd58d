"""Shared fixtures: isolated pools, schedulers and settings per test."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from fallible import TimeoutScheduler, clear_settings_cache


@pytest.fixture(autouse=True)
def fresh_settings() -> object:
    """Re-read FALLIBLE_* settings for every test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def executor() -> object:
    """Private pool, shut down (and drained) after the test."""
    pool = ThreadPoolExecutor(max_workers=8, thread_name_prefix="fallible-test")
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def scheduler() -> object:
    """Private timeout scheduler."""
    timer = TimeoutScheduler(thread_name="fallible-test-timer")
    yield timer
    timer.shutdown()
