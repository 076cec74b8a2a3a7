"""Tests for the freshness policy."""
import pytest
from unittest.mock import Mock
from forecast_record import ForecastRecord
from freshness import FreshnessPolicy, records_fresh
from record_store import InMemoryRecordStore


def record(date, fetched_at):
    return ForecastRecord("saigon", date, 30.0, 1010, 70, "few clouds", fetched_at)


def test_records_fresh_all_recent():
    records = [record(1, 100), record(2, 100)]
    assert records_fresh(records, 2, cutoff=95) is True


def test_records_fresh_too_few():
    assert records_fresh([record(1, 100)], 2, cutoff=0) is False


def test_records_fresh_one_stale():
    records = [record(1, 100), record(2, 90)]
    assert records_fresh(records, 2, cutoff=95) is False


def test_records_fresh_only_selection_checked():
    records = [record(1, 100), record(2, 90)]
    assert records_fresh(records, 1, cutoff=95) is True


@pytest.mark.parametrize("count", [0, -1])
def test_records_fresh_non_positive_count(count):
    assert records_fresh([], count, cutoff=10 ** 12) is True


@pytest.fixture
def seeded_store():
    store = InMemoryRecordStore()
    store.replace_all("saigon", [record(i, 1000) for i in range(1, 8)])
    return store


def test_policy_within_timeout(seeded_store):
    policy = FreshnessPolicy(seeded_store)
    assert policy.is_fresh("saigon", 7, timeout_seconds=5, now=1005) is True


def test_policy_past_timeout(seeded_store):
    policy = FreshnessPolicy(seeded_store)
    assert policy.is_fresh("saigon", 7, timeout_seconds=5, now=1006) is False


def test_policy_zero_timeout_same_second(seeded_store):
    """A timeout of 0 still accepts records written in the same second."""
    policy = FreshnessPolicy(seeded_store)
    assert policy.is_fresh("saigon", 7, timeout_seconds=0, now=1000) is True
    assert policy.is_fresh("saigon", 7, timeout_seconds=0, now=1001) is False


def test_policy_more_requested_than_cached(seeded_store):
    policy = FreshnessPolicy(seeded_store)
    assert policy.is_fresh("saigon", 8, timeout_seconds=60, now=1000) is False


def test_policy_non_positive_count_skips_store():
    store = Mock()
    policy = FreshnessPolicy(store)

    assert policy.is_fresh("saigon", 0, timeout_seconds=5, now=1000) is True
    assert policy.is_fresh("saigon", -7, timeout_seconds=5, now=1000) is True
    store.has_fresh_data.assert_not_called()


def test_policy_passes_cutoff_to_store():
    store = Mock()
    store.has_fresh_data.return_value = True
    policy = FreshnessPolicy(store)

    assert policy.is_fresh("saigon", 7, timeout_seconds=5, now=1000) is True
    store.has_fresh_data.assert_called_once_with("saigon", 7, 995)
