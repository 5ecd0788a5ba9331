from unittest.mock import patch

import pytest

from core.metrics import _counter_cache, _hist_cache, get_counter, get_histogram


@pytest.fixture(autouse=True)
def clear_caches():
    _counter_cache.clear()
    _hist_cache.clear()
    yield
    _counter_cache.clear()
    _hist_cache.clear()


def test_get_counter_creates_new_metric():
    with patch('core.metrics.Counter') as MockCounter:
        metric = get_counter('test_counter', 'Test doc')
        assert metric is not None
        MockCounter.assert_called_once_with('test_counter', 'Test doc', [])


def test_get_counter_returns_cached_metric():
    with patch('core.metrics.Counter') as MockCounter:
        metric1 = get_counter('test_counter', 'Test doc')
        metric2 = get_counter('test_counter', 'Test doc')
        assert metric1 is metric2
        MockCounter.assert_called_once()


def test_get_histogram_with_buckets():
    with patch('core.metrics.Histogram') as MockHistogram:
        buckets = [0.1, 0.5, 1.0]
        get_histogram('test_hist_buckets', 'Test doc', buckets=buckets)
        MockHistogram.assert_called_once_with('test_hist_buckets', 'Test doc', [], buckets=buckets)


def test_get_histogram_returns_cached_metric():
    with patch('core.metrics.Histogram') as MockHistogram:
        metric1 = get_histogram('test_hist', 'Test doc')
        metric2 = get_histogram('test_hist', 'Test doc')
        assert metric1 is metric2
        MockHistogram.assert_called_once()


def test_get_counter_reuses_registered_collector():
    first = get_counter('bookingsite_test_reused', 'Test doc', ['stage'])
    _counter_cache.clear()
    second = get_counter('bookingsite_test_reused', 'Test doc', ['stage'])
    assert first is second
    second.labels(stage="reserve").inc()


def test_get_histogram_reuses_registered_collector():
    first = get_histogram('bookingsite_test_hist_reused', 'Test doc')
    _hist_cache.clear()
    assert get_histogram('bookingsite_test_hist_reused', 'Test doc') is first
