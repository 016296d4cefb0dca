"""
Unit tests for `monitoring/metrics.py` decorators.

Both decorators must preserve the wrapped function's result and exceptions for plain and
coroutine functions, while recording into Prometheus metrics.
"""

import asyncio
from unittest.mock import MagicMock

import pytest
from prometheus_client import REGISTRY, CollectorRegistry, Histogram

from core import Connector, ConnectorManager
from monitoring.metrics import track_errors, track_latency


def _errors(error_type, location):
    return REGISTRY.get_sample_value('convo_error_total', {'type': error_type, 'location': location}) or 0.0


def test_track_latency_observes_sync_and_async_calls():
    registry = CollectorRegistry()
    histogram = Histogram('test_latency_seconds', 'test', registry=registry)

    @track_latency(histogram)
    def add(a, b):
        return a + b

    @track_latency(histogram)
    async def add_async(a, b):
        return a + b

    assert add(1, 2) == 3
    assert asyncio.run(add_async(2, 3)) == 5
    assert registry.get_sample_value('test_latency_seconds_count') == 2


def test_track_errors_counts_and_reraises():
    @track_errors('test', 'sync_location')
    def explode():
        raise KeyError('missing')

    before = _errors('test', 'sync_location')
    with pytest.raises(KeyError):
        explode()
    assert _errors('test', 'sync_location') == before + 1


def test_failing_connector_hooks_are_counted():
    manager = ConnectorManager()

    def broken(context, turn):
        raise RuntimeError('down')

    manager.register_connector(Connector(name='crm', default_parameters={}, payload_handler=broken))
    before = _errors('connector', 'payload_handlers')

    with pytest.raises(RuntimeError):
        asyncio.run(manager.run_payload_handlers(None, MagicMock()))

    assert _errors('connector', 'payload_handlers') == before + 1
