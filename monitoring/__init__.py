"""
Monitoring package initializer.

This package exposes Prometheus metrics and helper decorators for tracking
conversation turn throughput, latency and errors.
"""

from .metrics import (
    TURN_COUNT,
    TURN_LATENCY,
    HANDLER_LATENCY,
    ERROR_COUNT,
    track_latency,
    track_errors,
)

__all__ = [
    'TURN_COUNT',
    'TURN_LATENCY',
    'HANDLER_LATENCY',
    'ERROR_COUNT',
    'track_latency',
    'track_errors',
]
