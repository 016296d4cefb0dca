"""
Core metrics and monitoring decorators for the conversation engine.

This module defines Prometheus metrics and decorators for tracking:
- Turn counts by resolution outcome
- Turn and intent handler latency
- Error rates
"""

import time
import functools
import inspect
import logging
from typing import Optional, Callable
from prometheus_client import Counter, Histogram

# Configure logger
logger = logging.getLogger(__name__)

# Turn metrics
TURN_COUNT = Counter(
    'convo_turns_total',
    'Total number of conversation turns handled',
    ['resolution']  # standalone, composite, templated, fallback
)

TURN_LATENCY = Histogram(
    'convo_turn_duration_seconds',
    'Time spent handling one conversation turn',
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, float("inf")]
)

HANDLER_LATENCY = Histogram(
    'convo_intent_handler_duration_seconds',
    'Time spent inside intent handlers',
    ['action'],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, float("inf")]
)

# Error metrics
ERROR_COUNT = Counter(
    'convo_error_total',
    'Total number of errors',
    ['type', 'location']  # type: e.g., 'turn', 'connector'; location: specific component
)

def _observe(metric: Histogram, labels: Optional[Callable], args: tuple, duration: float) -> None:
    if labels and args:
        # For instance methods, first arg is 'self'
        metric.labels(**labels(*args)).observe(duration)
    else:
        metric.observe(duration)

def track_latency(metric: Histogram, labels: Optional[Callable] = None) -> Callable:
    """
    A decorator factory that tracks the execution time of a function using a Prometheus Histogram.

    Works for both plain functions and coroutine functions.

    Args:
        metric (Histogram): The Prometheus Histogram to record the timing in
        labels (Callable, optional): Function receiving the call's positional
            arguments and returning the metric labels dictionary

    Returns:
        Callable: The decorated function
    """
    def decorator(func: Callable) -> Callable:
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return await func(*args, **kwargs)
                finally:
                    duration = time.time() - start_time
                    _observe(metric, labels, args, duration)
                    logger.debug(f"Function {func.__name__} execution time: {duration:.3f} seconds")
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return func(*args, **kwargs)
            finally:
                duration = time.time() - start_time
                _observe(metric, labels, args, duration)
                logger.debug(f"Function {func.__name__} execution time: {duration:.3f} seconds")
        return wrapper
    return decorator

def track_errors(error_type: str, location: str) -> Callable:
    """
    A decorator factory that counts exceptions raised by a function, then re-raises them.

    Args:
        error_type (str): Type of error (e.g., 'turn', 'connector')
        location (str): Where the error occurred

    Returns:
        Callable: The decorated function

    Example:
        @track_errors('connector', 'crm_lookup')
        async def populate_from_lookup(session_context, turn):
            ...
    """
    def decorator(func: Callable) -> Callable:
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await func(*args, **kwargs)
                except Exception:
                    ERROR_COUNT.labels(type=error_type, location=location).inc()
                    raise
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception:
                ERROR_COUNT.labels(type=error_type, location=location).inc()
                raise
        return wrapper
    return decorator
