"""
shared/utils.py

Shared utility functions used across multiple modules.

This module contains small helpers used by the engine and the API layer to
avoid code duplication and keep behaviour consistent.
"""

import inspect
from typing import Any

async def maybe_await(result: Any) -> Any:
    """
    Await `result` when it is awaitable, otherwise return it unchanged.

    Handlers and bootstrap hooks may be plain functions or coroutines; callers
    invoke them and pass the return value through this helper.

    Args:
        result (Any): The value returned by a sync or async callable.

    Returns:
        Any: The resolved value.
    """
    if inspect.isawaitable(result):
        return await result
    return result

def truncate_message_for_logging(message: str, max_length: int = 100) -> str:
    """
    Truncate long messages for logging purposes.

    Args:
        message (str): Message to truncate
        max_length (int): Maximum length before truncation (default: 100)

    Returns:
        str: Truncated message with ellipsis if needed
    """
    if message is None:
        return ''
    if len(message) <= max_length:
        return message
    return message[:max_length] + "..."
