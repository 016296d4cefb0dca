"""
core/transport.py

The contract between the engine and the host turn transport.

A transport wraps exactly one inbound request. It exposes the detected action,
the free-form payload and the default response text, collects the response
the engine produces (text and follow-up events), and acts as the context store
that persists state between turns. Concrete transports adapt a specific
webhook format; see api/dialogflow_es.py.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .contexts import Context


class TurnTransport(ABC):
    """Abstract base class for per-request host transports."""

    @property
    @abstractmethod
    def session_id(self) -> str:
        """Identifier of the conversation session this request belongs to."""

    @abstractmethod
    def get_detected_action(self) -> str:
        """Action label classified by the intent-detection service."""

    @abstractmethod
    def get_payload(self) -> Dict[str, Any]:
        """Free-form payload supplied by the channel (caller id, channel type, ...)."""

    @abstractmethod
    def get_default_response_text(self) -> str:
        """Response text the intent-detection service proposed for this turn."""

    @abstractmethod
    def add_response_text(self, text: str) -> None:
        """Append an utterance to this turn's response."""

    @abstractmethod
    def raise_followup_event(self, name: str) -> None:
        """Ask the intent-detection service to trigger event `name` after this turn."""

    @abstractmethod
    def get_context(self, name: str) -> Optional[Context]:
        """Return the persisted context named `name`, or None."""

    @abstractmethod
    def set_context(self, context: Context) -> None:
        """Persist `context` (parameters and lifespan)."""

    @abstractmethod
    def delete_context(self, name: str) -> None:
        """Expire the context named `name`."""

    def get_query_parameters(self) -> Dict[str, Any]:
        """Parameters extracted from the user's utterance; empty unless the transport provides them."""
        return {}

    def get_query_text(self) -> str:
        """The raw user utterance, used for debug logging only."""
        return ''
