"""
core/sequences.py

Sequences are the named conversational subflows the engine navigates between
(welcome, reason for contact, authentication, ...). Each sequence knows how to
move its own dialogue forward through `navigate(turn)`; the orchestrator only
decides *which* sequence to navigate.
"""

import logging
from typing import Any, Callable, Dict, Iterator, Optional

from .errors import ConfigurationError, DuplicateRegistrationError

logger = logging.getLogger(__name__)

NavigateFn = Callable[['DialogTurn'], None]
CreateCaseFn = Callable[['DialogTurn'], Any]


class Sequence:
    """
    A named conversational subflow.

    A sequence is either built with a `navigate` callable or subclassed with
    `navigate` overridden. `default_params` seeds the sequence's own context the
    first time it is accessed in a session. `create_case` is an optional hook that
    records a case (ticket, callback request, ...) when the sequence cannot finish.

    Example:
        def navigate_welcome(turn):
            turn.respond_with_text()

        welcome = Sequence(name='welcome', activity='greeting each other', navigate=navigate_welcome)
    """

    def __init__(
        self,
        name: str,
        activity: str,
        navigate: Optional[NavigateFn] = None,
        auth_required: bool = False,
        identity_required: bool = False,
        default_params: Optional[Dict[str, str]] = None,
        create_case: Optional[CreateCaseFn] = None,
    ):
        if not name:
            raise ConfigurationError('name', 'Sequence')
        if activity is None:
            raise ConfigurationError('activity', 'Sequence', name)
        if navigate is None and type(self).navigate is Sequence.navigate:
            raise ConfigurationError('navigate', 'Sequence', name)

        self.name = name
        self.activity = activity  # Gerund description of the goal, used in course correction.
        self.auth_required = bool(auth_required)
        self.identity_required = bool(identity_required)
        self.default_params = dict(default_params or {})
        self._navigate = navigate
        self._create_case = create_case

    def navigate(self, turn: 'DialogTurn') -> None:
        """Move the sequence forward for the current turn."""
        self._navigate(turn)

    def create_case(self, turn: 'DialogTurn') -> Any:
        """Record a case for a sequence that could not finish; None when no hook is set."""
        if self._create_case is None:
            logger.debug("Sequence %s has no create_case hook", self.name)
            return None
        return self._create_case(turn)

    def __repr__(self) -> str:
        return f"Sequence(name={self.name!r}, auth_required={self.auth_required})"


class SequenceManager:
    """Register-once registry of sequences keyed by name."""

    def __init__(self):
        self._sequences: Dict[str, Sequence] = {}

    def get(self, name: Optional[str]) -> Optional[Sequence]:
        """Return the registered sequence, or None when the name is unknown."""
        if name is None:
            return None
        return self._sequences.get(name)

    def has(self, name: str) -> bool:
        return name in self._sequences

    def register_sequence(self, sequence: Sequence) -> None:
        """
        Register a sequence.

        Raises:
            DuplicateRegistrationError: If a sequence with the same name is already registered.
        """
        if sequence.name in self._sequences:
            raise DuplicateRegistrationError('Sequence', sequence.name)
        self._sequences[sequence.name] = sequence
        logger.debug("Registered sequence %s", sequence.name)

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __iter__(self) -> Iterator[Sequence]:
        return iter(self._sequences.values())

    def __len__(self) -> int:
        return len(self._sequences)
