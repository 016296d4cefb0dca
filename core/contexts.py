"""
core/contexts.py

Contexts are the only state that survives between turns. The host transport
hands them to us at the start of a request and persists whatever we write back;
nothing is kept in process memory between turns.

This module contains:
- Context: a named bag of string parameters with a lifespan counter.
- SequenceStack: the ordered record of interrupted/resumable sequences, kept
  as a list in memory and serialized to a pipe-joined string only when it is
  written to the session context.
- ContextManager: lazy creation of per-sequence contexts and the
  authentication gate that intercepts sequences requiring a validated customer.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from shared.models import EngineSettings
from .sequences import SequenceManager

logger = logging.getLogger(__name__)

FLAG_ON = '1'
FLAG_OFF = '0'

# validationStatus values kept in the authentication sequence's context.
VALIDATION_PASSED = '1'
VALIDATION_FAILED = '2'

STACK_SEPARATOR = '|'


@dataclass
class Context:
    """A named parameter bag that expires after `lifespan` turns unless refreshed."""
    name: str
    lifespan: int = 99
    parameters: Dict[str, str] = field(default_factory=dict)


class SequenceStack:
    """
    Ordered sequence names, outermost first.

    The top of the stack is always the current sequence once a session is
    initialized.
    """

    def __init__(self, names: Optional[Iterable[str]] = None):
        self._names: List[str] = list(names or [])

    @classmethod
    def from_param(cls, value: Optional[str]) -> 'SequenceStack':
        """Parse the persisted pipe-joined representation; blank entries are dropped."""
        if not value:
            return cls()
        return cls(name for name in value.split(STACK_SEPARATOR) if name)

    def to_param(self) -> str:
        return STACK_SEPARATOR.join(self._names)

    @property
    def top(self) -> Optional[str]:
        return self._names[-1] if self._names else None

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._names)

    def is_empty(self) -> bool:
        return not self._names

    def is_only(self, name: str) -> bool:
        """True when the stack holds exactly one entry and it is `name`."""
        return self._names == [name]

    def push(self, name: str) -> None:
        self._names.append(name)

    def pop(self) -> Optional[str]:
        return self._names.pop() if self._names else None

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __eq__(self, other) -> bool:
        if isinstance(other, SequenceStack):
            return self._names == other._names
        return NotImplemented

    def __repr__(self) -> str:
        return f"SequenceStack({self.to_param()!r})"


class ContextManager:
    """
    Creates per-sequence contexts on demand and enforces authentication.

    The manager is stateless with respect to sessions: every method reads and
    writes contexts through the turn's transport.
    """

    def __init__(self, sequence_manager: SequenceManager, settings: EngineSettings):
        self.sequence_manager = sequence_manager
        self.settings = settings

    def create_ctx(self, name: str, params: Optional[Dict[str, str]] = None, lifespan: Optional[int] = None) -> Context:
        """Create a new context holding a copy of `params`."""
        return Context(
            name=name,
            lifespan=self.settings.context_lifespan if lifespan is None else lifespan,
            parameters=dict(params or {}),
        )

    def get_or_create_ctx(self, transport: 'TurnTransport', name: str) -> Context:
        """
        Fetch a context from the transport, creating it from the sequence defaults when absent.

        A name with no registered sequence yields an empty context.
        """
        context = transport.get_context(name)
        if context is None:
            sequence = self.sequence_manager.get(name)
            if sequence is None:
                logger.debug("No sequence registered for context %s; creating an empty context", name)
            context = self.create_ctx(name, sequence.default_params if sequence else None)
            transport.set_context(context)
        return context

    def handle_require_authentication(self, turn: 'DialogTurn') -> None:
        """
        Intercept the current sequence until the customer is validated.

        The authentication sequence's context carries `validationStatus`:
        unset while no attempt was made, '1' once validated, '2' after a failed
        attempt. A failed attempt walks the agent-offer flags: offer an agent,
        escalate when accepted; when declined, create a case for the interrupted
        sequence and resume the one beneath.
        """
        auth_context = turn.get_or_create_ctx(self.settings.auth_sequence)
        validation_status = auth_context.parameters.get('validationStatus')
        sequence_current = self.sequence_manager.get(turn.params.get('sequenceCurrent'))

        if validation_status == VALIDATION_PASSED:
            # Session flags lag behind the authentication context; align them and carry on.
            turn.logger.info("Authentication already validated; correcting customerValidated")
            turn.set_session_param('customerValidated', FLAG_ON)
            sequence_current.navigate(turn)
            return

        if validation_status == VALIDATION_FAILED:
            if turn.params.get('offeredAgent') == FLAG_OFF:
                turn.set_session_param(
                    'lastFulfillmentText',
                    f"I'm sorry, but {sequence_current.activity} isn't something I can do without validating your identity."
                )
                turn.respond_with_event(self.settings.offer_agent_event, turn.params['lastFulfillmentText'])
                return
            if turn.params.get('offeredAgentAccepted') == FLAG_ON:
                turn.respond_with_event(self.settings.escalate_agent_event, turn.params.get('lastFulfillmentText'))
                return
            if turn.params.get('offeredAgentDeclined') == FLAG_ON:
                turn.create_case()
                turn.reset_offered_agent_flags()
                turn.pop_sequence_and_navigate(turn.params.get('sequenceCurrent'))
                return

        turn.logger.info("Pushing %s ahead of %s", self.settings.auth_sequence, turn.params.get('sequenceCurrent'))
        turn.push_sequence(self.settings.auth_sequence)
        self.sequence_manager.get(self.settings.auth_sequence).navigate(turn)
