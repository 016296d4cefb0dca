"""
core/intents.py

Intents bind an action label (as classified by the intent-detection service) to
a handler, the sequence the handler belongs to, and a wait-for-reply flag.

The IntentManager also owns intent resolution: given the detected action and
the action that paused the previous turn, it picks the handler through a strict
standalone -> composite -> templated chain.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Iterable, Optional, Union

from .errors import ConfigurationError, DuplicateRegistrationError

logger = logging.getLogger(__name__)

UNASSOCIATED_SEQUENCE = 'unassociated'

HandlerFn = Callable[['DialogTurn'], Union[None, Awaitable[None]]]


@dataclass
class Intent:
    """
    Binding of an action label to its handler.

    `sequence_name` may reference a sequence that is registered later; it is
    only resolved when the handler's context is fetched. `wait_for_reply`
    marks a break intent: the turn stops after the handler and the next user
    utterance resolves as a composite action against this one.
    """
    action: str
    handler: Optional[HandlerFn] = None
    sequence_name: str = UNASSOCIATED_SEQUENCE
    wait_for_reply: bool = False

    def __post_init__(self):
        if not self.action:
            raise ConfigurationError('action', 'Intent')
        if self.handler is None:
            raise ConfigurationError('handler', 'Intent', self.action)
        if self.sequence_name is None:
            self.sequence_name = UNASSOCIATED_SEQUENCE


class ResolutionKind(Enum):
    """How a detected action was matched to a registered intent."""
    STANDALONE = "standalone"
    COMPOSITE = "composite"
    TEMPLATED = "templated"


@dataclass(frozen=True)
class IntentResolution:
    """
    Result of resolving a detected action.

    Attributes:
        action: The registered action that matched.
        kind: Which rule of the chain produced the match.
        context_action: For composite matches, the previous action whose
            sequence context becomes the active context for the handler.
    """
    action: str
    kind: ResolutionKind
    context_action: Optional[str] = None


class IntentManager:
    """Register-once registry of intents keyed by action."""

    def __init__(self):
        self._intents: Dict[str, Intent] = {}
        self._intent_contexts: Dict[str, str] = {}

    def has(self, action: str) -> bool:
        return action in self._intents

    def get(self, action: str) -> Optional[Intent]:
        return self._intents.get(action)

    def has_context(self, action: Optional[str]) -> bool:
        return action in self._intent_contexts

    def get_context(self, action: Optional[str]) -> Optional[str]:
        """Return the name of the sequence whose context belongs to `action`."""
        return self._intent_contexts.get(action)

    def register_intent(self, intent: Intent) -> None:
        """
        Register an intent.

        Raises:
            DuplicateRegistrationError: If the action is already registered.
        """
        if intent.action in self._intents:
            raise DuplicateRegistrationError('Intent action', intent.action)
        self._intents[intent.action] = intent
        self._intent_contexts[intent.action] = intent.sequence_name
        logger.debug("Registered intent %s (sequence %s)", intent.action, intent.sequence_name)

    def register_intents(
        self,
        actions: Iterable[str],
        sequence_name: str,
        handler: HandlerFn,
        wait_for_reply: bool = False,
    ) -> None:
        """
        Register one handler under several action labels.

        Every action is validated and registered in order; a duplicate stops the
        loop at that action and earlier actions stay registered.
        """
        if actions is None:
            raise ConfigurationError('actions', 'Intent', 'bulk registration')
        if sequence_name is None:
            raise ConfigurationError('sequence_name', 'Intent', 'bulk registration')
        if handler is None:
            raise ConfigurationError('handler', 'Intent', 'bulk registration')

        for action in actions:
            self.register_intent(Intent(
                action=action,
                handler=handler,
                sequence_name=sequence_name,
                wait_for_reply=wait_for_reply,
            ))

    def resolve(self, action: str, last_action: Optional[str] = None) -> Optional[IntentResolution]:
        """
        Resolve a detected action to a registered intent.

        The chain never backtracks: a standalone match wins even when a
        composite registration also exists.

        1. Standalone: `action` itself.
        2. Composite: `<last_action>.<action>`, interpreted in the context of
           `last_action`.
        3. Templated: the segment after the final "." of `action`.

        Returns:
            Optional[IntentResolution]: The match, or None when no handler exists.
        """
        if self.has(action):
            return IntentResolution(action=action, kind=ResolutionKind.STANDALONE)

        composite = f"{last_action}.{action}"
        if last_action and self.has(composite):
            return IntentResolution(action=composite, kind=ResolutionKind.COMPOSITE, context_action=last_action)

        tail = action.rsplit('.', 1)[-1]
        if self.has(tail):
            return IntentResolution(action=tail, kind=ResolutionKind.TEMPLATED)

        return None

    def __len__(self) -> int:
        return len(self._intents)
