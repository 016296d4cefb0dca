"""
core/turns.py

DialogTurn is the facade handed to intent handlers and sequence navigation for
one request. It wraps the session context, the active sequence and the active
intent context, and exposes the primitives handlers use to mutate state and
produce a response. Every parameter write refreshes the context lifespan and
is persisted through the transport immediately.
"""

from typing import Any, Dict, Optional

from config.logging_config import get_logger
from shared.models import EngineSettings
from .connectors import Connector, ConnectorManager
from .contexts import Context, ContextManager, SequenceStack, FLAG_OFF, FLAG_ON, VALIDATION_PASSED
from .errors import ConfigurationError, StateIntegrityWarning
from .sequences import Sequence
from .transport import TurnTransport


class DialogTurn:
    """
    Per-request view of the conversation state.

    A DialogTurn is created by the orchestrator for a single inbound request and
    discarded when the request ends.

    Example:
        async def handle_confirm_wellbeing(turn: DialogTurn) -> None:
            turn.set_current_param('confirmedWellbeing', '1')
            turn.set_fulfillment_text()
    """

    def __init__(
        self,
        transport: TurnTransport,
        settings: EngineSettings,
        context_manager: ContextManager,
        connector_manager: ConnectorManager,
        session_context: Context,
        current_sequence: Optional[Sequence] = None,
        current_context: Optional[Context] = None,
    ):
        if transport is None:
            raise ConfigurationError('transport', 'DialogTurn')
        if context_manager is None:
            raise ConfigurationError('context_manager', 'DialogTurn')
        if connector_manager is None:
            raise ConfigurationError('connector_manager', 'DialogTurn')
        if session_context is None:
            raise ConfigurationError('session_context', 'DialogTurn')

        self.transport = transport
        self.settings = settings
        self.context_manager = context_manager
        self.connector_manager = connector_manager
        self.session_context = session_context
        self.current_sequence = current_sequence
        self.current_context = current_context
        self.logger = get_logger(
            __name__,
            session_id=transport.session_id,
            sequence=session_context.parameters.get('sequenceCurrent'),
            action=transport.get_detected_action(),
        )

    # --- Read accessors ---

    @property
    def session_id(self) -> str:
        return self.transport.session_id

    @property
    def params(self) -> Dict[str, str]:
        """Session parameters."""
        return self.session_context.parameters

    @property
    def inparams(self) -> Dict[str, Any]:
        """Parameters extracted from the user's utterance."""
        return self.transport.get_query_parameters()

    @property
    def ctx_params(self) -> Dict[str, str]:
        """Parameters of the active intent context (empty when there is none)."""
        if self.current_context is None:
            return {}
        return self.current_context.parameters

    @property
    def current_action(self) -> str:
        return self.transport.get_detected_action()

    @property
    def payload(self) -> Dict[str, Any]:
        return self.transport.get_payload()

    @property
    def sequence_stack(self) -> SequenceStack:
        return SequenceStack.from_param(self.params.get('sequenceStack'))

    # --- Response primitives ---

    def set_fulfillment_text(self, fulfillment_text: Optional[str] = None) -> None:
        """Store the response text, or the transport's default response when none is given."""
        text = fulfillment_text if fulfillment_text is not None else self.transport.get_default_response_text()
        self.set_session_param('lastFulfillmentText', text)

    def append_fulfillment_text(self, fulfillment_text: Optional[str] = None) -> None:
        text = fulfillment_text if fulfillment_text is not None else self.transport.get_default_response_text()
        self.set_session_param('lastFulfillmentText', f"{self.params.get('lastFulfillmentText', '')}  {text}")

    def respond_with_text(self, fulfillment_text: Optional[str] = None) -> None:
        """Respond with `fulfillment_text`, or the stored lastFulfillmentText."""
        text = fulfillment_text if fulfillment_text is not None else self.params.get('lastFulfillmentText', '')
        self.transport.add_response_text(text)
        self.set_session_param('responseAlreadySet', FLAG_ON)

    def respond_with_event(self, event_name: str, fulfillment_text: Optional[str] = None) -> None:
        """
        Respond with a follow-up event.

        The text is only logged by the intent-detection service, not uttered,
        because the event replaces the response.
        """
        text = fulfillment_text if fulfillment_text is not None else self.params.get('lastFulfillmentText', '')
        self.transport.add_response_text(text)
        self.set_session_params({'lastEvent': event_name, 'responseAlreadySet': FLAG_ON})
        self.transport.raise_followup_event(event_name)
        self.logger.debug("Raised follow-up event %s", event_name)

    def set_fulfillment_course_correct(self, fulfillment_text: Optional[str] = None) -> None:
        """Capture the response and re-raise the last event to steer back to the current step."""
        self.set_fulfillment_text(fulfillment_text)
        self.respond_with_event(self.params.get('lastEvent', ''), self.params.get('lastFulfillmentText'))

    # --- Parameter primitives ---

    def set_session_param(self, name: str, value: str) -> None:
        self.set_param(self.session_context, name, value)

    def set_session_params(self, params: Dict[str, str]) -> None:
        self.set_params(self.session_context, params)

    def set_current_param(self, name: str, value: str) -> None:
        self.set_param(self._require_current_context(), name, value)

    def set_current_params(self, params: Dict[str, str]) -> None:
        self.set_params(self._require_current_context(), params)

    def set_param(self, context: Context, name: str, value: str) -> None:
        context.parameters[name] = value
        self.update_context(context)

    def set_params(self, context: Context, params: Dict[str, str]) -> None:
        context.parameters.update(params)
        self.update_context(context)

    def update_context(self, context: Context, lifespan: Optional[int] = None) -> None:
        """Persist `context` through the transport, resetting its lifespan."""
        context.lifespan = self.settings.context_lifespan if lifespan is None else lifespan
        self.transport.set_context(context)

    def _require_current_context(self) -> Context:
        if self.current_context is None:
            raise RuntimeError(f"No intent context is active for action {self.current_action!r}")
        return self.current_context

    # --- Context helpers ---

    def get_or_create_ctx(self, name: str) -> Context:
        return self.context_manager.get_or_create_ctx(self.transport, name)

    def delete_ctx(self, name: str) -> None:
        self.transport.delete_context(name)

    def get_connector(self, name: str) -> Optional[Connector]:
        return self.connector_manager.get(name)

    def is_auth_required(self) -> bool:
        """True unless the customer is identified, validated, and the authentication context agrees."""
        auth_context = self.get_or_create_ctx(self.settings.auth_sequence)
        return (
            self.params.get('customerIdentified') == FLAG_OFF
            or self.params.get('customerValidated') == FLAG_OFF
            or auth_context.parameters.get('validationStatus') != VALIDATION_PASSED
        )

    def is_identity_required(self) -> bool:
        return self.params.get('customerIdentified') == FLAG_OFF

    def create_case(self) -> Any:
        """Run the current sequence's create_case hook."""
        sequence = self.context_manager.sequence_manager.get(self.params.get('sequenceCurrent'))
        if sequence is None:
            return None
        self.logger.info("Creating a case for %s", sequence.name)
        return sequence.create_case(self)

    def reset_offered_agent_flags(self) -> None:
        self.set_session_params({
            'offeredAgent': FLAG_OFF,
            'offeredAgentAccepted': FLAG_OFF,
            'offeredAgentDeclined': FLAG_OFF,
        })

    # --- Sequence stack ---

    def push_sequence(self, name: str) -> None:
        """
        Make `name` the current sequence, interrupting the one below it.

        An empty stack, or one holding only the welcome marker, is re-anchored
        on the canonical root so that unwinding always lands there.
        """
        stack = self.sequence_stack
        root = self.settings.root_sequence
        updates = {'sequenceCurrent': name}

        if stack.is_empty() or stack.is_only(self.settings.welcome_sequence):
            stack = SequenceStack([root] if name == root else [root, name])
            if name != root:
                updates['triggeredSkill'] = FLAG_ON
        else:
            stack.push(name)

        updates['sequenceStack'] = stack.to_param()
        self.set_session_params(updates)
        self.logger.extra['sequence'] = name

    def pop_sequence(self, name: str) -> None:
        """
        Remove `name` from the top of the stack and resume the sequence beneath it.

        A stack with a single entry resets to the canonical root. A top entry
        other than `name` is logged and popped anyway.
        """
        stack = self.sequence_stack
        root = self.settings.root_sequence

        if len(stack) <= 1:
            self.set_session_params({'sequenceCurrent': root, 'sequenceStack': root})
            self.logger.extra['sequence'] = root
            return

        if stack.top != name:
            self.logger.warning("%s", StateIntegrityWarning(name, stack.to_param()))

        stack.pop()
        self.set_session_params({'sequenceCurrent': stack.top, 'sequenceStack': stack.to_param()})
        self.logger.extra['sequence'] = stack.top

    def pop_sequence_and_navigate(self, name: str) -> None:
        self.pop_sequence(name)
        sequence = self.context_manager.sequence_manager.get(self.params['sequenceCurrent'])
        self.logger.info("Calling %s.navigate()", sequence.name)
        sequence.navigate(self)
