"""
core/orchestrator.py

Per-request control loop of the conversation engine.

For every inbound turn the orchestrator:
1. Loads (or creates) the session context from the transport
2. Bootstraps the session on its first turn (payload, connector and lookup hooks)
3. Resolves the detected action to an intent (standalone, composite, templated)
4. Runs the handler and applies the gating rules: already-responded,
   wait-for-reply break, authentication interception, or sequence navigation
5. Resets the per-turn response flag before the session context is persisted

All state lives in the transport's contexts; the orchestrator itself only
holds the registries, which are built once at startup.
"""

from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Union

from config import CONFIG
from config.logging_config import get_logger
from monitoring.metrics import ERROR_COUNT, HANDLER_LATENCY, TURN_COUNT, TURN_LATENCY, track_latency
from shared.models import EngineSettings
from shared.utils import maybe_await, truncate_message_for_logging
from .connectors import Connector, ConnectorManager
from .contexts import Context, ContextManager, FLAG_OFF, FLAG_ON
from .errors import ConfigurationError, UnhandledTurnError
from .intents import HandlerFn, Intent, IntentManager, ResolutionKind, UNASSOCIATED_SEQUENCE
from .sequences import Sequence, SequenceManager
from .transport import TurnTransport
from .turns import DialogTurn

logger = get_logger(__name__)

SessionHookFn = Callable[[Context, DialogTurn], Union[Optional[Context], Awaitable[Optional[Context]]]]

REQUIRED_BASE_PARAMS = ('sessionInitialized', 'sequenceCurrent', 'sequenceStack')


class Orchestrator:
    """
    Owns the sequence, intent and connector registries and drives each turn.

    Responsibilities:
    - Registration of sequences, intents and connectors (register once, fail on duplicates)
    - Session context creation and first-turn bootstrap
    - Intent resolution and handler execution
    - Break, authentication and navigation gating after each handler
    - Containment of errors escaping a turn
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        base_params: Optional[Dict[str, str]] = None,
        populate_from_payload: Optional[SessionHookFn] = None,
        populate_from_lookup: Optional[SessionHookFn] = None,
    ):
        """
        Initialize the orchestrator and its registries.

        Args:
            settings (Optional[EngineSettings]): Sequence/context/event names. Defaults to
                the values in config.json.
            base_params (Optional[Dict[str, str]]): Parameters every new session starts with.
                Defaults to the `session_defaults` section of config.json.
            populate_from_payload (Optional[SessionHookFn]): First-turn hook that fills
                session parameters from the channel payload.
            populate_from_lookup (Optional[SessionHookFn]): First-turn hook that enriches an
                unidentified (or voice) session from an external lookup.

        Raises:
            ConfigurationError: If base_params lacks a parameter the engine depends on.
        """
        self.settings = settings or EngineSettings.from_config(CONFIG)
        self.base_params = dict(base_params if base_params is not None else CONFIG['session_defaults'])
        for param in REQUIRED_BASE_PARAMS:
            if param not in self.base_params:
                raise ConfigurationError(param, 'Orchestrator', 'base_params')

        self.sequence_manager = SequenceManager()
        self.intent_manager = IntentManager()
        self.connector_manager = ConnectorManager()
        self.context_manager = ContextManager(self.sequence_manager, self.settings)
        self._populate_from_payload = populate_from_payload
        self._populate_from_lookup = populate_from_lookup

        logger.info("Orchestrator initialized (session context %s)", self.settings.session_context_name)

    # --- Registration ---

    def register_sequence(self, sequence: Sequence) -> None:
        self.sequence_manager.register_sequence(sequence)

    def register_intent(self, intent: Intent) -> None:
        self.intent_manager.register_intent(intent)

    def register_intents(
        self,
        actions: Iterable[str],
        sequence_name: str,
        handler: HandlerFn,
        wait_for_reply: bool = False,
    ) -> None:
        self.intent_manager.register_intents(actions, sequence_name, handler, wait_for_reply)

    def register_connector(self, connector: Connector) -> None:
        self.connector_manager.register_connector(connector)

    # --- Session state ---

    def get_or_create_session_context(self, transport: TurnTransport) -> Context:
        """
        Fetch the session context, creating it for a new session.

        A new session context holds the base parameters, the session id, and
        every connector default bundle merged in registration order.
        """
        name = self.settings.session_context_name
        session_context = transport.get_context(name)
        if session_context is None:
            logger.info("Creating session context for session %s", transport.session_id)
            params = dict(self.base_params)
            params['sessionId'] = transport.session_id
            params.update(self.connector_manager.default_parameter_manager.merged_defaults())
            session_context = self.context_manager.create_ctx(name, params)
            transport.set_context(session_context)
        return session_context

    async def bootstrap_session(self, turn: DialogTurn) -> None:
        """
        Populate the session on its first turn.

        Runs the base payload hook, then every connector payload hook in
        registration order, then the lookup hook when the customer is still
        unidentified or the interaction arrived on the voice channel. Marks the
        session initialized so later turns skip this block.
        """
        session_context = turn.session_context

        if self._populate_from_payload is not None:
            turn.logger.debug("Calling populate_from_payload")
            session_context = await maybe_await(self._populate_from_payload(session_context, turn)) or session_context
            turn.session_context = session_context

        session_context = await self.connector_manager.run_payload_handlers(session_context, turn)
        turn.session_context = session_context

        params = session_context.parameters
        needs_lookup = (
            params.get('customerIdentified') == FLAG_OFF
            or params.get('interactionSource') == self.settings.voice_channel
        )
        if needs_lookup and self._populate_from_lookup is not None:
            turn.logger.debug("Calling populate_from_lookup")
            session_context = await maybe_await(self._populate_from_lookup(session_context, turn)) or session_context
            turn.session_context = session_context

        turn.set_session_param('sessionInitialized', FLAG_ON)
        turn.logger.debug("Session bootstrapped: %s", session_context.parameters)

    # --- Turn handling ---

    @track_latency(TURN_LATENCY)
    async def handle_turn(self, transport: TurnTransport) -> None:
        """
        Handle one inbound turn end to end.

        Any exception escaping the turn is logged as an UnhandledTurnError with
        the session id and swallowed here; the transport keeps whatever response
        was produced before the failure. Context writes made before the failure
        are not rolled back.

        Args:
            transport (TurnTransport): The request-scoped host transport.
        """
        session_id = transport.session_id
        action = None
        session_context = None
        turn = None

        try:
            session_context = self.get_or_create_session_context(transport)
            action = transport.get_detected_action()
            sequence_current = self._get_sequence(session_context.parameters.get('sequenceCurrent'))

            turn = DialogTurn(
                transport=transport,
                settings=self.settings,
                context_manager=self.context_manager,
                connector_manager=self.connector_manager,
                session_context=session_context,
                current_sequence=sequence_current,
            )

            if turn.params.get('sessionInitialized') == FLAG_OFF:
                await self.bootstrap_session(turn)
            else:
                turn.logger.debug("Session already initialized")

            turn.logger.debug("User said: %s", truncate_message_for_logging(transport.get_query_text()))
            turn.logger.debug("Detected action: %s", action)

            last_action = turn.params.get('lastAction')
            resolution = self.intent_manager.resolve(action, last_action)
            if resolution is None:
                TURN_COUNT.labels(resolution='fallback').inc()
                turn.logger.info("%s has no associated handlers; calling %s.navigate()", action, sequence_current.name)
                turn.current_context = self._reply_context(transport, last_action, action)
                turn.set_fulfillment_text()
                sequence_current.navigate(turn)
                return

            TURN_COUNT.labels(resolution=resolution.kind.value).inc()
            if resolution.kind is ResolutionKind.STANDALONE:
                turn.current_context = self._intent_context(transport, resolution.action)
            else:
                turn.current_context = self._reply_context(transport, last_action, resolution.action)
            await self.handle_intent_and_navigate(turn, resolution.action)

        except Exception as e:
            ERROR_COUNT.labels(type='turn', location='orchestrator').inc()
            error = UnhandledTurnError(session_id, action)
            error.__cause__ = e
            get_logger(__name__, session_id=session_id, action=action).error("%s: %s", error, e, exc_info=True)

        finally:
            if turn is not None:
                session_context = turn.session_context
            if session_context is not None:
                session_context.parameters['responseAlreadySet'] = FLAG_OFF
                transport.set_context(session_context)

    async def handle_intent_and_navigate(self, turn: DialogTurn, action: str) -> None:
        """
        Run the intent handler, then decide what happens next.

        The current sequence is re-read after the handler because handlers may
        push or pop sequences.
        """
        intent = self.intent_manager.get(action)
        turn.logger.info("%s found in intent manager", action)

        with HANDLER_LATENCY.labels(action=action).time():
            await maybe_await(intent.handler(turn))

        sequence_updated = self._get_sequence(turn.params.get('sequenceCurrent'))

        if turn.params.get('responseAlreadySet') == FLAG_ON:
            if intent.wait_for_reply:
                turn.set_session_param('lastAction', action)
            return

        if intent.wait_for_reply:
            # Break: respond now and expect the next utterance to resolve against this action.
            turn.logger.info("%s waits for reply; responding with lastFulfillmentText", action)
            turn.set_session_param('lastAction', action)
            turn.respond_with_text(turn.params.get('lastFulfillmentText'))
            return

        if sequence_updated.auth_required and turn.is_auth_required():
            turn.logger.info("Calling handle_require_authentication()")
            self.context_manager.handle_require_authentication(turn)
            return

        turn.logger.info("Calling %s.navigate()", sequence_updated.name)
        sequence_updated.navigate(turn)

    def _get_sequence(self, name: Optional[str]) -> Sequence:
        sequence = self.sequence_manager.get(name)
        if sequence is None:
            raise LookupError(f"Sequence {name!r} is not registered")
        return sequence

    def _intent_context(self, transport: TurnTransport, action: Optional[str]) -> Optional[Context]:
        """Per-sequence context associated with `action`, created on first access."""
        sequence_name = self.intent_manager.get_context(action)
        if sequence_name is None or sequence_name == UNASSOCIATED_SEQUENCE:
            return None
        return self.context_manager.get_or_create_ctx(transport, sequence_name)

    def _reply_context(self, transport: TurnTransport, last_action: Optional[str], action: Optional[str]) -> Optional[Context]:
        """
        Context for a turn that did not match a standalone intent.

        The reply is interpreted in the context of the action that paused the
        previous turn when that action has one; otherwise in the context of `action`.
        """
        if last_action and self.intent_manager.has_context(last_action):
            return self._intent_context(transport, last_action)
        return self._intent_context(transport, action)

    def get_registry_info(self) -> Dict[str, Any]:
        """
        Summarize the registries for diagnostics.

        Returns:
            Dict[str, Any]: Registered sequence names, intent count and connector health.
        """
        return {
            'sequences': sorted(sequence.name for sequence in self.sequence_manager),
            'intents': len(self.intent_manager),
            'connectors': self.connector_manager.statuses(),
        }
