"""
core/connectors.py

Connectors represent external integrations (CRM, identity lookup, channel
metadata, ...). Each connector contributes a bundle of default session
parameters and, optionally, a payload hook that fills session parameters from
the inbound payload on the first turn of a session.

Registration order matters: default bundles are merged and payload hooks run
in the order connectors were registered, each hook receiving the session
context produced by the previous one.
"""

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from monitoring.metrics import track_errors
from shared.utils import maybe_await
from .contexts import Context
from .errors import ConfigurationError, DuplicateRegistrationError

logger = logging.getLogger(__name__)

PayloadHandlerFn = Callable[[Context, 'DialogTurn'], Union[Optional[Context], Awaitable[Optional[Context]]]]


class ConnectorStatus(Enum):
    ACTIVE_HEALTHY = 0
    ACTIVE_UNHEALTHY = 1
    INACTIVE = 2


class Connector:
    """
    An external integration registered with the engine.

    Attributes:
        name: Unique connector name.
        default_parameters: Session parameters this connector adds to every new session.
        payload_handler: Optional hook run once per session during bootstrap.
        endpoint: The integration's API client, made available to handlers.
        status: Health derived from the outcome of the last hook run.
        success_count / failure_count: Hook run counters for this process.
    """

    def __init__(
        self,
        name: str,
        default_parameters: Optional[Dict[str, str]] = None,
        payload_handler: Optional[PayloadHandlerFn] = None,
        endpoint: Any = None,
    ):
        if not name:
            raise ConfigurationError('name', 'Connector')
        if default_parameters is None:
            raise ConfigurationError('default_parameters', 'Connector', name)

        self.name = name
        self.default_parameters = dict(default_parameters)
        self.payload_handler = payload_handler
        self.endpoint = endpoint
        self.status = ConnectorStatus.ACTIVE_HEALTHY
        self.success_count = 0
        self.failure_count = 0

    def record_success(self) -> None:
        self.success_count += 1
        self.status = ConnectorStatus.ACTIVE_HEALTHY

    def record_failure(self) -> None:
        self.failure_count += 1
        self.status = ConnectorStatus.ACTIVE_UNHEALTHY

    def __repr__(self) -> str:
        return f"Connector(name={self.name!r}, status={self.status.name})"


class DefaultParameterManager:
    """Ordered collection of default parameter bundles and payload hooks, keyed by contributor."""

    def __init__(self):
        self._param_sets: Dict[str, Dict[str, str]] = {}
        self._payload_handlers: Dict[str, PayloadHandlerFn] = {}

    def register(self, name: str, params: Dict[str, str], payload_handler: Optional[PayloadHandlerFn] = None) -> None:
        if name in self._param_sets:
            raise DuplicateRegistrationError('Default parameter set', name)
        self._param_sets[name] = dict(params)
        if payload_handler is not None:
            self._payload_handlers[name] = payload_handler

    def get_sets(self) -> List[Dict[str, str]]:
        return list(self._param_sets.values())

    def merged_defaults(self) -> Dict[str, str]:
        """All bundles merged in registration order; later bundles win on key collisions."""
        merged: Dict[str, str] = {}
        for param_set in self._param_sets.values():
            merged.update(param_set)
        return merged

    def get_payload_handlers(self) -> List[Tuple[str, PayloadHandlerFn]]:
        return list(self._payload_handlers.items())


class ConnectorManager:
    """Register-once registry of connectors feeding the session bootstrap pipeline."""

    def __init__(self, default_parameter_manager: Optional[DefaultParameterManager] = None):
        self._connectors: Dict[str, Connector] = {}
        self.default_parameter_manager = default_parameter_manager or DefaultParameterManager()

    def get(self, name: str) -> Optional[Connector]:
        return self._connectors.get(name)

    def register_connector(self, connector: Connector) -> None:
        """
        Register a connector and contribute its defaults and hook to the bootstrap pipeline.

        Raises:
            DuplicateRegistrationError: If a connector with the same name is already registered.
        """
        if connector.name in self._connectors:
            raise DuplicateRegistrationError('Connector', connector.name)
        self.default_parameter_manager.register(connector.name, connector.default_parameters, connector.payload_handler)
        self._connectors[connector.name] = connector
        logger.info("Registered connector %s", connector.name)

    @track_errors('connector', 'payload_handlers')
    async def run_payload_handlers(self, session_context: Context, turn: 'DialogTurn') -> Context:
        """
        Run every connector payload hook in registration order.

        Each hook receives the session context returned by the previous one. A
        hook returning None leaves the context unchanged. A failing hook marks
        its connector unhealthy and the exception propagates.
        """
        for name, handler in self.default_parameter_manager.get_payload_handlers():
            connector = self._connectors.get(name)
            try:
                result = await maybe_await(handler(session_context, turn))
            except Exception:
                if connector is not None:
                    connector.record_failure()
                turn.logger.error("Payload handler for connector %s failed", name)
                raise
            if connector is not None:
                connector.record_success()
            if result is not None:
                session_context = result
        return session_context

    def statuses(self) -> Dict[str, Dict[str, Any]]:
        """Per-connector health snapshot for the health endpoint."""
        return {
            name: {
                'status': connector.status.name,
                'success_count': connector.success_count,
                'failure_count': connector.failure_count,
            }
            for name, connector in self._connectors.items()
        }

    def __len__(self) -> int:
        return len(self._connectors)
