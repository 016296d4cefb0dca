"""
core/__init__.py

The conversation orchestration engine.

This package contains the state machine that sits behind the intent-detection webhook:
- sequences / intents / connectors: register-once registries
- contexts: persisted session state, the sequence stack and the authentication gate
- transport: the contract with the host request/response transport
- turns: the per-request facade handed to handlers and sequence navigation
- orchestrator: the per-request control loop
"""

from .connectors import Connector, ConnectorManager, ConnectorStatus, DefaultParameterManager
from .contexts import Context, ContextManager, SequenceStack
from .errors import (
    ConfigurationError,
    DuplicateRegistrationError,
    OrchestrationError,
    StateIntegrityWarning,
    UnhandledTurnError,
)
from .intents import Intent, IntentManager, IntentResolution, ResolutionKind
from .orchestrator import Orchestrator
from .sequences import Sequence, SequenceManager
from .transport import TurnTransport
from .turns import DialogTurn

__all__ = [
    'ConfigurationError',
    'Connector',
    'ConnectorManager',
    'ConnectorStatus',
    'Context',
    'ContextManager',
    'DefaultParameterManager',
    'DialogTurn',
    'DuplicateRegistrationError',
    'Intent',
    'IntentManager',
    'IntentResolution',
    'OrchestrationError',
    'Orchestrator',
    'ResolutionKind',
    'Sequence',
    'SequenceManager',
    'SequenceStack',
    'StateIntegrityWarning',
    'TurnTransport',
    'UnhandledTurnError',
]
