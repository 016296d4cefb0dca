"""
conftest.py – shared pytest configuration, fakes and fixtures.

- Puts the project root on `sys.path` so `core`, `api`, `shared` etc. import without an editable install.
- Disables file logging before `config` is imported.
- Provides `FakeTransport`, an in-memory turn transport, and orchestrator fixtures with the canonical
  welcome / reasonforcontact / authentication sequences registered behind MagicMock navigate spies.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

# Ensure project root is on sys.path for direct imports like `core`, `shared`, etc.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# No log files from the test run
os.environ.setdefault("LOG_FILE_PATH", "")

from config import CONFIG  # noqa: E402
from core import Context, DialogTurn, Orchestrator, Sequence, TurnTransport  # noqa: E402
from shared.models import EngineSettings  # noqa: E402

SESSION_CONTEXT = 'sessionprops'


class FakeTransport(TurnTransport):
    """In-memory transport: contexts live in a dict, responses and events in lists."""

    def __init__(
        self,
        action: str = '',
        session_id: str = 'session-1',
        payload: Optional[Dict[str, Any]] = None,
        default_text: str = '',
        contexts: Optional[Dict[str, Dict[str, str]]] = None,
        query_parameters: Optional[Dict[str, Any]] = None,
    ):
        self._session_id = session_id
        self.action = action
        self.payload = payload or {}
        self.default_text = default_text
        self.query_parameters = query_parameters or {}
        self.contexts: Dict[str, Context] = {
            name: Context(name=name, lifespan=99, parameters=dict(params))
            for name, params in (contexts or {}).items()
        }
        self.responses: List[str] = []
        self.events: List[str] = []
        self.deleted: List[str] = []

    def next_turn(self, action: str, default_text: str = '') -> None:
        self.action = action
        self.default_text = default_text
        self.responses = []
        self.events = []

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def session_params(self) -> Dict[str, str]:
        return self.contexts[SESSION_CONTEXT].parameters

    def get_detected_action(self) -> str:
        return self.action

    def get_payload(self) -> Dict[str, Any]:
        return self.payload

    def get_default_response_text(self) -> str:
        return self.default_text

    def get_query_parameters(self) -> Dict[str, Any]:
        return self.query_parameters

    def add_response_text(self, text: str) -> None:
        self.responses.append(text)

    def raise_followup_event(self, name: str) -> None:
        self.events.append(name)

    def get_context(self, name: str) -> Optional[Context]:
        return self.contexts.get(name)

    def set_context(self, context: Context) -> None:
        self.contexts[context.name] = context

    def delete_context(self, name: str) -> None:
        self.contexts.pop(name, None)
        self.deleted.append(name)


def session_params(**overrides: str) -> Dict[str, str]:
    """Base session parameters for an already initialized session."""
    params = dict(CONFIG['session_defaults'])
    params['sessionInitialized'] = '1'
    params.update(overrides)
    return params


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings()


@pytest.fixture
def orchestrator(settings) -> Orchestrator:
    """Orchestrator with the canonical sequences registered; navigate calls are MagicMock spies."""
    engine = Orchestrator(settings=settings, base_params=dict(CONFIG['session_defaults']))
    for name, activity in (
        (settings.welcome_sequence, 'greeting each other'),
        (settings.root_sequence, 'finding out why you are contacting us'),
        (settings.auth_sequence, 'validating your identity'),
    ):
        engine.register_sequence(Sequence(name=name, activity=activity, navigate=MagicMock(name=f'{name}.navigate')))
    return engine


@pytest.fixture
def navigate_spy(orchestrator):
    """Look up the navigate spy of a registered sequence."""
    def _spy(name: str) -> MagicMock:
        return orchestrator.sequence_manager.get(name)._navigate
    return _spy


@pytest.fixture
def make_turn(orchestrator):
    """Build a DialogTurn over a transport, creating the session context if needed."""
    def _make_turn(transport: TurnTransport) -> DialogTurn:
        session_context = orchestrator.get_or_create_session_context(transport)
        return DialogTurn(
            transport=transport,
            settings=orchestrator.settings,
            context_manager=orchestrator.context_manager,
            connector_manager=orchestrator.connector_manager,
            session_context=session_context,
            current_sequence=orchestrator.sequence_manager.get(session_context.parameters.get('sequenceCurrent')),
        )
    return _make_turn
