"""
core/errors.py

Exception taxonomy for the conversation engine.

- ConfigurationError: a required constructor/registration field is missing.
  Raised synchronously at setup time.
- DuplicateRegistrationError: a name collision in any registry. Raised
  synchronously; the existing registration is left untouched.
- StateIntegrityWarning: a sequence-stack pop whose expected name does not match
  the top of the stack. Logged, never raised; processing continues.
- UnhandledTurnError: wraps any exception that escapes a turn. Logged at the
  orchestrator boundary with the session identifier.
"""

from typing import Optional


class OrchestrationError(Exception):
    """Base class for errors raised by the conversation engine."""


class ConfigurationError(OrchestrationError, ValueError):
    """A required field is missing from a sequence, intent, connector or orchestrator."""

    def __init__(self, field: str, owner: str, detail: Optional[str] = None):
        self.field = field
        self.owner = owner
        message = f"{field} is a required parameter for creating {owner} objects."
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class DuplicateRegistrationError(OrchestrationError):
    """A sequence, intent or connector name is already registered."""

    def __init__(self, registry: str, name: str):
        self.registry = registry
        self.name = name
        super().__init__(f"{registry} {name} is already registered.")


class StateIntegrityWarning(UserWarning):
    """The sequence being popped is not the one on top of the stack."""

    def __init__(self, expected: str, stack: str):
        self.expected = expected
        self.stack = stack
        super().__init__(f"Expecting to pop {expected} off of stack: {stack}")


class UnhandledTurnError(OrchestrationError):
    """An exception escaped handler execution or navigation during a turn."""

    def __init__(self, session_id: str, action: Optional[str] = None):
        self.session_id = session_id
        self.action = action
        super().__init__(f"Unhandled error in turn for session {session_id} (action: {action or '<none>'})")
