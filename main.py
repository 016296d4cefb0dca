""" main.py: FastAPI application entry point and runtime configuration.

This module builds the ASGI app, mounts the webhook and health routers, configures CORS and exposes a Prometheus
metrics endpoint. `create_app` accepts a fully registered Orchestrator; without one it builds the default
conversation below (welcome, reason for contact and authentication sequences answering with the agent's own
response text), which is enough to exercise the webhook end to end. When executed directly, it starts a Uvicorn
server using host/port values from configuration.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from config import CONFIG
from core import Context, DialogTurn, Intent, Orchestrator, Sequence
from core.contexts import FLAG_OFF, FLAG_ON

# --- Router Imports ---
from api import health as health_router
from api import webhook as webhook_router

# Get a logger instance for this module
logger = logging.getLogger(__name__)


def _payload_flag(payload: dict, key: str) -> str:
    return FLAG_ON if str(payload.get(key, 'false')).lower() == 'true' else FLAG_OFF


def populate_from_payload(session_context: Context, turn: DialogTurn) -> Context:
    """Seed identification flags and the interaction source from the channel payload."""
    payload = turn.payload or {}
    session_context.parameters['customerIdentified'] = _payload_flag(payload, 'customerIdentified')
    session_context.parameters['customerValidated'] = _payload_flag(payload, 'customerValidated')
    session_context.parameters['interactionSource'] = str(payload.get('interactionSource', ''))
    return session_context


def respond_with_default_text(turn: DialogTurn) -> None:
    turn.set_fulfillment_text()
    turn.respond_with_text()


def build_orchestrator() -> Orchestrator:
    """Orchestrator with the canonical sequences and the greeting intent registered."""
    orchestrator = Orchestrator(populate_from_payload=populate_from_payload)
    settings = orchestrator.settings

    orchestrator.register_sequence(Sequence(
        name=settings.welcome_sequence,
        activity='greeting each other',
        navigate=respond_with_default_text,
    ))
    orchestrator.register_sequence(Sequence(
        name=settings.root_sequence,
        activity='finding out why you are contacting us',
        navigate=respond_with_default_text,
    ))
    orchestrator.register_sequence(Sequence(
        name=settings.auth_sequence,
        activity='validating your identity',
        navigate=respond_with_default_text,
    ))
    orchestrator.register_intent(Intent(
        action='welcome',
        handler=respond_with_default_text,
        sequence_name=settings.welcome_sequence,
    ))
    return orchestrator


def create_app(orchestrator: Optional[Orchestrator] = None) -> FastAPI:
    """
    Build the FastAPI application around an orchestrator.

    Args:
        orchestrator (Optional[Orchestrator]): A registered orchestrator; defaults to `build_orchestrator()`.

    Returns:
        FastAPI: The configured application. The orchestrator is kept on `app.state.orchestrator`.
    """
    app = FastAPI(title="Conversation Orchestrator")
    app.state.orchestrator = orchestrator or build_orchestrator()

    # Include routers
    app.include_router(webhook_router.router, prefix="/api", tags=["Webhook"])
    app.include_router(health_router.router, tags=["Health"])

    # Add Prometheus metrics endpoint
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)

    # Configure CORS
    allow_origins = CONFIG.get('cors', {}).get('allow_origins', ["*"])
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    logger.info("[create_app] Application created with %s", app.state.orchestrator.get_registry_info())
    return app


app = create_app()

# The uvicorn server is used to run the FastAPI application.
if __name__ == '__main__':
    import uvicorn
    logger.info("[__main__] Starting Uvicorn server for main.py\n")
    uvicorn.run(
        app,
        host=CONFIG.get('server', {}).get('host', '0.0.0.0'),
        port=CONFIG.get('server', {}).get('port', 8080)
    )
