"""
Health endpoint for the conversation engine.

Reports liveness together with what the orchestrator has registered: sequence
names, the number of intent actions and per-connector health derived from the
outcome of their payload hooks.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from core.orchestrator import Orchestrator
from version import __version__
from .webhook import get_orchestrator

router = APIRouter()


@router.get("/health")
def health(orchestrator: Orchestrator = Depends(get_orchestrator)) -> Dict[str, Any]:
    """
    Return the service status, a UTC timestamp and the registry summary.

    Returns:
        Dict[str, Any]: Keys "status", "timestamp", "version" and "registry".
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "registry": orchestrator.get_registry_info(),
    }
