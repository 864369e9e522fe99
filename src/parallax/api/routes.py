"""FastAPI routes for the conductor and intervention checks."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from parallax import __version__
from parallax.db.client import DatabaseClient
from parallax.exceptions import NotFoundError, TriggerValidationError
from parallax.manager.conductor import Conductor
from parallax.manager.intervention_engine import decide
from parallax.models.conductor import ConductorRequest, ConductorResult
from parallax.models.intervention import InterventionCheckRequest, InterventionDecision
from parallax.tools.claude import ClaudeClient

logger = logging.getLogger(__name__)

router = APIRouter()

# Dependency injection
_conductor: Conductor | None = None
_db_client: DatabaseClient | None = None


def get_db_client() -> DatabaseClient:
    """Get or create database client instance."""
    global _db_client
    if _db_client is None:
        _db_client = DatabaseClient()
    return _db_client


def get_conductor() -> Conductor:
    """Get or create conductor instance."""
    global _conductor
    if _conductor is None:
        _conductor = Conductor(db=get_db_client(), generator=ClaudeClient())
    return _conductor


@router.get("/health")
async def health(
    db: Annotated[DatabaseClient, Depends(get_db_client)],
) -> dict:
    """Health check endpoint."""
    db_health = await db.health_check()
    if not db_health["healthy"]:
        logger.error(f"Database unhealthy: {db_health['error']}")
    return {
        "status": "ok" if db_health["healthy"] else "degraded",
        "version": __version__,
        "database": db_health,
    }


@router.post("/conductor", response_model=ConductorResult)
async def advance_conductor(
    request: ConductorRequest,
    conductor: Annotated[Conductor, Depends(get_conductor)],
) -> ConductorResult:
    """Advance a session's onboarding or check for an intervention.

    Generation failures do not fail the request: the phase still moves
    and the result carries an ``error`` field.

    Raises:
        HTTPException: 400 for a malformed request, 404 for an unknown
            session or message
    """
    try:
        return await conductor.advance(
            request.session_id,
            request.trigger,
            request.message_id,
        )
    except TriggerValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.post("/interventions/check", response_model=InterventionDecision)
async def check_intervention(request: InterventionCheckRequest) -> InterventionDecision:
    """Run the intervention heuristics over a caller-supplied history."""
    return decide(request.history, request.latest)
