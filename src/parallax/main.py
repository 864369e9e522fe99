"""FastAPI application entry point for Parallax."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from parallax import __version__
from parallax.api.routes import get_db_client, router
from parallax.config import get_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the generation setup and check the database once on startup."""
    settings = get_settings()
    logger.info(f"Starting Parallax conductor v{__version__}")
    logger.info(
        f"Generation: model={settings.claude_model}, "
        f"timeout={settings.generation_timeout_seconds}s, "
        f"retries={settings.generation_max_retries}"
    )

    db_health = await get_db_client().health_check()
    if db_health["healthy"]:
        logger.info(f"Database reachable ({db_health['latency_ms']}ms)")
    else:
        # Serve anyway; /health reports degraded until the store recovers
        logger.error(f"Database unreachable at startup: {db_health['error']}")

    yield

    logger.info("Shutting down Parallax conductor")


def create_app() -> FastAPI:
    """Build the application with the conductor routes mounted."""
    settings = get_settings()

    app = FastAPI(
        title="Parallax",
        description="Conversation phase controller and intervention engine",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    # Browser clients call the conductor directly from the session page
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "parallax.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
