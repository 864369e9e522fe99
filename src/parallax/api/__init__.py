"""FastAPI routes for Parallax."""

from parallax.api.routes import router

__all__ = ["router"]
