"""API routers for the recipebook application."""

from recipebook.routers.quantities import router as quantities_router
from recipebook.routers.recipes import router as recipes_router

__all__ = [
    "quantities_router",
    "recipes_router",
]
