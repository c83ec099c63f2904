"""Recipe persistence backends."""

from recipebook.config import Settings, get_settings
from recipebook.store.base import RecipesCallback, RecipeStore, StoreError, Unsubscribe
from recipebook.store.firebase import FirebaseRecipeStore
from recipebook.store.memory import InMemoryRecipeStore

__all__ = [
    "FirebaseRecipeStore",
    "InMemoryRecipeStore",
    "RecipeStore",
    "RecipesCallback",
    "StoreError",
    "Unsubscribe",
    "create_store",
]


def create_store(settings: Settings | None = None) -> RecipeStore:
    """Create the store selected by the storage_backend setting."""
    settings = settings or get_settings()
    if settings.storage_backend == "firebase":
        return FirebaseRecipeStore(
            database_url=settings.firebase_database_url,
            auth_token=settings.firebase_auth_token,
            path=settings.firebase_recipes_path,
            timeout=settings.http_timeout,
            max_retries=settings.http_max_retries,
        )
    return InMemoryRecipeStore()
