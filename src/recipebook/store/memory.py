"""Process-local recipe store for development and tests."""

import uuid
from typing import Any

from recipebook.logging_config import get_logger
from recipebook.schemas import Recipe, RecipeState
from recipebook.store.base import RecipesCallback, RecipeStore, StoreError, Unsubscribe, notify

logger = get_logger(__name__)


class InMemoryRecipeStore(RecipeStore):
    """Keeps recipes in a dict; contents are lost when the process exits."""

    def __init__(self) -> None:
        # Insertion order doubles as creation order
        self._records: dict[str, dict[str, Any]] = {}
        self._subscribers: list[RecipesCallback] = []

    @property
    def name(self) -> str:
        """Return backend name."""
        return "memory"

    def _snapshot(self) -> list[RecipeState]:
        return [
            RecipeState.model_validate({"id": recipe_id, **record})
            for recipe_id, record in reversed(self._records.items())
        ]

    async def _publish(self) -> None:
        recipes = self._snapshot()
        for callback in list(self._subscribers):
            await notify(callback, recipes)

    async def list_recipes(self) -> list[RecipeState]:
        return self._snapshot()

    async def get_recipe(self, recipe_id: str) -> RecipeState | None:
        record = self._records.get(recipe_id)
        if record is None:
            return None
        return RecipeState.model_validate({"id": recipe_id, **record})

    async def add_recipes(self, recipes: list[Recipe]) -> list[RecipeState]:
        created = []
        for recipe in recipes:
            state = RecipeState.new(uuid.uuid4().hex, recipe)
            self._records[state.id] = state.to_record()
            created.append(state)

        logger.info(f"Saved {len(created)} recipes in memory")
        if created:
            await self._publish()
        return created

    async def update_recipe(self, recipe_id: str, updates: dict[str, Any]) -> None:
        if recipe_id not in self._records:
            raise StoreError(f"Recipe {recipe_id} does not exist", status_code=404)

        self._records[recipe_id] = {**self._records[recipe_id], **updates}
        await self._publish()

    async def delete_recipe(self, recipe_id: str) -> None:
        if self._records.pop(recipe_id, None) is not None:
            await self._publish()

    async def subscribe(self, callback: RecipesCallback) -> Unsubscribe:
        self._subscribers.append(callback)
        await notify(callback, self._snapshot())

        async def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def health_check(self) -> bool:
        return True
