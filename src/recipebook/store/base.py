"""Base interface for recipe persistence backends."""

import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from recipebook.schemas import Recipe, RecipeState

RecipesCallback = Callable[[list[RecipeState]], Awaitable[None] | None]
Unsubscribe = Callable[[], Awaitable[None]]


class StoreError(Exception):
    """Raised when the recipe database cannot complete a request."""

    def __init__(self, message: str, status_code: int | None = None, response: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


async def notify(callback: RecipesCallback, recipes: list[RecipeState]) -> None:
    """Invoke a subscriber callback that may be sync or async."""
    result = callback(recipes)
    if inspect.isawaitable(result):
        await result


class RecipeStore(ABC):
    """Abstract base class for recipe stores."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return backend name for logging and identification."""
        pass

    @abstractmethod
    async def list_recipes(self) -> list[RecipeState]:
        """
        Fetch all saved recipes.

        Returns:
            Recipe states, newest first.
        """
        pass

    @abstractmethod
    async def get_recipe(self, recipe_id: str) -> RecipeState | None:
        """
        Fetch a single saved recipe.

        Args:
            recipe_id: The recipe key.

        Returns:
            The recipe state, or None if it does not exist.
        """
        pass

    @abstractmethod
    async def add_recipes(self, recipes: list[Recipe]) -> list[RecipeState]:
        """
        Save newly extracted recipes with default user state.

        Args:
            recipes: Recipes to save.

        Returns:
            The created recipe states, in input order.
        """
        pass

    @abstractmethod
    async def update_recipe(self, recipe_id: str, updates: dict[str, Any]) -> None:
        """
        Update some fields of a saved recipe.

        Args:
            recipe_id: The recipe key.
            updates: Stored field names mapped to their new values.
        """
        pass

    @abstractmethod
    async def delete_recipe(self, recipe_id: str) -> None:
        """Delete a saved recipe."""
        pass

    @abstractmethod
    async def subscribe(self, callback: RecipesCallback) -> Unsubscribe:
        """
        Listen for changes to the recipe list.

        Args:
            callback: Called with the full list (newest first) on every change.

        Returns:
            Coroutine function that detaches the listener.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the backend is reachable.

        Returns:
            True if healthy, False otherwise.
        """
        pass

    async def close(self) -> None:
        """Release any open connections."""
        return None

    async def __aenter__(self) -> "RecipeStore":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
