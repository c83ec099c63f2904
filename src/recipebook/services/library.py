"""Business logic service layer for the recipe library."""

import mimetypes

from recipebook.config import get_settings
from recipebook.extraction.gemini import (
    SUPPORTED_MIME_TYPES,
    ExtractionError,
    GeminiRecipeExtractor,
)
from recipebook.logging_config import LoggingContext, get_logger
from recipebook.scaling.recipes import (
    clamp_multiplier,
    cost_per_serving,
    format_ingredient_list,
    parse_servings,
    scale_ingredients,
    toggle_checked,
)
from recipebook.schemas import (
    InstructionsResult,
    RecipeState,
    RecipeStateUpdate,
    ScaledRecipe,
)
from recipebook.store.base import RecipeStore

logger = get_logger(__name__)


class LibraryError(Exception):
    """Base exception for recipe library errors."""


class RecipeNotFoundError(LibraryError):
    """Raised when a recipe id does not exist."""

    def __init__(self, recipe_id: str):
        super().__init__(f"Recipe {recipe_id} not found")
        self.recipe_id = recipe_id


class UnsupportedFileError(LibraryError):
    """Raised when an upload is not an image or PDF."""


class FileTooLargeError(LibraryError):
    """Raised when an upload exceeds the configured size limit."""


class NoRecipesFoundError(LibraryError):
    """Raised when extraction finds no recipe in an upload."""


def resolve_mime_type(declared: str | None, filename: str | None = None) -> str | None:
    """Get a supported MIME type from the declared type or the file name."""
    if declared:
        declared = declared.split(";")[0].strip().lower()
        if declared in SUPPORTED_MIME_TYPES:
            return declared
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed in SUPPORTED_MIME_TYPES:
            return guessed
    return None


class RecipeLibrary:
    """Service layer tying the recipe store to the extraction service."""

    def __init__(
        self,
        store: RecipeStore,
        extractor: GeminiRecipeExtractor,
        max_upload_bytes: int | None = None,
    ):
        self.store = store
        self.extractor = extractor
        self.max_upload_bytes = max_upload_bytes or get_settings().max_upload_bytes

    # =========================================================================
    # Import
    # =========================================================================

    async def import_file(
        self,
        data: bytes,
        mime_type: str | None,
        filename: str | None = None,
    ) -> list[RecipeState]:
        """
        Extract recipes from an uploaded photo or PDF and save them.

        Args:
            data: Raw file bytes.
            mime_type: Declared content type of the upload.
            filename: Original file name, used when the type is missing.

        Returns:
            The saved recipe states.
        """
        resolved = resolve_mime_type(mime_type, filename)
        if resolved is None:
            raise UnsupportedFileError(
                f"Unsupported file type {mime_type or 'unknown'}; upload an image or a PDF"
            )
        if not data:
            raise UnsupportedFileError("The uploaded file is empty")
        if len(data) > self.max_upload_bytes:
            raise FileTooLargeError(
                f"File is {len(data)} bytes; the limit is {self.max_upload_bytes} bytes"
            )

        logger.info(f"Importing {filename or 'upload'} ({resolved}, {len(data)} bytes)")
        recipes = await self.extractor.extract_recipes(data, resolved)
        if not recipes:
            raise NoRecipesFoundError("No recipes were found in the file")

        created = await self.store.add_recipes(recipes)
        logger.info(f"Imported {len(created)} recipes from {filename or 'upload'}")
        return created

    # =========================================================================
    # Queries
    # =========================================================================

    async def list_recipes(self) -> list[RecipeState]:
        """List saved recipes, newest first."""
        return await self.store.list_recipes()

    async def get_recipe(self, recipe_id: str) -> RecipeState:
        """Get a saved recipe or raise RecipeNotFoundError."""
        state = await self.store.get_recipe(recipe_id)
        if state is None:
            raise RecipeNotFoundError(recipe_id)
        return state

    async def scaled_view(self, recipe_id: str, multiplier: float | None = None) -> ScaledRecipe:
        """
        Get a recipe with its ingredient lines scaled.

        Args:
            recipe_id: The recipe key.
            multiplier: Overrides the saved multiplier when given.
        """
        state = await self.get_recipe(recipe_id)
        factor = clamp_multiplier(multiplier) if multiplier is not None else state.multiplier

        return ScaledRecipe(
            state=state,
            multiplier=factor,
            scaled_ingredients=scale_ingredients(state.recipe.ingredients, factor),
            servings_count=parse_servings(state.recipe.servings),
            cost_per_serving=cost_per_serving(state.cost, state.recipe.servings),
        )

    async def ingredient_list_text(self, recipe_id: str, multiplier: float | None = None) -> str:
        """Get the scaled ingredients as a bulleted plain-text list."""
        state = await self.get_recipe(recipe_id)
        factor = clamp_multiplier(multiplier) if multiplier is not None else state.multiplier
        return format_ingredient_list(state.recipe.ingredients, factor)

    async def scaled_instructions(
        self, recipe_id: str, multiplier: float | None = None
    ) -> InstructionsResult:
        """
        Get the instructions rewritten for a multiplier.

        Falls back to the original steps, with an error message, when the
        rewrite fails.
        """
        state = await self.get_recipe(recipe_id)
        factor = clamp_multiplier(multiplier) if multiplier is not None else state.multiplier
        original = state.recipe.instructions

        if factor == 1:
            return InstructionsResult(recipe_id=recipe_id, multiplier=factor, instructions=original)

        with LoggingContext(recipe_id=recipe_id):
            try:
                rewritten = await self.extractor.rewrite_instructions(original, factor)
            except ExtractionError as e:
                logger.warning(f"Instruction rewrite failed: {e} ({e.detail})")
                return InstructionsResult(
                    recipe_id=recipe_id,
                    multiplier=factor,
                    instructions=original,
                    error="Could not update instructions automatically. Please adjust manually.",
                )

        return InstructionsResult(
            recipe_id=recipe_id,
            multiplier=factor,
            instructions=rewritten,
            rewritten=True,
        )

    # =========================================================================
    # Updates
    # =========================================================================

    async def update_recipe(self, recipe_id: str, update: RecipeStateUpdate) -> RecipeState:
        """Apply a partial update and return the new state."""
        state = await self.get_recipe(recipe_id)
        fields = update.to_fields()
        if not fields:
            return state

        with LoggingContext(recipe_id=recipe_id):
            logger.info(f"Updating fields {sorted(fields)}")
            await self.store.update_recipe(recipe_id, fields)

        return state.model_copy(update=update.model_dump(exclude_unset=True, exclude_none=True))

    async def set_multiplier(self, recipe_id: str, multiplier: float) -> RecipeState:
        return await self.update_recipe(recipe_id, RecipeStateUpdate(multiplier=multiplier))

    async def toggle_ingredient(self, recipe_id: str, ingredient: str) -> RecipeState:
        """Check off an ingredient, or un-check it if already checked."""
        state = await self.get_recipe(recipe_id)
        checked = toggle_checked(state.checked_ingredients, ingredient)
        return await self.update_recipe(recipe_id, RecipeStateUpdate(checked_ingredients=checked))

    async def rate(self, recipe_id: str, rating: int) -> RecipeState:
        """Rate a recipe from 1 to 5 stars, or 0 to clear the rating."""
        return await self.update_recipe(recipe_id, RecipeStateUpdate(rating=rating))

    async def set_notes(self, recipe_id: str, notes: str) -> RecipeState:
        return await self.update_recipe(recipe_id, RecipeStateUpdate(notes=notes))

    async def set_cost(self, recipe_id: str, cost: float) -> RecipeState:
        return await self.update_recipe(recipe_id, RecipeStateUpdate(cost=cost))

    async def delete_recipe(self, recipe_id: str) -> None:
        """Delete a saved recipe or raise RecipeNotFoundError."""
        await self.get_recipe(recipe_id)
        await self.store.delete_recipe(recipe_id)
