"""API routes for saved recipes."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from recipebook.extraction.gemini import ExtractionError
from recipebook.logging_config import get_logger
from recipebook.schemas import InstructionsResult, RecipeState, RecipeStateUpdate, ScaledRecipe
from recipebook.services.library import (
    FileTooLargeError,
    NoRecipesFoundError,
    RecipeLibrary,
    RecipeNotFoundError,
    UnsupportedFileError,
)
from recipebook.store.base import StoreError

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["recipes"])


# Request/Response schemas
class RecipeListResponse(BaseModel):
    """List of saved recipes, newest first."""

    recipes: list[RecipeState]
    total: int


class ToggleIngredientRequest(BaseModel):
    """Request to check or un-check one ingredient line."""

    ingredient: str = Field(min_length=1)


MultiplierQuery = Annotated[
    float | None,
    Query(gt=0, description="Scale factor; defaults to the saved multiplier"),
]


def get_library(request: Request) -> RecipeLibrary:
    """Get the recipe library created at startup."""
    return request.app.state.library


def _collaborator_error(e: Exception, action: str) -> HTTPException:
    """Translate a store or extraction failure into an HTTP error."""
    if isinstance(e, ExtractionError):
        if e.status_code == 415:
            return HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(e))
        if e.status_code == 503:
            return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Failed to {action}",
    )


# =============================================================================
# Recipe Endpoints
# =============================================================================


@router.post(
    "/recipes/import",
    response_model=RecipeListResponse,
    status_code=status.HTTP_201_CREATED,
)
async def import_recipes(
    file: Annotated[UploadFile, File(description="Photo or PDF of one or more recipes")],
    library: RecipeLibrary = Depends(get_library),
) -> RecipeListResponse:
    """
    Import recipes from an uploaded photo or PDF.

    Every recipe found in the document is extracted and saved with default
    state (multiplier 1, no rating, no notes, no cost).
    """
    data = await file.read()
    logger.info(f"Importing recipes from {file.filename} ({file.content_type}, {len(data)} bytes)")

    try:
        created = await library.import_file(data, file.content_type, file.filename)
    except UnsupportedFileError as e:
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(e))
    except FileTooLargeError as e:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(e))
    except NoRecipesFoundError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except (ExtractionError, StoreError) as e:
        logger.error(f"Failed to import {file.filename}: {e}")
        raise _collaborator_error(e, "import recipes")

    return RecipeListResponse(recipes=created, total=len(created))


@router.get("/recipes", response_model=RecipeListResponse)
async def list_recipes(
    library: RecipeLibrary = Depends(get_library),
) -> RecipeListResponse:
    """List saved recipes, newest first."""
    logger.info("Listing recipes")

    try:
        recipes = await library.list_recipes()
    except StoreError as e:
        logger.error(f"Failed to list recipes: {e}")
        raise _collaborator_error(e, "fetch recipes")

    return RecipeListResponse(recipes=recipes, total=len(recipes))


@router.get("/recipes/{recipe_id}", response_model=ScaledRecipe)
async def get_recipe(
    recipe_id: str,
    multiplier: MultiplierQuery = None,
    library: RecipeLibrary = Depends(get_library),
) -> ScaledRecipe:
    """Get a recipe with its ingredients scaled by the saved or given multiplier."""
    logger.info(f"Fetching recipe {recipe_id}, multiplier={multiplier}")

    try:
        return await library.scaled_view(recipe_id, multiplier)
    except RecipeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StoreError as e:
        logger.error(f"Failed to fetch recipe {recipe_id}: {e}")
        raise _collaborator_error(e, "fetch recipe")


@router.patch("/recipes/{recipe_id}", response_model=RecipeState)
async def update_recipe(
    recipe_id: str,
    update: RecipeStateUpdate,
    library: RecipeLibrary = Depends(get_library),
) -> RecipeState:
    """
    Update the multiplier, rating, notes, cost or checked ingredients.

    Only the fields present in the body are changed. Multipliers below 0.1
    are raised to 0.1.
    """
    logger.info(f"Updating recipe {recipe_id}")

    try:
        return await library.update_recipe(recipe_id, update)
    except RecipeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StoreError as e:
        logger.error(f"Failed to update recipe {recipe_id}: {e}")
        raise _collaborator_error(e, "update recipe")


@router.post("/recipes/{recipe_id}/ingredients/toggle", response_model=RecipeState)
async def toggle_ingredient(
    recipe_id: str,
    request: ToggleIngredientRequest,
    library: RecipeLibrary = Depends(get_library),
) -> RecipeState:
    """Check off an ingredient, or un-check it if it was already checked."""
    try:
        return await library.toggle_ingredient(recipe_id, request.ingredient)
    except RecipeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StoreError as e:
        logger.error(f"Failed to toggle ingredient on {recipe_id}: {e}")
        raise _collaborator_error(e, "update recipe")


@router.get("/recipes/{recipe_id}/ingredients/text", response_class=PlainTextResponse)
async def get_ingredient_list_text(
    recipe_id: str,
    multiplier: MultiplierQuery = None,
    library: RecipeLibrary = Depends(get_library),
) -> str:
    """Get the scaled ingredients as a bulleted list, ready to copy."""
    try:
        return await library.ingredient_list_text(recipe_id, multiplier)
    except RecipeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StoreError as e:
        logger.error(f"Failed to build ingredient list for {recipe_id}: {e}")
        raise _collaborator_error(e, "fetch recipe")


@router.get("/recipes/{recipe_id}/instructions", response_model=InstructionsResult)
async def get_scaled_instructions(
    recipe_id: str,
    multiplier: MultiplierQuery = None,
    library: RecipeLibrary = Depends(get_library),
) -> InstructionsResult:
    """
    Get the instructions with measurements adjusted for the multiplier.

    When the rewrite fails the original instructions are returned along with
    an error message.
    """
    logger.info(f"Scaling instructions for {recipe_id}, multiplier={multiplier}")

    try:
        return await library.scaled_instructions(recipe_id, multiplier)
    except RecipeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StoreError as e:
        logger.error(f"Failed to fetch recipe {recipe_id}: {e}")
        raise _collaborator_error(e, "fetch recipe")


@router.delete("/recipes/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recipe(
    recipe_id: str,
    library: RecipeLibrary = Depends(get_library),
) -> None:
    """Delete a saved recipe."""
    logger.info(f"Deleting recipe {recipe_id}")

    try:
        await library.delete_recipe(recipe_id)
    except RecipeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StoreError as e:
        logger.error(f"Failed to delete recipe {recipe_id}: {e}")
        raise _collaborator_error(e, "delete recipe")
