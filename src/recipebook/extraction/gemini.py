"""Recipe extraction and instruction rewriting with Google Gemini."""

import json
import time
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import ValidationError

from recipebook.config import get_settings
from recipebook.logging_config import get_logger
from recipebook.schemas import Recipe

logger = get_logger(__name__)

SUPPORTED_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/webp",
        "image/heic",
        "image/heif",
        "application/pdf",
    }
)

EXTRACTION_PROMPT = """
You are an expert recipe parsing assistant.
Analyze the provided document, which may contain multiple recipes. Identify and extract EVERY SINGLE recipe you find.
Skip introductory pages, indexes, or general guides that are not specific recipes.
For each recipe, extract its details.
Provide the output as a JSON array, where each object in the array matches the provided schema for a single recipe.
If a value isn't found for a field, use an empty string or an empty array.
If no recipes are found in the document, return an empty array.
"""

REWRITE_PROMPT = """
You are a helpful kitchen assistant specializing in baking. The user is scaling a recipe.
The scaling multiplier is {multiplier}.
Please rewrite the following recipe instructions, carefully adjusting any quantities or measurements (like grams, cups, tsp, ml, etc.).
Do not change the core steps of the recipe, only the values associated with measurements.
Maintain the original structure, tone, and number of steps.
Original instructions are provided as a JSON string array.
Return the updated instructions as a JSON array of strings with the same number of elements as the original.
"""

EXTRACTION_FAILED_MESSAGE = (
    "Could not understand the recipes from the file. "
    "Please try a clearer image or a different file."
)
REWRITE_FAILED_MESSAGE = "Could not update instructions automatically."


class ExtractionError(Exception):
    """Raised when the AI service cannot produce a usable result."""

    def __init__(self, message: str, status_code: int | None = None, detail: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


# =============================================================================
# Response Schemas
# =============================================================================


def recipe_schema() -> types.Schema:
    return types.Schema(
        type=types.Type.OBJECT,
        properties={
            "title": types.Schema(type=types.Type.STRING, description="The title of the recipe."),
            "description": types.Schema(
                type=types.Type.STRING,
                description="A brief, enticing description of the recipe. If none, create one.",
            ),
            "prepTime": types.Schema(
                type=types.Type.STRING, description="Preparation time, e.g., '20 minutes'."
            ),
            "cookTime": types.Schema(
                type=types.Type.STRING, description="Cooking or baking time, e.g., '1 hour'."
            ),
            "servings": types.Schema(
                type=types.Type.STRING,
                description="The yield of the recipe, e.g., 'Makes 12 cookies'.",
            ),
            "ingredients": types.Schema(
                type=types.Type.ARRAY,
                items=types.Schema(type=types.Type.STRING),
                description="List of ingredients with quantities and units.",
            ),
            "instructions": types.Schema(
                type=types.Type.ARRAY,
                items=types.Schema(type=types.Type.STRING),
                description="Step-by-step instructions for preparing the recipe.",
            ),
        },
        required=[
            "title",
            "description",
            "prepTime",
            "cookTime",
            "servings",
            "ingredients",
            "instructions",
        ],
    )


def recipes_schema() -> types.Schema:
    return types.Schema(type=types.Type.ARRAY, items=recipe_schema())


def instructions_schema() -> types.Schema:
    return types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING))


# =============================================================================
# Extractor
# =============================================================================


class GeminiRecipeExtractor:
    """Extracts recipes from documents and rescales instructions via Gemini."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        thinking_budget: int | None = None,
        client: genai.Client | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.thinking_budget = (
            thinking_budget if thinking_budget is not None else settings.gemini_thinking_budget
        )
        self._client = client

    @property
    def name(self) -> str:
        """Return collaborator name."""
        return "gemini"

    def _get_client(self) -> genai.Client:
        """Get or create the Gemini client."""
        if self._client is None:
            if not self.api_key:
                raise ExtractionError("Gemini API key is not configured", status_code=503)
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def _generate_json(
        self,
        parts: list[types.Part],
        schema: types.Schema,
        thinking_budget: int | None = None,
    ) -> Any:
        """Run a structured-output request and decode the JSON reply."""
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=schema,
        )
        if thinking_budget:
            config.thinking_config = types.ThinkingConfig(thinking_budget=thinking_budget)

        client = self._get_client()
        start = time.perf_counter()
        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=parts,
                config=config,
            )
        except genai_errors.APIError as e:
            logger.error(f"Gemini request failed with status {e.code}: {e.message}")
            raise ExtractionError(
                f"Gemini request failed with status {e.code}",
                status_code=e.code,
                detail=e.message,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Gemini request failed: {e!r}")
            raise ExtractionError(
                f"Gemini request failed: {type(e).__name__}", detail=str(e)
            ) from e
        logger.debug(f"Gemini {self.model} answered in {time.perf_counter() - start:.2f}s")

        text = (response.text or "").strip()
        if not text:
            raise ExtractionError("Gemini returned an empty response")
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning(f"Gemini returned invalid JSON: {text[:200]}")
            raise ExtractionError("Gemini returned invalid JSON", detail=text[:500]) from e

    async def extract_recipes(self, data: bytes, mime_type: str) -> list[Recipe]:
        """
        Extract every recipe found in an uploaded photo or PDF.

        Args:
            data: Raw file bytes.
            mime_type: MIME type of the file, e.g. "image/jpeg".

        Returns:
            Extracted recipes; empty if the document holds none.

        Raises:
            ExtractionError: If the service fails or replies with something
                other than a list of recipes.
        """
        if mime_type not in SUPPORTED_MIME_TYPES:
            raise ExtractionError(f"Unsupported file type: {mime_type}", status_code=415)

        logger.info(f"Extracting recipes from {len(data)} bytes of {mime_type}")
        parts = [
            types.Part.from_text(text=EXTRACTION_PROMPT),
            types.Part.from_bytes(data=data, mime_type=mime_type),
        ]

        try:
            payload = await self._generate_json(
                parts, recipes_schema(), thinking_budget=self.thinking_budget
            )
        except ExtractionError as e:
            raise ExtractionError(
                EXTRACTION_FAILED_MESSAGE, status_code=e.status_code, detail=str(e)
            ) from e

        if not isinstance(payload, list):
            logger.error(f"Expected a list of recipes, got {type(payload).__name__}")
            raise ExtractionError(
                EXTRACTION_FAILED_MESSAGE,
                detail="The API did not return a list of recipes.",
            )

        recipes = []
        for index, item in enumerate(payload):
            if not isinstance(item, dict):
                logger.warning(f"Skipping non-object recipe at position {index}")
                continue
            try:
                recipes.append(Recipe.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed recipe {index}: {e.error_count()} errors")

        logger.info(f"Extracted {len(recipes)} recipes")
        return recipes

    async def rewrite_instructions(self, instructions: list[str], multiplier: float) -> list[str]:
        """
        Rewrite instruction steps so the measurements match a scaled recipe.

        Args:
            instructions: Original instruction steps.
            multiplier: Scale factor applied to the recipe.

        Returns:
            Rewritten steps, one per original step.

        Raises:
            ExtractionError: If the service fails or the reply does not have
                exactly one string per original step.
        """
        if multiplier == 1 or not instructions:
            return list(instructions)

        logger.info(f"Rewriting {len(instructions)} instructions for multiplier {multiplier}")
        parts = [
            types.Part.from_text(text=REWRITE_PROMPT.format(multiplier=multiplier)),
            types.Part.from_text(
                text=f"Original Instructions: {json.dumps(instructions, ensure_ascii=False)}"
            ),
        ]

        try:
            payload = await self._generate_json(parts, instructions_schema())
        except ExtractionError as e:
            raise ExtractionError(
                REWRITE_FAILED_MESSAGE, status_code=e.status_code, detail=str(e)
            ) from e

        if not isinstance(payload, list) or any(not isinstance(step, str) for step in payload):
            raise ExtractionError(
                REWRITE_FAILED_MESSAGE,
                detail="API did not return a valid string array for instructions.",
            )
        if len(payload) != len(instructions):
            logger.warning(
                f"Rewrite returned {len(payload)} steps for {len(instructions)} instructions"
            )
            raise ExtractionError(REWRITE_FAILED_MESSAGE, detail="Step count changed.")

        return payload
