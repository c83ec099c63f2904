"""AI-backed recipe extraction."""

from recipebook.extraction.gemini import (
    SUPPORTED_MIME_TYPES,
    ExtractionError,
    GeminiRecipeExtractor,
)

__all__ = [
    "SUPPORTED_MIME_TYPES",
    "ExtractionError",
    "GeminiRecipeExtractor",
]
