"""Service layer for the recipe library."""

from recipebook.services.library import (
    FileTooLargeError,
    LibraryError,
    NoRecipesFoundError,
    RecipeLibrary,
    RecipeNotFoundError,
    UnsupportedFileError,
    resolve_mime_type,
)

__all__ = [
    "FileTooLargeError",
    "LibraryError",
    "NoRecipesFoundError",
    "RecipeLibrary",
    "RecipeNotFoundError",
    "UnsupportedFileError",
    "resolve_mime_type",
]
