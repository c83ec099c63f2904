"""Script to import recipes from local photos or PDFs.

Extracts every recipe in each file with Gemini, saves them to the configured
store and prints the ingredient lists, optionally scaled.

Run with: python scripts/import_recipes.py cookies.jpg --multiplier 2
List saved recipes with: python scripts/import_recipes.py --list

Requires GEMINI_API_KEY; set STORAGE_BACKEND=firebase to persist.
"""

import argparse
import asyncio
from pathlib import Path

from recipebook.config import get_settings
from recipebook.extraction import ExtractionError, GeminiRecipeExtractor
from recipebook.logging_config import configure_logging, get_logger
from recipebook.scaling import format_ingredient_list
from recipebook.services import LibraryError, RecipeLibrary
from recipebook.store import StoreError, create_store

logger = get_logger(__name__)


def print_recipe(title: str, ingredients: list[str], multiplier: float) -> None:
    """Print a recipe title and its scaled ingredient list."""
    suffix = f" (x{multiplier:g})" if multiplier != 1 else ""
    print(f"\n{title or 'Untitled recipe'}{suffix}")
    print("-" * 60)
    print(format_ingredient_list(ingredients, multiplier))


async def import_files(paths: list[Path], multiplier: float) -> int:
    """Import each file and return the number of files that failed."""
    store = create_store(get_settings())
    library = RecipeLibrary(store, GeminiRecipeExtractor())
    failures = 0

    async with store:
        for path in paths:
            try:
                created = await library.import_file(path.read_bytes(), None, path.name)
            except (LibraryError, ExtractionError, StoreError, OSError) as e:
                logger.error(f"Failed to import {path}: {e}")
                failures += 1
                continue

            for state in created:
                print_recipe(state.recipe.title, state.recipe.ingredients, multiplier)

    return failures


async def list_saved(multiplier: float) -> None:
    """Print every saved recipe."""
    async with create_store(get_settings()) as store:
        recipes = await store.list_recipes()
        for state in recipes:
            print_recipe(state.recipe.title, state.recipe.ingredients, multiplier)
        print(f"\n({len(recipes)} recipes)")


def main():
    parser = argparse.ArgumentParser(description="Import recipes from photos or PDFs")
    parser.add_argument("files", nargs="*", type=Path, help="Image or PDF files to import")
    parser.add_argument("--list", "-l", action="store_true", help="List saved recipes")
    parser.add_argument(
        "--multiplier", "-m", type=float, default=1.0, help="Scale ingredient quantities"
    )

    args = parser.parse_args()
    configure_logging(log_level=get_settings().log_level)

    if args.list:
        asyncio.run(list_saved(args.multiplier))
    elif args.files:
        failures = asyncio.run(import_files(args.files, args.multiplier))
        raise SystemExit(1 if failures else 0)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
