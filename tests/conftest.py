"""Pytest configuration and shared fixtures."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from recipebook.extraction.gemini import GeminiRecipeExtractor
from recipebook.main import app
from recipebook.routers.recipes import get_library
from recipebook.schemas import Recipe
from recipebook.services.library import RecipeLibrary
from recipebook.store.memory import InMemoryRecipeStore

# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (require external services)"
    )


# =============================================================================
# Recipe Fixtures
# =============================================================================


@pytest.fixture
def sample_recipe_payload():
    """A recipe as returned by the extraction service (camelCase keys)."""
    return {
        "title": "Brown Butter Cookies",
        "description": "Chewy cookies with nutty brown butter.",
        "prepTime": "20 minutes",
        "cookTime": "12 minutes",
        "servings": "Makes 24 cookies",
        "ingredients": [
            "1 cup butter",
            "1 1/2 cups sugar",
            "2 eggs",
            "¾ tsp salt",
            "pinch of nutmeg",
        ],
        "instructions": [
            "Brown 1 cup butter and let it cool.",
            "Beat in 1 1/2 cups sugar and 2 eggs.",
            "Bake at 180°C for 12 minutes.",
        ],
    }


@pytest.fixture
def sample_recipe(sample_recipe_payload):
    """The sample recipe as a model."""
    return Recipe.model_validate(sample_recipe_payload)


@pytest.fixture
def sample_bread_payload():
    """A second extracted recipe."""
    return {
        "title": "Soda Bread",
        "description": "",
        "prepTime": "10 minutes",
        "cookTime": "40 minutes",
        "servings": "Serves 8",
        "ingredients": ["4 cups flour", "1 tsp baking soda", "1 3/4 cups buttermilk"],
        "instructions": ["Mix everything.", "Bake for 40 minutes."],
    }


@pytest.fixture
def sample_firebase_record(sample_recipe_payload):
    """A stored recipe record as the database returns it."""
    return {
        "recipe": sample_recipe_payload,
        "multiplier": 2,
        "rating": 4,
        "notes": "Use salted butter",
        "cost": 6.0,
        "checkedIngredients": ["2 eggs"],
    }


# =============================================================================
# Gemini Mock Fixtures
# =============================================================================


def _gemini_response(payload) -> SimpleNamespace:
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return SimpleNamespace(text=text)


@pytest.fixture
def gemini_response():
    """Factory for fake generate_content responses carrying a JSON payload."""
    return _gemini_response


@pytest.fixture
def mock_genai_client():
    """Mock google-genai client with an async generate_content."""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock()
    return client


@pytest.fixture
def extractor(mock_genai_client):
    """Extractor wired to the mock client."""
    return GeminiRecipeExtractor(
        api_key="test-key",
        model="gemini-test",
        thinking_budget=1024,
        client=mock_genai_client,
    )


# =============================================================================
# Store, Library and API Fixtures
# =============================================================================


@pytest.fixture
def memory_store():
    """Empty in-memory store."""
    return InMemoryRecipeStore()


@pytest.fixture
def library(memory_store, extractor):
    """Library over the in-memory store and the mocked extractor."""
    return RecipeLibrary(memory_store, extractor, max_upload_bytes=1024)


@pytest.fixture
def client(library):
    """API test client using the test library."""
    app.dependency_overrides[get_library] = lambda: library
    yield TestClient(app)
    app.dependency_overrides.clear()
