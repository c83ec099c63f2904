"""Tests for the recipe API endpoints."""

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from recipebook.extraction.gemini import EXTRACTION_FAILED_MESSAGE, ExtractionError
from recipebook.schemas import Recipe
from recipebook.store.base import StoreError


@pytest.fixture
def saved_id(library, sample_recipe):
    """Id of a recipe saved before the request."""
    created = asyncio.run(library.store.add_recipes([sample_recipe]))
    return created[0].id


# =============================================================================
# Import Endpoint Tests
# =============================================================================


class TestImportEndpoint:
    """Tests for POST /api/v1/recipes/import."""

    def test_import(self, client, library, sample_recipe):
        """Test importing a photo."""
        with patch.object(
            library.extractor, "extract_recipes", AsyncMock(return_value=[sample_recipe])
        ):
            response = client.post(
                "/api/v1/recipes/import",
                files={"file": ("page.jpg", b"\xff\xd8\xff", "image/jpeg")},
            )

        assert response.status_code == 201
        data = response.json()
        assert data["total"] == 1
        recipe = data["recipes"][0]
        assert recipe["id"]
        assert recipe["multiplier"] == 1.0
        assert recipe["checkedIngredients"] == []
        assert recipe["recipe"]["prepTime"] == "20 minutes"

    def test_unsupported_file(self, client):
        """Test that text files are rejected."""
        response = client.post(
            "/api/v1/recipes/import",
            files={"file": ("notes.txt", b"2 cups flour", "text/plain")},
        )
        assert response.status_code == 415

    def test_file_too_large(self, client):
        """Test the upload size limit."""
        response = client.post(
            "/api/v1/recipes/import",
            files={"file": ("scan.png", b"x" * 4096, "image/png")},
        )
        assert response.status_code == 413

    def test_no_recipes(self, client, library):
        """Test a document without recipes."""
        with patch.object(library.extractor, "extract_recipes", AsyncMock(return_value=[])):
            response = client.post(
                "/api/v1/recipes/import",
                files={"file": ("cover.pdf", b"%PDF", "application/pdf")},
            )
        assert response.status_code == 422

    def test_extraction_failure(self, client, library):
        """Test that extraction failures map to a bad gateway."""
        with patch.object(
            library.extractor,
            "extract_recipes",
            AsyncMock(side_effect=ExtractionError(EXTRACTION_FAILED_MESSAGE, status_code=500)),
        ):
            response = client.post(
                "/api/v1/recipes/import",
                files={"file": ("page.png", b"\x89PNG", "image/png")},
            )
        assert response.status_code == 502
        assert response.json()["detail"] == "Failed to import recipes"

    def test_extraction_unreachable(self, client, mock_genai_client):
        """Test that a dropped connection to the AI service maps to a bad gateway."""
        mock_genai_client.aio.models.generate_content.side_effect = httpx.RemoteProtocolError(
            "peer closed connection"
        )
        response = client.post(
            "/api/v1/recipes/import",
            files={"file": ("page.png", b"\x89PNG", "image/png")},
        )
        assert response.status_code == 502
        assert response.json()["detail"] == "Failed to import recipes"

    def test_extraction_not_configured(self, client, library):
        """Test that a missing API key maps to service unavailable."""
        with patch.object(
            library.extractor,
            "extract_recipes",
            AsyncMock(side_effect=ExtractionError("Gemini API key is not configured", 503)),
        ):
            response = client.post(
                "/api/v1/recipes/import",
                files={"file": ("page.png", b"\x89PNG", "image/png")},
            )
        assert response.status_code == 503

    def test_store_failure(self, client, library, sample_recipe):
        """Test that database failures map to a bad gateway."""
        with (
            patch.object(
                library.extractor, "extract_recipes", AsyncMock(return_value=[sample_recipe])
            ),
            patch.object(library.store, "add_recipes", AsyncMock(side_effect=StoreError("down"))),
        ):
            response = client.post(
                "/api/v1/recipes/import",
                files={"file": ("page.png", b"\x89PNG", "image/png")},
            )
        assert response.status_code == 502


# =============================================================================
# Query Endpoint Tests
# =============================================================================


class TestQueryEndpoints:
    """Tests for reading saved recipes."""

    def test_list_empty(self, client):
        """Test listing with no saved recipes."""
        response = client.get("/api/v1/recipes")
        assert response.status_code == 200
        assert response.json() == {"recipes": [], "total": 0}

    def test_list_newest_first(self, client, library):
        """Test that the newest recipe comes first."""
        asyncio.run(library.store.add_recipes([Recipe(title="Old")]))
        asyncio.run(library.store.add_recipes([Recipe(title="New")]))

        response = client.get("/api/v1/recipes")

        titles = [item["recipe"]["title"] for item in response.json()["recipes"]]
        assert titles == ["New", "Old"]

    def test_get_scaled(self, client, saved_id):
        """Test getting a recipe scaled by a query multiplier."""
        response = client.get(f"/api/v1/recipes/{saved_id}", params={"multiplier": 2})

        assert response.status_code == 200
        data = response.json()
        assert data["multiplier"] == 2
        assert data["scaledIngredients"] == [
            "2 cup butter",
            "3 cups sugar",
            "4 eggs",
            "1 1/2 tsp salt",
            "pinch of nutmeg",
        ]
        assert data["servingsCount"] == 24
        assert data["costPerServing"] == 0.0
        assert data["state"]["recipe"]["ingredients"][0] == "1 cup butter"

    def test_get_saved_multiplier(self, client, saved_id):
        """Test that the saved multiplier is the default."""
        client.patch(f"/api/v1/recipes/{saved_id}", json={"multiplier": 0.5})

        data = client.get(f"/api/v1/recipes/{saved_id}").json()

        assert data["multiplier"] == 0.5
        assert data["scaledIngredients"][2] == "1 eggs"

    def test_get_rejects_zero_multiplier(self, client, saved_id):
        """Test that a zero query multiplier is invalid."""
        response = client.get(f"/api/v1/recipes/{saved_id}", params={"multiplier": 0})
        assert response.status_code == 422

    def test_get_missing(self, client):
        """Test getting an unknown recipe."""
        response = client.get("/api/v1/recipes/nope")
        assert response.status_code == 404

    def test_ingredient_text(self, client, saved_id):
        """Test the copyable ingredient list."""
        response = client.get(
            f"/api/v1/recipes/{saved_id}/ingredients/text", params={"multiplier": 2}
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text.splitlines() == [
            "• 2 cup butter",
            "• 3 cups sugar",
            "• 4 eggs",
            "• 1 1/2 tsp salt",
            "• pinch of nutmeg",
        ]

    def test_instructions_rewritten(self, client, library, saved_id):
        """Test getting rewritten instructions."""
        steps = ["Brown 2 cups butter.", "Beat in 3 cups sugar and 4 eggs.", "Bake at 180°C."]
        with patch.object(
            library.extractor, "rewrite_instructions", AsyncMock(return_value=steps)
        ):
            response = client.get(
                f"/api/v1/recipes/{saved_id}/instructions", params={"multiplier": 2}
            )

        assert response.status_code == 200
        data = response.json()
        assert data["recipeId"] == saved_id
        assert data["instructions"] == steps
        assert data["rewritten"] is True
        assert data["error"] is None

    def test_instructions_fallback(self, client, library, saved_id):
        """Test that a failed rewrite still returns the original steps."""
        with patch.object(
            library.extractor,
            "rewrite_instructions",
            AsyncMock(side_effect=ExtractionError("Could not update instructions automatically.")),
        ):
            response = client.get(
                f"/api/v1/recipes/{saved_id}/instructions", params={"multiplier": 2}
            )

        assert response.status_code == 200
        data = response.json()
        assert data["instructions"][0] == "Brown 1 cup butter and let it cool."
        assert data["rewritten"] is False
        assert "adjust manually" in data["error"]


# =============================================================================
# Update Endpoint Tests
# =============================================================================


class TestUpdateEndpoints:
    """Tests for changing user state."""

    def test_patch(self, client, saved_id):
        """Test a partial update."""
        response = client.patch(
            f"/api/v1/recipes/{saved_id}",
            json={"rating": 5, "notes": "Double the vanilla", "cost": 8.5},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["rating"] == 5
        assert data["notes"] == "Double the vanilla"
        assert data["cost"] == 8.5
        assert data["multiplier"] == 1.0

    def test_patch_clamps_multiplier(self, client, saved_id):
        """Test that tiny multipliers are raised to the minimum."""
        response = client.patch(f"/api/v1/recipes/{saved_id}", json={"multiplier": 0})
        assert response.json()["multiplier"] == 0.1

    def test_patch_checked_ingredients(self, client, saved_id):
        """Test replacing the checked list with the stored key name."""
        response = client.patch(
            f"/api/v1/recipes/{saved_id}", json={"checkedIngredients": ["2 eggs"]}
        )
        assert response.json()["checkedIngredients"] == ["2 eggs"]

    @pytest.mark.parametrize(
        "body",
        [{"rating": 6}, {"cost": -1}, {"recipe": {"title": "Renamed"}}],
    )
    def test_patch_invalid(self, client, saved_id, body):
        """Test that invalid updates are rejected."""
        response = client.patch(f"/api/v1/recipes/{saved_id}", json=body)
        assert response.status_code == 422

    def test_patch_missing(self, client):
        """Test updating an unknown recipe."""
        response = client.patch("/api/v1/recipes/nope", json={"rating": 3})
        assert response.status_code == 404

    def test_toggle_ingredient(self, client, saved_id):
        """Test checking and un-checking an ingredient."""
        url = f"/api/v1/recipes/{saved_id}/ingredients/toggle"

        first = client.post(url, json={"ingredient": "2 eggs"})
        assert first.json()["checkedIngredients"] == ["2 eggs"]

        second = client.post(url, json={"ingredient": "2 eggs"})
        assert second.json()["checkedIngredients"] == []

    def test_toggle_requires_ingredient(self, client, saved_id):
        """Test that an empty ingredient is rejected."""
        response = client.post(
            f"/api/v1/recipes/{saved_id}/ingredients/toggle", json={"ingredient": ""}
        )
        assert response.status_code == 422

    def test_delete(self, client, saved_id):
        """Test deleting a recipe."""
        response = client.delete(f"/api/v1/recipes/{saved_id}")
        assert response.status_code == 204

        assert client.get(f"/api/v1/recipes/{saved_id}").status_code == 404
        assert client.delete(f"/api/v1/recipes/{saved_id}").status_code == 404

    def test_store_failure_on_update(self, client, library, saved_id):
        """Test that database failures map to a bad gateway."""
        with patch.object(
            library.store, "update_recipe", AsyncMock(side_effect=StoreError("down"))
        ):
            response = client.patch(f"/api/v1/recipes/{saved_id}", json={"rating": 2})

        assert response.status_code == 502
        assert response.json()["detail"] == "Failed to update recipe"
