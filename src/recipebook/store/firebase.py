"""Firebase Realtime Database recipe store over the REST API."""

import asyncio
import contextlib
import re
from typing import Any

import httpx
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from recipebook.config import get_settings
from recipebook.logging_config import get_logger
from recipebook.schemas import Recipe, RecipeState
from recipebook.store.base import RecipesCallback, RecipeStore, StoreError, Unsubscribe, notify

logger = get_logger(__name__)

# Realtime Database keys may not contain these characters
_VALID_KEY = re.compile(r"^[^.$#\[\]/]+$")

_TERMINAL_STREAM_EVENTS = {"cancel", "auth_revoked"}
_CHANGE_STREAM_EVENTS = {"put", "patch"}


class FirebaseRecipeStore(RecipeStore):
    """Recipe store backed by a Firebase Realtime Database node."""

    DEFAULT_TIMEOUT = 30.0
    MAX_RETRIES = 3
    BACKOFF_BASE = 1
    BACKOFF_MAX = 30
    RECONNECT_DELAY = 5.0

    def __init__(
        self,
        database_url: str | None = None,
        auth_token: str | None = None,
        path: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ):
        settings = get_settings()
        database_url = database_url or settings.firebase_database_url
        if not database_url:
            raise StoreError("Firebase database URL is not configured")

        path = path or settings.firebase_recipes_path
        self.recipes_url = f"{database_url.rstrip('/')}/{path.strip('/')}"
        self.auth_token = auth_token if auth_token is not None else settings.firebase_auth_token
        self.timeout = timeout or settings.http_timeout or self.DEFAULT_TIMEOUT
        self.max_retries = max_retries or settings.http_max_retries or self.MAX_RETRIES
        self._client: httpx.AsyncClient | None = None
        self._listeners: set[asyncio.Task] = set()

    @property
    def name(self) -> str:
        """Return backend name."""
        return "firebase"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                headers={
                    "Accept": "application/json",
                    "User-Agent": "Recipebook/1.0",
                },
            )
        return self._client

    async def close(self) -> None:
        """Stop all listeners and close the HTTP client."""
        for task in list(self._listeners):
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._listeners.clear()

        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _params(self) -> dict[str, str]:
        if self.auth_token:
            return {"auth": self.auth_token}
        return {}

    def _url(self, recipe_id: str | None = None) -> str:
        """Get the REST URL of the recipes node or of one recipe."""
        if recipe_id is None:
            return f"{self.recipes_url}.json"
        if not _VALID_KEY.match(recipe_id):
            raise StoreError(f"Invalid recipe key: {recipe_id!r}", status_code=400)
        return f"{self.recipes_url}/{recipe_id}.json"

    async def _request(
        self,
        method: str,
        url: str,
        json: Any = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        """Make an HTTP request with retry logic and return the decoded body."""
        client = await self._get_client()
        query = {**self._params(), **(params or {})}

        @retry(
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.BACKOFF_BASE, max=self.BACKOFF_MAX),
            reraise=True,
        )
        async def _do_request() -> httpx.Response:
            return await client.request(method, url, json=json, params=query)

        try:
            response = await _do_request()
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            logger.error(f"{method} {url} failed after {self.max_retries} attempts: {e}")
            raise StoreError(
                f"Request failed after {self.max_retries} attempts",
                response=str(e),
            ) from e
        except httpx.RequestError as e:
            logger.error(f"{method} {url} failed: {e!r}")
            raise StoreError(f"Request failed: {type(e).__name__}", response=str(e)) from e

        if response.status_code >= 400:
            error_detail = response.text[:500] if response.text else "No details"
            logger.error(f"Database error {response.status_code} for {method} {url}")
            raise StoreError(
                f"Database request failed with status {response.status_code}",
                status_code=response.status_code,
                response=error_detail,
            )

        if not response.text:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise StoreError("Database returned invalid JSON", response=response.text[:500]) from e

    def _parse_records(self, data: Any) -> list[RecipeState]:
        """Convert the recipes node into states, newest first."""
        if not data:
            return []
        if isinstance(data, list):
            data = {str(i): record for i, record in enumerate(data) if record}
            keys = sorted(data, key=int, reverse=True)
        else:
            # Push keys sort chronologically
            keys = sorted(data, reverse=True)

        recipes = []
        for recipe_id in keys:
            record = data[recipe_id]
            if not isinstance(record, dict):
                logger.warning(f"Skipping non-object record {recipe_id}")
                continue
            try:
                recipes.append(RecipeState.model_validate({**record, "id": recipe_id}))
            except ValidationError as e:
                logger.warning(f"Skipping malformed recipe {recipe_id}: {e.error_count()} errors")
        return recipes

    async def list_recipes(self) -> list[RecipeState]:
        logger.debug(f"Fetching recipes from {self.recipes_url}")
        data = await self._request("GET", self._url())
        recipes = self._parse_records(data)
        logger.debug(f"Fetched {len(recipes)} recipes")
        return recipes

    async def get_recipe(self, recipe_id: str) -> RecipeState | None:
        if not _VALID_KEY.match(recipe_id):
            return None

        record = await self._request("GET", self._url(recipe_id))
        if not isinstance(record, dict):
            return None
        try:
            return RecipeState.model_validate({**record, "id": recipe_id})
        except ValidationError as e:
            logger.warning(f"Recipe {recipe_id} is malformed: {e.error_count()} errors")
            return None

    async def add_recipes(self, recipes: list[Recipe]) -> list[RecipeState]:
        async def push(recipe: Recipe) -> RecipeState:
            state = RecipeState.new("", recipe)
            result = await self._request("POST", self._url(), json=state.to_record())
            key = (result or {}).get("name")
            if not key:
                raise StoreError("Database did not return a recipe key", response=result)
            return state.model_copy(update={"id": key})

        created = list(await asyncio.gather(*(push(recipe) for recipe in recipes)))
        logger.info(f"Saved {len(created)} recipes to {self.recipes_url}")
        return created

    async def update_recipe(self, recipe_id: str, updates: dict[str, Any]) -> None:
        logger.debug(f"Updating recipe {recipe_id}: {sorted(updates)}")
        await self._request("PATCH", self._url(recipe_id), json=updates)

    async def delete_recipe(self, recipe_id: str) -> None:
        logger.info(f"Deleting recipe {recipe_id}")
        await self._request("DELETE", self._url(recipe_id))

    async def subscribe(self, callback: RecipesCallback) -> Unsubscribe:
        task = asyncio.create_task(self._listen(callback))
        self._listeners.add(task)

        async def unsubscribe() -> None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            self._listeners.discard(task)

        return unsubscribe

    async def _listen(self, callback: RecipesCallback) -> None:
        """Follow the streaming endpoint and refetch the list on every change."""
        client = await self._get_client()

        while True:
            try:
                async with client.stream(
                    "GET",
                    self._url(),
                    params=self._params(),
                    headers={"Accept": "text/event-stream"},
                    timeout=httpx.Timeout(self.timeout, read=None),
                ) as response:
                    if response.status_code in (401, 403):
                        logger.error(f"Recipe stream rejected with status {response.status_code}")
                        return
                    if response.status_code >= 400:
                        raise StoreError(
                            f"Recipe stream failed with status {response.status_code}",
                            status_code=response.status_code,
                        )

                    logger.info(f"Listening for recipe changes at {self.recipes_url}")
                    event: str | None = None
                    async for line in response.aiter_lines():
                        if line.startswith("event:"):
                            event = line.removeprefix("event:").strip()
                        elif line.startswith("data:"):
                            if event in _TERMINAL_STREAM_EVENTS:
                                logger.warning(f"Recipe stream closed by server: {event}")
                                return
                            if event in _CHANGE_STREAM_EVENTS:
                                await self._dispatch(callback)
                            event = None
            except (httpx.RequestError, StoreError) as e:
                logger.warning(f"Recipe stream interrupted: {e}")

            logger.info(f"Reconnecting recipe stream in {self.RECONNECT_DELAY}s")
            await asyncio.sleep(self.RECONNECT_DELAY)

    async def _dispatch(self, callback: RecipesCallback) -> None:
        try:
            recipes = await self.list_recipes()
        except StoreError as e:
            logger.warning(f"Failed to refresh recipes after change: {e}")
            return

        try:
            await notify(callback, recipes)
        except Exception:
            logger.exception("Recipe subscriber failed")

    async def health_check(self) -> bool:
        """Check if the database node is reachable."""
        try:
            await self._request("GET", self._url(), params={"shallow": "true"})
            return True
        except StoreError as e:
            logger.warning(f"Firebase health check failed: {e}")
            return False
