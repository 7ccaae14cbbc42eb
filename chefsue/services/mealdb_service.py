"""
Recipe data source: TheMealDB REST API over httpx.

Responsibility: Turn one Operation into one GET request and normalize the
payload into an OperationResult. A ``meals: null`` body is a well-formed empty
result; any other unexpected shape is returned with its raw payload for
diagnostics. Transport problems raise RetrievalError / RetrievalTimeout so the
batch executor can isolate them per operation.
"""

import logging
from typing import Any

import httpx

from chefsue.core.config import HEALTH_CHECK_TIMEOUT, MEALDB_BASE_URL, RETRIEVAL_TIMEOUT
from chefsue.core.errors import RetrievalError, RetrievalTimeout
from chefsue.schemas.operations import Endpoint, Operation, OperationResult

logger = logging.getLogger(__name__)


class MealDBService:
    """Async client for the recipe API. One shared httpx.AsyncClient per service."""

    def __init__(
        self,
        base_url: str = MEALDB_BASE_URL,
        timeout: float = RETRIEVAL_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url + "/",
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def execute_call(self, operation: Operation) -> OperationResult:
        """Run one operation. Raises RetrievalError on transport/HTTP/decoding failure."""
        params = {k: str(v) for k, v in operation.params.items() if v is not None}
        try:
            response = await self._client.get(operation.endpoint, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.warning("[mealdb:execute_call] timeout call=%s", operation.describe())
            raise RetrievalTimeout("MealDB request timed out") from e
        except httpx.ConnectError as e:
            logger.warning("[mealdb:execute_call] unreachable call=%s error=%s", operation.describe(), e)
            raise RetrievalError("MealDB service is currently unavailable") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("[mealdb:execute_call] status=%s call=%s", status, operation.describe())
            raise RetrievalError(f"MealDB API error: {status} {e.response.reason_phrase}") from e
        except httpx.HTTPError as e:
            logger.warning("[mealdb:execute_call] network error call=%s error=%s", operation.describe(), e)
            raise RetrievalError(f"Network error: {e}") from e
        except ValueError as e:
            logger.warning("[mealdb:execute_call] undecodable body call=%s", operation.describe())
            raise RetrievalError("Malformed response from MealDB") from e
        result = self.process_response(data, operation)
        logger.debug("[mealdb:execute_call] OUT call=%s count=%d", operation.describe(), result.count)
        return result

    @staticmethod
    def process_response(data: Any, operation: Operation) -> OperationResult:
        if not data:
            return OperationResult.empty(operation, "No data received from MealDB")
        if not isinstance(data, dict) or "meals" not in data:
            return OperationResult.unexpected(operation, data)
        meals = data["meals"]
        if meals is None:
            return OperationResult.empty(operation, f"No results found for {operation.endpoint}")
        if isinstance(meals, list):
            return OperationResult.valid(operation, [m for m in meals if isinstance(m, dict)])
        return OperationResult.unexpected(operation, data)

    # --- Endpoint helpers ---

    async def search_by_name(self, query: str) -> OperationResult:
        return await self.execute_call(Operation(endpoint=Endpoint.SEARCH.value, params={"s": query}))

    async def filter_by_ingredient(self, ingredient: str) -> OperationResult:
        return await self.execute_call(Operation(endpoint=Endpoint.FILTER.value, params={"i": ingredient}))

    async def filter_by_category(self, category: str) -> OperationResult:
        return await self.execute_call(Operation(endpoint=Endpoint.FILTER.value, params={"c": category}))

    async def lookup_by_id(self, meal_id: str) -> OperationResult:
        return await self.execute_call(Operation.lookup(meal_id))

    # --- Observability ---

    async def health_check(self) -> bool:
        try:
            response = await self._client.get("categories.php", timeout=HEALTH_CHECK_TIMEOUT)
        except httpx.HTTPError as e:
            logger.error("[mealdb:health_check] failed: %s", e)
            return False
        return response.status_code == 200

    def get_stats(self) -> dict[str, Any]:
        return {"base_url": self.base_url, "timeout": self.timeout}
