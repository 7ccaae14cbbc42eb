"""
Unit tests for the recipe API client. Upstream HTTP is served by httpx.MockTransport.
"""

import asyncio

import httpx
import pytest

from chefsue.core.errors import RetrievalError, RetrievalTimeout
from chefsue.schemas.operations import Operation
from chefsue.services.mealdb_service import MealDBService

BASE_URL = "https://mealdb.test/api/json/v1/1"


def make_service(handler) -> MealDBService:
    client = httpx.AsyncClient(base_url=BASE_URL + "/", transport=httpx.MockTransport(handler))
    return MealDBService(base_url=BASE_URL, client=client)


def run(coro):
    return asyncio.run(coro)


class TestExecuteCall:
    def test_valid_response(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"meals": [{"idMeal": "1", "strMeal": "Soup"}]})

        service = make_service(handler)
        result = run(service.execute_call(Operation(endpoint="search.php", params={"s": "soup"})))
        assert seen == {"path": "/api/json/v1/1/search.php", "params": {"s": "soup"}}
        assert not result.error
        assert result.count == 1
        assert result.has_results()

    def test_null_meals_is_empty_not_error(self) -> None:
        service = make_service(lambda request: httpx.Response(200, json={"meals": None}))
        result = run(service.lookup_by_id("999999"))
        assert not result.error
        assert result.is_empty
        assert result.message == "No results found for lookup.php"

    def test_unexpected_shape_keeps_raw_data(self) -> None:
        service = make_service(lambda request: httpx.Response(200, json={"categories": []}))
        result = run(service.filter_by_category("Beef"))
        assert not result.error
        assert result.message == "Unexpected response format from MealDB"
        assert result.raw_data == {"categories": []}

    def test_http_error_status_raises(self) -> None:
        service = make_service(lambda request: httpx.Response(500))
        with pytest.raises(RetrievalError, match="MealDB API error: 500"):
            run(service.search_by_name("soup"))

    def test_timeout_raises_retrieval_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        service = make_service(handler)
        with pytest.raises(RetrievalTimeout):
            run(service.filter_by_ingredient("Chicken"))

    def test_connect_error_raises_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        service = make_service(handler)
        with pytest.raises(RetrievalError, match="currently unavailable"):
            run(service.search_by_name("soup"))

    def test_non_json_body_raises(self) -> None:
        service = make_service(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(RetrievalError, match="Malformed response"):
            run(service.search_by_name("soup"))


class TestProcessResponse:
    op = Operation(endpoint="filter.php", params={"c": "Seafood"})

    def test_empty_payload(self) -> None:
        result = MealDBService.process_response({}, self.op)
        assert result.is_empty
        assert result.message == "No data received from MealDB"

    def test_drops_non_object_records(self) -> None:
        result = MealDBService.process_response({"meals": [{"idMeal": "1"}, "junk"]}, self.op)
        assert result.count == 1

    def test_meals_not_a_list(self) -> None:
        result = MealDBService.process_response({"meals": "nope"}, self.op)
        assert result.message == "Unexpected response format from MealDB"


def test_health_check() -> None:
    ok = make_service(lambda request: httpx.Response(200, json={"categories": []}))
    down = make_service(lambda request: httpx.Response(503))
    assert run(ok.health_check()) is True
    assert run(down.health_check()) is False
