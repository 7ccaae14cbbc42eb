"""Schemas for recipe API operations and their results."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Endpoint(str, Enum):
    SEARCH = "search.php"
    FILTER = "filter.php"
    LOOKUP = "lookup.php"


class OperationKind(str, Enum):
    SEARCH = "search"
    FILTER_INGREDIENT = "filter_ingredient"
    FILTER_CATEGORY = "filter_category"
    LOOKUP = "lookup"


# Lookup results carry full recipe detail; filter results only id, name, thumbnail.
DETAIL_FIELD = "strInstructions"
MEAL_ID_FIELD = "idMeal"


class Operation(BaseModel):
    """One recipe API call as proposed by a generation step: endpoint + query params."""

    model_config = ConfigDict(frozen=True)

    endpoint: str = Field(..., description="Recipe API endpoint, e.g. filter.php")
    params: dict[str, Any] = Field(default_factory=dict, description="Query parameters for the endpoint.")

    @property
    def kind(self) -> OperationKind | None:
        if self.endpoint == Endpoint.SEARCH.value:
            return OperationKind.SEARCH
        if self.endpoint == Endpoint.LOOKUP.value:
            return OperationKind.LOOKUP
        if self.endpoint == Endpoint.FILTER.value:
            has_ingredient = bool(self.params.get("i"))
            has_category = bool(self.params.get("c"))
            if has_category and not has_ingredient:
                return OperationKind.FILTER_CATEGORY
            if has_ingredient and not has_category:
                return OperationKind.FILTER_INGREDIENT
        return None

    @classmethod
    def lookup(cls, meal_id: str) -> "Operation":
        return cls(endpoint=Endpoint.LOOKUP.value, params={"i": str(meal_id)})

    def describe(self) -> str:
        query = "&".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.endpoint}?{query}" if query else self.endpoint


class OperationResult(BaseModel):
    """Outcome of one operation: a meals payload, an empty/unexpected marker, or a failure."""

    operation: Operation
    meals: list[dict[str, Any]] | None = None
    count: int = 0
    is_empty: bool = True
    message: str | None = None
    raw_data: Any = None
    error: bool = False

    @classmethod
    def valid(cls, operation: Operation, meals: list[dict[str, Any]]) -> "OperationResult":
        return cls(operation=operation, meals=meals, count=len(meals), is_empty=not meals)

    @classmethod
    def empty(cls, operation: Operation, message: str) -> "OperationResult":
        return cls(operation=operation, message=message)

    @classmethod
    def unexpected(cls, operation: Operation, data: Any) -> "OperationResult":
        return cls(operation=operation, message="Unexpected response format from MealDB", raw_data=data)

    @classmethod
    def failure(cls, operation: Operation, reason: str) -> "OperationResult":
        return cls(operation=operation, message=reason, error=True)

    @property
    def records(self) -> list[dict[str, Any]]:
        return list(self.meals or [])

    def has_results(self) -> bool:
        return not self.error and not self.is_empty and bool(self.meals)

    def is_filter_result(self) -> bool:
        """True when records only carry summary fields (no detail field on the first record)."""
        if not self.has_results():
            return False
        return not self.meals[0].get(DETAIL_FIELD)

    def meal_ids(self) -> list[str]:
        if not self.has_results():
            return []
        return [str(m[MEAL_ID_FIELD]) for m in self.meals if m.get(MEAL_ID_FIELD) is not None]
