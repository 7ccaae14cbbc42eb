"""
Fakes for pipeline tests: a scripted generation backend and an in-memory recipe source.
"""

import asyncio

from chefsue.core.errors import GenerationError, RetrievalError
from chefsue.schemas.operations import Operation, OperationResult


def meal_summary(meal_id: str, name: str) -> dict:
    return {"idMeal": meal_id, "strMeal": name, "strMealThumb": f"https://img.example/{meal_id}.jpg"}


def meal_detail(meal_id: str, name: str, category: str = "Chicken") -> dict:
    return {
        "idMeal": meal_id,
        "strMeal": name,
        "strCategory": category,
        "strArea": "British",
        "strInstructions": f"Cook the {name.lower()} until done.",
        "strIngredient1": "Chicken",
        "strMeasure1": "500g",
        "strIngredient2": "Garlic",
        "strMeasure2": "2 cloves",
        "strIngredient3": "",
    }


class ScriptedLLM:
    """Returns queued replies in order; an Exception instance in the queue is raised instead."""

    def __init__(self, *replies, delay: float = 0.0) -> None:
        self.replies = list(replies)
        self.prompts: list[str] = []
        self.delay = delay

    async def complete(self, prompt: str, model_hint: str | None = None) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.replies:
            raise GenerationError("No scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


class FakeSource:
    """Recipe source keyed by Operation.describe(); unknown calls raise RetrievalError."""

    def __init__(self, responses: dict[str, list[dict] | None] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[Operation] = []

    async def execute_call(self, operation: Operation) -> OperationResult:
        self.calls.append(operation)
        key = operation.describe()
        if key not in self.responses:
            raise RetrievalError("MealDB service is currently unavailable")
        meals = self.responses[key]
        if meals is None:
            return OperationResult.empty(operation, f"No results found for {operation.endpoint}")
        return OperationResult.valid(operation, meals)

