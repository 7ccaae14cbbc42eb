"""
Deterministic, non-generative substitutes for failed generation steps.

- select_fallback_operations: lookups for the first N meals, in result order.
- build_fallback_response: a templated summary of the first N recipes.
- categorize_error / apology_for: the user-safe message for a hard failure,
  chosen from the error's structural category.
"""

import asyncio
from collections.abc import Sequence

import httpx

from chefsue.core import errors
from chefsue.core.config import FALLBACK_RECIPE_LIMIT, SELECTION_LIMIT
from chefsue.agent.prompts import extract_ingredients
from chefsue.schemas.operations import Operation, OperationResult

NO_RECIPES_MESSAGE = (
    "I'm sorry, I couldn't find any recipes matching your request. "
    "Could you try asking about a specific dish or ingredient?"
)
KEY_INGREDIENT_COUNT = 6

_APOLOGIES = {
    errors.VALIDATION: (
        "I'm sorry, but there seems to be an issue with your request. Could you please rephrase it "
        "or try asking about a specific dish or ingredient?"
    ),
    errors.UNAVAILABLE: (
        "I'm experiencing some technical difficulties connecting to the recipe database. "
        "Please try again in a few moments."
    ),
    errors.TIMEOUT: (
        "The request is taking longer than expected. Please try asking about something more specific."
    ),
    errors.GENERIC: (
        "I'm sorry, I encountered an error while processing your request. "
        "Could you please try again or ask about something else?"
    ),
}


def select_fallback_operations(results: Sequence[OperationResult], limit: int = SELECTION_LIMIT) -> list[Operation]:
    """Lookup operations for the first `limit` meal ids across results, in result order."""
    operations: list[Operation] = []
    for result in results:
        for meal_id in result.meal_ids():
            if len(operations) >= limit:
                return operations
            operations.append(Operation.lookup(meal_id))
    return operations


def _first_recipes(results: Sequence[OperationResult], limit: int) -> list[dict]:
    recipes: list[dict] = []
    for result in results:
        for meal in result.records:
            if len(recipes) >= limit:
                return recipes
            recipes.append(meal)
    return recipes


def _format_recipe(meal: dict) -> str:
    lines = [f"**{meal.get('strMeal')}**"]
    if meal.get("strCategory"):
        lines.append(f"Category: {meal['strCategory']}")
    ingredients = extract_ingredients(meal, limit=KEY_INGREDIENT_COUNT, with_measures=False)
    if ingredients:
        lines.append(f"Key ingredients: {', '.join(ingredients)}")
    return "\n".join(lines) + "\n\n"


def build_fallback_response(results: Sequence[OperationResult], limit: int = FALLBACK_RECIPE_LIMIT) -> str:
    recipes = _first_recipes(results, limit)
    if not recipes:
        return NO_RECIPES_MESSAGE
    body = "".join(_format_recipe(m) for m in recipes)
    return f"Here are some recipes I found for you:\n\n{body}Would you like detailed instructions for any of these recipes?"


def categorize_error(exc: BaseException) -> str:
    category = getattr(exc, "category", None)
    if category in _APOLOGIES:
        return category
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return errors.TIMEOUT
    if isinstance(exc, httpx.TransportError):
        return errors.UNAVAILABLE
    return errors.GENERIC


def apology_for(category: str) -> str:
    return _APOLOGIES.get(category, _APOLOGIES[errors.GENERIC])
