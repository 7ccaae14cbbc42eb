"""
Prompt builders for the three generation steps: intent analysis, recipe
selection, and answer synthesis.
"""

from collections.abc import Sequence
from typing import Any

from chefsue.core.vocabulary import COMMON_INGREDIENTS, MEAL_CATEGORIES
from chefsue.schemas.chat import Message
from chefsue.schemas.operations import OperationResult

SYNTHESIS_HISTORY_MESSAGES = 4
MAX_LISTED_INGREDIENTS = 8
INSTRUCTIONS_PREVIEW_CHARS = 200


def format_history(history: Sequence[Message], max_messages: int | None = None) -> str:
    """Format the last N messages as a 'Conversation context' block ('' when empty)."""
    if not history:
        return ""
    recent = list(history)[-max_messages:] if max_messages else list(history)
    lines = [f"{m.role}: {m.content}" for m in recent if m.content.strip()]
    if not lines:
        return ""
    return "\n\nConversation context:\n" + "\n".join(lines) + "\n"


def build_intent_prompt(user_message: str, history: Sequence[Message]) -> str:
    context = format_history(history)
    return f"""You are a cooking assistant with access to MealDB API.

CRITICAL RULES:
1. For cuisine types (Korean, Italian, Chinese, Mexican, Indian, etc.) → ALWAYS use search.php
2. For categories → ONLY use these exact values: {", ".join(MEAL_CATEGORIES)}
3. For ingredients → ONLY use these exact values: {", ".join(COMMON_INGREDIENTS)}
4. Unknown categories or ingredients → Use search.php instead
5. Multiple requests → Return multiple API calls

API endpoints:
- search.php?s={{query}} - Search by name or cuisine type
- filter.php?c={{category}} - Filter by category (MUST be from list above)
- filter.php?i={{ingredient}} - Filter by main ingredient (MUST be from list above)

Examples:
"korean recipes" → {{"api_calls": [{{"endpoint": "search.php", "params": {{"s": "korean"}}}}]}}
"italian pasta" → {{"api_calls": [{{"endpoint": "search.php", "params": {{"s": "italian pasta"}}}}]}}
"vegetarian meals" → {{"api_calls": [{{"endpoint": "filter.php", "params": {{"c": "Vegetarian"}}}}]}}
"dishes with chicken" → {{"api_calls": [{{"endpoint": "filter.php", "params": {{"i": "Chicken"}}}}]}}
"tofu dishes" → {{"api_calls": [{{"endpoint": "search.php", "params": {{"s": "tofu"}}}}]}}
"hello" → "Hello! I'm ChefSue, your cooking assistant. I can help you find delicious recipes!"
"thanks" → "You're welcome! Let me know if you need any recipe suggestions."

User request: "{user_message}"{context}

OUTPUT FORMAT:
- Recipe requests: Return ONLY {{"api_calls": [...]}} as valid JSON
- Greetings/chat: Return ONLY a plain text response (markdown formatting is OK)

DO NOT:
- Include any text before or after JSON when returning api_calls
- Mix JSON and text in the same response
- Return the original prompt or echo the user's message
- Use categories or ingredients not in the exact lists above"""


def _format_filter_results(results: Sequence[OperationResult]) -> str:
    blocks = []
    for result in results:
        if result.has_results():
            blocks.append("\n".join(f"- {m.get('strMeal')} (ID: {m.get('idMeal')})" for m in result.records))
        else:
            blocks.append("No meals found")
    return "\n".join(blocks)


def build_selection_prompt(user_message: str, filter_results: Sequence[OperationResult], limit: int = 3) -> str:
    return f"""The user asked: "{user_message}"

Here are meal results from filtering:
{_format_filter_results(filter_results)}

Select up to {limit} most relevant meals for detailed recipes.
Consider: relevance, variety, user intent.

Return JSON:
{{"api_calls": [{{"endpoint": "lookup.php", "params": {{"i": "mealId"}}}}...]}}"""


def extract_ingredients(meal: dict[str, Any], limit: int = 20, with_measures: bool = True) -> list[str]:
    """Collect strIngredient1..N (optionally prefixed by strMeasureN), skipping blanks."""
    out = []
    for n in range(1, limit + 1):
        ingredient = (meal.get(f"strIngredient{n}") or "").strip()
        if not ingredient:
            continue
        measure = (meal.get(f"strMeasure{n}") or "").strip() if with_measures else ""
        out.append(f"{measure} {ingredient}" if measure else ingredient)
    return out


def _format_meal(meal: dict[str, Any]) -> str:
    ingredients = extract_ingredients(meal)
    lines = [
        f"**{meal.get('strMeal')}**",
        f"Category: {meal.get('strCategory') or 'N/A'}",
        f"Area: {meal.get('strArea') or 'N/A'}",
    ]
    if ingredients:
        more = "..." if len(ingredients) > MAX_LISTED_INGREDIENTS else ""
        lines.append(f"Ingredients: {', '.join(ingredients[:MAX_LISTED_INGREDIENTS])}{more}")
    instructions = meal.get("strInstructions")
    lines.append(f"Instructions: {instructions[:INSTRUCTIONS_PREVIEW_CHARS]}..." if instructions else "Instructions: N/A")
    if meal.get("strMealThumb"):
        lines.append(f"Image: {meal['strMealThumb']}")
    return "\n".join(lines)


def format_meal_data(results: Sequence[OperationResult]) -> str:
    blocks = []
    for result in results:
        if result.has_results():
            blocks.append("\n\n".join(_format_meal(m) for m in result.records))
        else:
            blocks.append("No detailed recipe data available")
    return "\n\n".join(blocks)


def build_synthesis_prompt(user_message: str, results: Sequence[OperationResult], history: Sequence[Message]) -> str:
    context = format_history(history, max_messages=SYNTHESIS_HISTORY_MESSAGES)
    data_text = format_meal_data(results) or "No recipe data found"
    return f"""You are ChefSue, a friendly cooking assistant.

User asked: "{user_message}"{context}

Recipe data available:
{data_text}

Provide a helpful, concise response highlighting:
- Recipe names and brief descriptions
- Key ingredients
- Basic preparation steps
- Cooking tips if relevant

Keep response conversational and under 300 words.
If no recipe data is available, provide general cooking advice related to the user's query."""
