"""
Pipeline tests: full graph runs against a scripted generation backend and a fake recipe source.
"""

import asyncio
import json
from datetime import timedelta

import pytest

from chefsue.agent.fallback import NO_RECIPES_MESSAGE, apology_for
from chefsue.agent.graph import RecipePipeline, count_recipes
from chefsue.core.errors import GenerationError
from chefsue.core.session_store import SessionStore
from chefsue.schemas.operations import Operation, OperationResult
from tests.fakes import FakeSource, ScriptedLLM, meal_detail, meal_summary


def api_calls(*ops: tuple[str, dict]) -> str:
    return json.dumps({"api_calls": [{"endpoint": e, "params": p} for e, p in ops]})


@pytest.fixture
def sessions() -> SessionStore:
    return SessionStore(max_turns=10, session_timeout=timedelta(minutes=30))


@pytest.fixture
def chicken_summaries() -> list[dict]:
    return [meal_summary(str(52700 + n), f"Chicken Dish {n}") for n in range(1, 13)]


@pytest.fixture
def chicken_source(chicken_summaries: list[dict]) -> FakeSource:
    responses = {"filter.php?i=Chicken": chicken_summaries}
    for meal in chicken_summaries:
        responses[f"lookup.php?i={meal['idMeal']}"] = [meal_detail(meal["idMeal"], meal["strMeal"])]
    return FakeSource(responses)


def run(pipeline: RecipePipeline, message: str, session_id: str | None = None):
    return asyncio.run(pipeline.process(message, session_id))


class TestDirectResponse:
    def test_greeting_makes_no_api_calls(self, sessions: SessionStore) -> None:
        """A greeting is answered directly: no recipe calls, one phase, turn recorded."""
        source = FakeSource()
        llm = ScriptedLLM("Hello! I'm ChefSue, your cooking assistant.")
        outcome = run(RecipePipeline(llm, source, sessions), "hello")

        assert outcome.message == "Hello! I'm ChefSue, your cooking assistant."
        assert outcome.api_calls_made == 0
        assert outcome.phases_executed == ["direct_response"]
        assert outcome.recipe_data_found == 0
        assert not outcome.error
        assert source.calls == []
        history = sessions.get(outcome.session_id).history
        assert [m.role for m in history] == ["user", "assistant"]

    def test_history_reaches_next_turn(self, sessions: SessionStore) -> None:
        """The second turn of a session sees the first turn in its intent prompt."""
        llm = ScriptedLLM("Hi there!", "Sure, ask away.")
        pipeline = RecipePipeline(llm, FakeSource(), sessions)
        first = run(pipeline, "hello")
        second = run(pipeline, "can I ask something?", first.session_id)
        assert second.session_id == first.session_id
        assert "Conversation context:" in llm.prompts[1]
        assert "user: hello" in llm.prompts[1]
        assert len(sessions.get(first.session_id).history) == 4


class TestRecipeFlow:
    def test_filter_then_selection_then_synthesis(self, sessions: SessionStore, chicken_source: FakeSource) -> None:
        """Filter hits 12 summaries, model picks 3 lookups, answer uses the merged data."""
        llm = ScriptedLLM(
            api_calls(("filter.php", {"i": "Chicken"})),
            api_calls(("lookup.php", {"i": "52701"}), ("lookup.php", {"i": "52705"}), ("lookup.php", {"i": "52709"})),
            "Here are three chicken dishes you can make tonight.",
        )
        outcome = run(RecipePipeline(llm, chicken_source, sessions), "chicken recipes")

        assert outcome.api_calls_made == 4
        assert outcome.phases_executed == ["intent_analysis", "recipe_selection", "synthesis"]
        assert outcome.recipe_data_found == 3
        assert outcome.message == "Here are three chicken dishes you can make tonight."
        assert not outcome.degraded
        assert [op.describe() for op in chicken_source.calls[1:]] == [
            "lookup.php?i=52701", "lookup.php?i=52705", "lookup.php?i=52709",
        ]
        assert "Chicken Dish 5" in llm.prompts[2]

    def test_unusable_selection_falls_back_to_first_three(
        self, sessions: SessionStore, chicken_source: FakeSource
    ) -> None:
        """Selection output that is not a batch falls back to the first 3 ids, in order."""
        llm = ScriptedLLM(
            api_calls(("filter.php", {"i": "Chicken"})),
            "I would pick the grilled ones.",
            "Three dishes for you.",
        )
        outcome = run(RecipePipeline(llm, chicken_source, sessions), "chicken recipes")

        assert [op.describe() for op in chicken_source.calls[1:]] == [
            "lookup.php?i=52701", "lookup.php?i=52702", "lookup.php?i=52703",
        ]
        assert outcome.api_calls_made == 4
        assert outcome.degraded

    def test_failed_selection_call_falls_back(self, sessions: SessionStore, chicken_source: FakeSource) -> None:
        """A selection generation failure still runs lookups via the fallback."""
        llm = ScriptedLLM(
            api_calls(("filter.php", {"i": "Chicken"})),
            GenerationError("Request timeout"),
            "Three dishes for you.",
        )
        outcome = run(RecipePipeline(llm, chicken_source, sessions), "chicken recipes")
        assert outcome.phases_executed == ["intent_analysis", "recipe_selection", "synthesis"]
        assert outcome.api_calls_made == 4

    def test_detailed_results_skip_selection(self, sessions: SessionStore) -> None:
        """Lookup-style results go straight to synthesis."""
        source = FakeSource({"search.php?s=arrabiata": [meal_detail("52771", "Spicy Arrabiata Penne", "Vegetarian")]})
        llm = ScriptedLLM(api_calls(("search.php", {"s": "arrabiata"})), "Try the Spicy Arrabiata Penne.")
        outcome = run(RecipePipeline(llm, source, sessions), "arrabiata")

        assert outcome.phases_executed == ["intent_analysis", "synthesis"]
        assert outcome.api_calls_made == 1
        assert outcome.recipe_data_found == 1
        assert len(llm.prompts) == 2

    def test_all_calls_fail_and_synthesis_fails(self, sessions: SessionStore) -> None:
        """Every call fails and synthesis fails: the no-recipes message, not an error."""
        llm = ScriptedLLM(
            api_calls(("search.php", {"s": "korean"}), ("filter.php", {"c": "Seafood"})),
            GenerationError("backend down"),
        )
        outcome = run(RecipePipeline(llm, FakeSource(), sessions), "korean seafood")

        assert outcome.message == NO_RECIPES_MESSAGE
        assert outcome.api_calls_made == 2
        assert outcome.phases_executed == ["intent_analysis", "synthesis"]
        assert outcome.degraded
        assert not outcome.error

    def test_synthesis_failure_uses_templated_summary(
        self, sessions: SessionStore, chicken_source: FakeSource
    ) -> None:
        """Synthesis failure with data available: templated summary of the first recipes."""
        llm = ScriptedLLM(
            api_calls(("filter.php", {"i": "Chicken"})),
            api_calls(("lookup.php", {"i": "52701"})),
            GenerationError("backend down"),
        )
        outcome = run(RecipePipeline(llm, chicken_source, sessions), "chicken recipes")
        assert outcome.message.startswith("Here are some recipes I found for you:")
        assert outcome.degraded
        assert sessions.get(outcome.session_id).last_results is not None

    @pytest.mark.parametrize("meals", [None, []])
    def test_empty_filter_results_skip_selection(self, sessions: SessionStore, meals) -> None:
        """A filter call with no meals gives nothing to refine: straight to synthesis."""
        source = FakeSource({"filter.php?c=Goat": meals})
        llm = ScriptedLLM(api_calls(("filter.php", {"c": "Goat"})), "No goat recipes today, but try lamb.")
        outcome = run(RecipePipeline(llm, source, sessions), "goat recipes")

        assert outcome.phases_executed == ["intent_analysis", "synthesis"]
        assert outcome.api_calls_made == 1
        assert outcome.recipe_data_found == 0
        assert len(llm.prompts) == 2
        assert not outcome.error

    def test_unlisted_ingredient_searched_by_name(self, sessions: SessionStore) -> None:
        """An ingredient outside the filter vocabulary is looked up with search.php."""
        source = FakeSource({"search.php?s=tofu": [meal_detail("53000", "Mapo Tofu", "Vegetarian")]})
        llm = ScriptedLLM(api_calls(("search.php", {"s": "tofu"})), "Mapo Tofu is a great pick.")
        outcome = run(RecipePipeline(llm, source, sessions), "tofu dishes")

        assert "Unknown categories or ingredients → Use search.php instead" in llm.prompts[0]
        assert not outcome.error
        assert outcome.phases_executed == ["intent_analysis", "synthesis"]
        assert outcome.recipe_data_found == 1


class TestErrorBoundary:
    def test_invalid_batch_returns_validation_apology(self, sessions: SessionStore) -> None:
        """A batch failing validation ends the run before any call, with the validation apology."""
        source = FakeSource()
        llm = ScriptedLLM(api_calls(("filter.php", {"c": "Korean"})))
        outcome = run(RecipePipeline(llm, source, sessions), "korean food")

        assert outcome.error
        assert outcome.error_category == "validation"
        assert outcome.message == apology_for("validation")
        assert outcome.api_calls_made == 0
        assert source.calls == []
        assert sessions.get(outcome.session_id).history[-1].content == outcome.message

    def test_too_many_calls_rejected(self, sessions: SessionStore) -> None:
        """More than 5 proposed calls is a validation failure."""
        batch = api_calls(*[("search.php", {"s": f"dish {n}"}) for n in range(6)])
        outcome = run(RecipePipeline(ScriptedLLM(batch), FakeSource(), sessions), "everything")
        assert outcome.error
        assert "Maximum 5" in outcome.error_message

    def test_unlisted_ingredient_filter_rejected_before_any_call(self, sessions: SessionStore) -> None:
        """A filter on an ingredient outside the vocabulary never reaches the recipe API."""
        source = FakeSource()
        outcome = run(RecipePipeline(ScriptedLLM(api_calls(("filter.php", {"i": "Tofu"}))), source, sessions), "tofu")
        assert outcome.error_category == "validation"
        assert source.calls == []

    def test_intent_generation_failure(self, sessions: SessionStore) -> None:
        """Generation failing at the first step gives the unavailable apology."""
        llm = ScriptedLLM(GenerationError("Generation backend returned 500"))
        outcome = run(RecipePipeline(llm, FakeSource(), sessions), "pasta")
        assert outcome.error
        assert outcome.error_category == "unavailable"
        assert outcome.message == apology_for("unavailable")

    def test_pipeline_deadline(self, sessions: SessionStore) -> None:
        """A run exceeding the overall deadline gives the timeout apology."""
        llm = ScriptedLLM("too late", delay=0.5)
        pipeline = RecipePipeline(llm, FakeSource(), sessions, pipeline_timeout=0.05)
        outcome = run(pipeline, "hello")
        assert outcome.error
        assert outcome.error_category == "timeout"
        assert outcome.message == apology_for("timeout")


def test_count_recipes_prefers_detailed_records() -> None:
    """Detail records are counted when present, otherwise summary records."""
    summaries = OperationResult.valid(
        Operation(endpoint="filter.php", params={"c": "Beef"}),
        [meal_summary(str(n), f"Beef {n}") for n in range(10)],
    )
    assert count_recipes([summaries]) == 10
    detail = OperationResult.valid(Operation.lookup("1"), [meal_detail("1", "Beef 1")])
    assert count_recipes([summaries, detail]) == 1
    assert count_recipes([]) == 0
