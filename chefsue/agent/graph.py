"""
LangGraph recipe pipeline: intent → (direct reply | retrieve → [select recipes] → synthesize).

- analyze_intent: the model either answers directly (no data needed) or
  proposes a batch of recipe API calls.
- retrieve: validate the batch, run it concurrently, keep the successes.
- select_recipes: only when some success is a filter-style summary list; the
  model (or the deterministic fallback) picks meals to look up in full.
- synthesize: the model writes the answer from the merged data; a templated
  summary stands in if it fails.

process() is the only entry point and never raises: any failure escaping the
graph becomes an apologetic reply flagged as an error.
"""

import asyncio
import logging
import time
from typing import Literal, Protocol, TypedDict
from uuid import uuid4

from langgraph.graph import END, StateGraph

from chefsue.agent.fallback import apology_for, build_fallback_response, categorize_error, select_fallback_operations
from chefsue.agent.prompts import build_intent_prompt, build_selection_prompt, build_synthesis_prompt
from chefsue.agent.responses import DirectResponse, parse_intent_response, parse_selection_response
from chefsue.core.config import FALLBACK_RECIPE_LIMIT, MAX_API_CALLS, PIPELINE_TIMEOUT, SELECTION_LIMIT
from chefsue.core.errors import GENERIC, GenerationError, ValidationFailure
from chefsue.core.session_store import Session, SessionStore
from chefsue.core.validators import validate_operations
from chefsue.schemas.chat import PipelineOutcome
from chefsue.schemas.operations import DETAIL_FIELD, Operation, OperationResult
from chefsue.services.batch_executor import BatchExecutor, RecipeSource

logger = logging.getLogger(__name__)

PHASE_DIRECT = "direct_response"
PHASE_INTENT = "intent_analysis"
PHASE_SELECTION = "recipe_selection"
PHASE_SYNTHESIS = "synthesis"


class TextGenerator(Protocol):
    async def complete(self, prompt: str, model_hint: str | None = None) -> str: ...


class PipelineState(TypedDict):
    message: str
    history: list  # list[Message], oldest first
    operations: list  # list[Operation] proposed by analyze_intent
    results: list  # successful OperationResults, merged across phases
    failed_calls: int
    api_calls_made: int
    phases: list
    answer: str
    degraded: bool


def _partition(results: list[OperationResult]) -> tuple[list[OperationResult], list[OperationResult]]:
    successes = [r for r in results if not r.error]
    failures = [r for r in results if r.error]
    return successes, failures


def has_filter_results(results: list[OperationResult]) -> bool:
    return any(r.is_filter_result() for r in results)


def count_recipes(results: list[OperationResult]) -> int:
    """Full-detail records if any were retrieved, otherwise all summary records."""
    records = [m for r in results for m in r.records]
    detailed = [m for m in records if m.get(DETAIL_FIELD)]
    return len(detailed) if detailed else len(records)


class RecipePipeline:
    def __init__(
        self,
        llm: TextGenerator,
        source: RecipeSource,
        sessions: SessionStore,
        executor: BatchExecutor | None = None,
        max_api_calls: int = MAX_API_CALLS,
        selection_limit: int = SELECTION_LIMIT,
        fallback_limit: int = FALLBACK_RECIPE_LIMIT,
        pipeline_timeout: float = PIPELINE_TIMEOUT,
    ) -> None:
        self.llm = llm
        self.source = source
        self.sessions = sessions
        self.executor = executor or BatchExecutor(source)
        self.max_api_calls = max_api_calls
        self.selection_limit = selection_limit
        self.fallback_limit = fallback_limit
        self.pipeline_timeout = pipeline_timeout
        self._graph = self._build_graph()

    # --- Nodes ---

    async def _analyze_intent(self, state: PipelineState) -> dict:
        """Node 1: ask the model for a direct reply or a batch of API calls. History-aware."""
        message = state["message"]
        history = state["history"]
        logger.info("[graph:analyze_intent] IN  message=%r history_len=%d", message[:100], len(history))
        raw = await self.llm.complete(build_intent_prompt(message, history))
        decision = parse_intent_response(raw)
        if isinstance(decision, DirectResponse):
            if not decision.text:
                raise GenerationError("Empty response from AI model")
            logger.info("[graph:analyze_intent] OUT direct_response len=%d", len(decision.text))
            return {"answer": decision.text, "phases": [PHASE_DIRECT]}
        logger.info("[graph:analyze_intent] OUT api_calls=%s", [op.describe() for op in decision.operations])
        return {"operations": decision.operations}

    def _route_after_intent(self, state: PipelineState) -> Literal["retrieve", "__end__"]:
        return END if state.get("answer") else "retrieve"

    async def _retrieve(self, state: PipelineState) -> dict:
        """Node 2: validate the proposed batch and execute it. Validation failure ends the run."""
        operations = state["operations"]
        validate_operations(operations, max_calls=self.max_api_calls)
        logger.info("[graph:retrieve] IN  kinds=%s", [op.kind.value for op in operations])
        results = await self.executor.execute_batch(operations)
        successes, failures = _partition(results)
        if failures:
            logger.warning("[graph:retrieve] %d of %d calls failed: %s",
                           len(failures), len(results), [f.message for f in failures])
        logger.info("[graph:retrieve] OUT successes=%d records=%d",
                    len(successes), sum(len(r.records) for r in successes))
        return {
            "results": successes,
            "failed_calls": len(failures),
            "api_calls_made": len(operations),
            "phases": [PHASE_INTENT],
        }

    def _route_after_retrieve(self, state: PipelineState) -> Literal["select_recipes", "synthesize"]:
        results = state["results"]
        next_node = "select_recipes" if results and has_filter_results(results) else "synthesize"
        logger.info("[graph:route_after_retrieve] successes=%d -> %s", len(results), next_node)
        return next_node

    async def _choose_lookups(self, message: str, results: list[OperationResult]) -> tuple[list[Operation], bool]:
        """Model-selected lookups, or the deterministic first-N fallback. Returns (operations, used_fallback)."""
        filter_results = [r for r in results if r.is_filter_result()]
        try:
            raw = await self.llm.complete(build_selection_prompt(message, filter_results, self.selection_limit))
            batch = parse_selection_response(raw)
            if batch is not None:
                validate_operations(batch.operations, max_calls=self.max_api_calls)
                return batch.operations, False
            logger.info("[graph:select_recipes] unusable selection output, using fallback")
        except ValidationFailure as e:
            logger.warning("[graph:select_recipes] selection rejected code=%s: %s", e.code, e.message)
        except Exception:
            logger.exception("[graph:select_recipes] selection call failed, using fallback")

        operations = select_fallback_operations(results, self.selection_limit)
        if not operations:
            return [], True
        try:
            validate_operations(operations, max_calls=self.max_api_calls)
        except ValidationFailure as e:
            logger.warning("[graph:select_recipes] fallback selection rejected code=%s", e.code)
            return [], True
        return operations, True

    async def _select_recipes(self, state: PipelineState) -> dict:
        """Node 3 (optional): look up full recipes for the most relevant filter hits."""
        results = state["results"]
        operations, used_fallback = await self._choose_lookups(state["message"], results)
        degraded = state.get("degraded", False) or used_fallback
        if not operations:
            logger.info("[graph:select_recipes] nothing to look up, continuing with filter results")
            return {"degraded": degraded}
        detail = await self.executor.execute_batch(operations)
        successes, failures = _partition(detail)
        logger.info("[graph:select_recipes] OUT lookups=%d successes=%d fallback=%s",
                    len(operations), len(successes), used_fallback)
        return {
            "results": results + successes,
            "failed_calls": state["failed_calls"] + len(failures),
            "api_calls_made": state["api_calls_made"] + len(operations),
            "phases": state["phases"] + [PHASE_SELECTION],
            "degraded": degraded,
        }

    async def _synthesize(self, state: PipelineState) -> dict:
        """Node 4: write the final answer. Falls back to a templated summary, never raises."""
        results = state["results"]
        degraded = state.get("degraded", False)
        logger.info("[graph:synthesize] IN  results=%d", len(results))
        try:
            answer = await self.llm.complete(build_synthesis_prompt(state["message"], results, state["history"]))
            if not answer.strip():
                raise GenerationError("Empty response from AI model")
        except Exception:
            logger.exception("[graph:synthesize] synthesis failed, using fallback summary")
            answer = build_fallback_response(results, self.fallback_limit)
            degraded = True
        logger.info("[graph:synthesize] OUT answer_len=%d degraded=%s", len(answer), degraded)
        return {"answer": answer.strip(), "phases": state["phases"] + [PHASE_SYNTHESIS], "degraded": degraded}

    def _build_graph(self):
        graph = StateGraph(PipelineState)

        graph.add_node("analyze_intent", self._analyze_intent)
        graph.add_node("retrieve", self._retrieve)
        graph.add_node("select_recipes", self._select_recipes)
        graph.add_node("synthesize", self._synthesize)

        graph.set_entry_point("analyze_intent")
        graph.add_conditional_edges("analyze_intent", self._route_after_intent)
        graph.add_conditional_edges("retrieve", self._route_after_retrieve)
        graph.add_edge("select_recipes", "synthesize")
        graph.add_edge("synthesize", END)

        return graph.compile()

    # --- Entry point ---

    async def process(self, message: str, session_id: str | None = None) -> PipelineOutcome:
        start = time.perf_counter()
        session: Session | None = None
        try:
            session = self.sessions.get(session_id)
            logger.info("[pipeline:process] START session_id=%s history_len=%d",
                        session.session_id[:16], len(session.history))
            initial: PipelineState = {
                "message": message,
                "history": session.history,
                "operations": [],
                "results": [],
                "failed_calls": 0,
                "api_calls_made": 0,
                "phases": [],
                "answer": "",
                "degraded": False,
            }
            final = await asyncio.wait_for(self._graph.ainvoke(initial), timeout=self.pipeline_timeout)
            answer = final["answer"]
            results = final.get("results") or []
            if final["phases"] != [PHASE_DIRECT]:
                self.sessions.remember_results(session.session_id, results)
            self.sessions.append(session.session_id, message, answer)
            outcome = PipelineOutcome(
                message=answer,
                session_id=session.session_id,
                processing_time_ms=int((time.perf_counter() - start) * 1000),
                api_calls_made=final.get("api_calls_made", 0),
                phases_executed=final["phases"],
                recipe_data_found=count_recipes(results),
                degraded=final.get("degraded", False),
            )
            logger.info("[pipeline:process] END phases=%s api_calls=%d recipes=%d failed_calls=%d time_ms=%d",
                        outcome.phases_executed, outcome.api_calls_made, outcome.recipe_data_found,
                        final.get("failed_calls", 0), outcome.processing_time_ms)
            return outcome
        except Exception as e:
            category = categorize_error(e)
            logger.error("[pipeline:process] failed category=%s error=%r message=%r",
                         category, e, message[:100], exc_info=category == GENERIC)
            reply = apology_for(category)
            if session is not None:
                self.sessions.append(session.session_id, message, reply)
            return PipelineOutcome(
                message=reply,
                session_id=session.session_id if session is not None else str(uuid4()),
                processing_time_ms=int((time.perf_counter() - start) * 1000),
                api_calls_made=0,
                phases_executed=[],
                degraded=True,
                error=True,
                error_category=category,
                error_message=str(e) or type(e).__name__,
            )

    # --- Observability ---

    async def health_check(self) -> dict:
        checks = {"ai_service": False, "mealdb_service": False, "sessions": True}
        health = getattr(self.llm, "health_check", None)
        if health is not None:
            checks["ai_service"] = await health()
        health = getattr(self.source, "health_check", None)
        if health is not None:
            checks["mealdb_service"] = await health()
        return {
            "healthy": all(checks.values()),
            "checks": checks,
            "session_stats": self.sessions.stats(),
        }

    def get_stats(self) -> dict:
        stats = {"session_manager": self.sessions.stats()}
        source_stats = getattr(self.source, "get_stats", None)
        if source_stats is not None:
            stats["mealdb_service"] = source_stats()
        return stats
