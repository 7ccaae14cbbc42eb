"""
Batch executor: run a batch of recipe API operations concurrently.

One bad operation never blocks the others. Every input gets exactly one
OperationResult, in input order; failures are tagged results that keep their
originating operation.
"""

import asyncio
import logging
from typing import Protocol

from chefsue.core.errors import RetrievalError
from chefsue.schemas.operations import Operation, OperationResult

logger = logging.getLogger(__name__)


class RecipeSource(Protocol):
    async def execute_call(self, operation: Operation) -> OperationResult: ...


class BatchExecutor:
    def __init__(self, source: RecipeSource) -> None:
        self.source = source

    async def _run(self, operation: Operation) -> OperationResult:
        try:
            return await self.source.execute_call(operation)
        except RetrievalError as e:
            logger.warning("[batch:run] call failed call=%s error=%s", operation.describe(), e)
            return OperationResult.failure(operation, e.message)

    async def execute_batch(self, operations: list[Operation]) -> list[OperationResult]:
        if not operations:
            return []
        logger.info("[batch:execute_batch] IN  calls=%d", len(operations))
        settled = await asyncio.gather(*(self._run(op) for op in operations), return_exceptions=True)
        results: list[OperationResult] = []
        for index, (operation, outcome) in enumerate(zip(operations, settled)):
            if isinstance(outcome, OperationResult):
                results.append(outcome)
                continue
            # Anything _run did not translate: programming errors, cancellation of one call.
            logger.error("[batch:execute_batch] call rejected index=%d call=%s reason=%r",
                         index, operation.describe(), outcome)
            results.append(OperationResult.failure(operation, str(outcome) or "Unknown error"))
        failed = sum(1 for r in results if r.error)
        logger.info("[batch:execute_batch] OUT results=%d failed=%d", len(results), failed)
        return results
