"""Incremental, per-keystroke query sessions."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from .engine import QueryEngine
from .exceptions import QueryEvaluationCancelled
from .models import SearchResponse
from .normalize import normalize_query

logger = logging.getLogger("mcp_doxysearch.session")

ResultListener = Callable[[SearchResponse], Awaitable[None] | None]


class SessionState(str, Enum):
    """Lifecycle of a query session."""

    IDLE = "idle"
    TYPING = "typing"
    RESOLVED = "resolved"


class QuerySession:
    """Evaluates an evolving query, newest keystroke wins.

    Every ``update`` supersedes the evaluation in flight. Results of a
    superseded evaluation are never applied, so ``current`` always belongs to
    the most recent text. Shard loads started by a superseded evaluation
    still complete and populate the store.
    """

    def __init__(
        self,
        engine: QueryEngine,
        *,
        section: str | None = None,
        on_results: ResultListener | None = None,
    ) -> None:
        self.engine = engine
        self.section = section
        self.on_results = on_results
        self.state = SessionState.IDLE
        self.text = ""
        self.current: SearchResponse | None = None
        self._generation = 0
        self._task: asyncio.Task[None] | None = None

    def update(self, text: str) -> asyncio.Task[None]:
        """Handle one keystroke; must be called from a running event loop.

        Clearing the query moves straight to Idle; the engine answers an
        empty query without loading any shard.

        Returns:
            The task evaluating ``text``
        """
        self._generation += 1
        self.text = text

        if self._task is not None and not self._task.done():
            self._task.cancel()

        if normalize_query(text):
            self.state = SessionState.TYPING
        else:
            self.state = SessionState.IDLE
        self._task = asyncio.ensure_future(self._evaluate(self._generation, text))
        return self._task

    async def settle(self) -> SearchResponse | None:
        """Wait until the newest evaluation is applied and return it."""
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})
        return self.current

    async def submit(self, text: str) -> SearchResponse | None:
        """Update with ``text`` and wait for the session to settle."""
        self.update(text)
        return await self.settle()

    async def _evaluate(self, generation: int, text: str) -> None:
        response = await self.engine.evaluate(text, section=self.section)
        try:
            await self._apply(generation, response)
        except QueryEvaluationCancelled as exc:
            logger.debug("Discarded stale results: %s", exc)

    async def _apply(self, generation: int, response: SearchResponse) -> None:
        if generation != self._generation:
            raise QueryEvaluationCancelled(response.query)

        self.current = response
        if response.status != "idle":
            self.state = SessionState.RESOLVED

        if self.on_results is not None:
            outcome = self.on_results(response)
            if inspect.isawaitable(outcome):
                await outcome
