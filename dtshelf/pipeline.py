"""
Debounced query pipeline.

``QueryPipelineController`` sits between user input (tab clicks, typing
in the search box) and the recommender. It

* waits for input to settle before ranking (trailing-edge debounce),
* keeps the busy flag up for at least ``min_display`` seconds so the
  loading indicator never just flickers,
* publishes a result only if the context it was computed for is still
  the current one, so a slow answer never overwrites a newer one,
* shows the whole catalog immediately for the home state, without
  ranking.

Both delays are plain ``asyncio`` timer handles owned by the controller.
A computation that has started is never cancelled; its result is
checked for staleness when it is about to be published. All methods
must be called from the event loop thread.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Set

from .catalog.schemas import Book, QueryContext
from .catalog.store import all_ids


logger = logging.getLogger(__name__)

Recommender = Callable[[str, Sequence[Book]], Awaitable[List[str]]]
Publisher = Callable[[List[str], bool], None]


class QueryPipelineController:
    def __init__(
        self,
        recommend: Recommender,
        publish: Optional[Publisher] = None,
        debounce: float = 0.3,
        min_display: float = 0.6,
    ) -> None:
        self._recommend = recommend
        self._publish = publish
        self.debounce = debounce
        self.min_display = min_display

        self.context = QueryContext()
        self.books: List[Book] = []
        # Last published ordering and busy flag, observable separately.
        self.result_ids: List[str] = []
        self.busy = False

        self._loaded = False
        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._settle_handle: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        """True while a debounce timer or a computation is outstanding."""
        return (
            self._debounce_handle is not None
            or self._settle_handle is not None
            or bool(self._tasks)
        )

    def set_catalog(self, books: Sequence[Book]) -> None:
        """Install a freshly loaded catalog and recompute for it."""
        self.books = list(books)
        self._loaded = True
        self._schedule()

    def set_context(self, context: QueryContext) -> None:
        if context == self.context:
            return
        self.context = context
        if self._loaded:
            self._schedule()

    def set_tab(self, tab: str) -> None:
        self.set_context(QueryContext(tab=tab, query=self.context.query))

    def set_query(self, query: str) -> None:
        self.set_context(QueryContext(tab=self.context.tab, query=query))

    def reset(self) -> None:
        """Back to the home state: all tab, empty search."""
        self.set_context(QueryContext())

    def close(self) -> None:
        self._cancel_timers()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    # -- state machine -----------------------------------------------

    def _schedule(self) -> None:
        self._cancel_timers()
        if self.context.is_default:
            # Home state: no ranking, no delay.
            self._emit(all_ids(self.books), busy=False)
            return
        loop = asyncio.get_running_loop()
        self._debounce_handle = loop.call_later(self.debounce, self._start_computation)

    def _cancel_timers(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        if self._settle_handle is not None:
            self._settle_handle.cancel()
            self._settle_handle = None

    def _start_computation(self) -> None:
        self._debounce_handle = None
        if self._settle_handle is not None:
            self._settle_handle.cancel()
            self._settle_handle = None
        context = self.context
        books = self.books
        self._emit(self.result_ids, busy=True)
        task = asyncio.ensure_future(self._compute(context, books))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _compute(self, context: QueryContext, books: List[Book]) -> None:
        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            ids = await self._recommend(context.combined_query, books)
        except Exception:
            logger.exception("Recommendation failed for %r", context.combined_query)
            if self._is_current(context, books):
                self._emit(self.result_ids, busy=False)
            return

        if not self._is_current(context, books):
            logger.debug("Dropping stale result for %r", context.combined_query)
            return

        remaining = self.min_display - (loop.time() - started)
        if remaining > 0:
            self._settle_handle = loop.call_later(remaining, self._settle, context, books, ids)
        else:
            self._settle(context, books, ids)

    def _settle(self, context: QueryContext, books: List[Book], ids: List[str]) -> None:
        self._settle_handle = None
        if not self._is_current(context, books):
            return
        self._emit(ids, busy=False)

    def _is_current(self, context: QueryContext, books: List[Book]) -> bool:
        return context == self.context and books is self.books

    def _emit(self, ids: List[str], busy: bool) -> None:
        self.result_ids = list(ids)
        self.busy = busy
        if self._publish is not None:
            self._publish(self.result_ids, busy)
