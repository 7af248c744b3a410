"""
Text-driven search flow.

The controller owns the query text and the published result list. Each
non-empty text change schedules one text search on the running event loop;
empty text clears the list without a request. Every request carries a
sequence number and only the latest one may publish, so a slow response for
an older text never overwrites a newer list. Superseded requests are
cancelled as well.

Presentation layers compose it through callbacks: ``subscribe`` for the
result stream, ``select`` for the selection intent, ``on_select`` and
``on_error`` towards the host.
"""
from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable, List, Optional

from places_search.config import Settings
from places_search.logging import logger
from places_search.models.schemas import Outcome, SearchQuery, SearchResult
from places_search.services.exceptions import PlacesError
from places_search.services.places_client import PlacesClient

ResultsListener = Callable[[List[SearchResult]], None]
SelectionHandler = Callable[[SearchResult], None]
ErrorHandler = Callable[[PlacesError], None]


class SearchState(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"


class SearchFlowController:
    def __init__(
        self,
        client: PlacesClient,
        settings: Settings,
        on_select: Optional[SelectionHandler] = None,
        on_error: Optional[ErrorHandler] = None,
        debounce_seconds: Optional[float] = None,
    ) -> None:
        self.client = client
        self.settings = settings
        self.on_select = on_select
        self.on_error = on_error
        self.debounce_seconds = settings.debounce_seconds if debounce_seconds is None else debounce_seconds

        self.text = ""
        self.results: List[SearchResult] = []
        self.state = SearchState.IDLE
        self.active = True
        self.last_error: Optional[PlacesError] = None

        self._listeners: List[ResultsListener] = []
        self._sequence = 0
        self._pending: Optional[asyncio.Task] = None

    def subscribe(self, listener: ResultsListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def build_query(self, text: str) -> SearchQuery:
        return SearchQuery(
            text=text,
            api_key=self.settings.api_key,
            language=self.settings.language,
            location=self.settings.search_bias,
            radius=self.settings.radius,
        )

    def set_text(self, text: str) -> Optional[asyncio.Task]:
        """
        Handle a text change; must be called from the event loop.

        Returns the scheduled search task, or ``None`` when the text is empty.
        """
        self.text = text
        self._sequence += 1
        self._cancel_pending()

        if not text:
            self.state = SearchState.IDLE
            self.last_error = None
            self._publish([])
            return None

        self.state = SearchState.SEARCHING
        self._pending = asyncio.get_running_loop().create_task(self._run(self._sequence, text))
        return self._pending

    async def update_text(self, text: str) -> None:
        """Like ``set_text`` but waits until the triggered search has settled."""
        task = self.set_text(text)
        if task is not None:
            # wait() instead of await so a superseded task does not raise here
            await asyncio.wait([task])

    async def _run(self, sequence: int, text: str) -> None:
        if self.debounce_seconds > 0:
            await asyncio.sleep(self.debounce_seconds)
        outcome = await self.client.search(self.build_query(text))
        self._apply(sequence, text, outcome)

    def _apply(self, sequence: int, text: str, outcome: Outcome) -> None:
        if sequence != self._sequence or text != self.text:
            logger.debug("search_superseded", sequence=sequence, latest=self._sequence)
            return

        if outcome.is_error:
            # keep the previous list on screen
            self.last_error = outcome.error
            if self.on_error is not None:
                try:
                    self.on_error(outcome.error)
                except Exception:
                    logger.exception("error_handler_failed")
            return

        self.last_error = None
        self._publish(list(outcome.data or []))

    def _publish(self, results: List[SearchResult]) -> None:
        self.results = results
        for listener in list(self._listeners):
            try:
                listener(list(results))
            except Exception:
                logger.exception("results_listener_failed")

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    def select(self, index: int) -> SearchResult:
        """Report the result at ``index`` to the host, then deactivate."""
        if index < 0 or index >= len(self.results):
            raise IndexError(f"No result at index {index} ({len(self.results)} results)")
        result = self.results[index]
        if self.on_select is not None:
            try:
                self.on_select(result)
            except Exception:
                logger.exception("selection_listener_failed", index=index)
        self.deactivate()
        return result

    def activate(self) -> None:
        self.active = True

    def deactivate(self) -> None:
        self.active = False

    async def aclose(self) -> None:
        task = self._pending
        self._cancel_pending()
        if task is not None:
            await asyncio.wait([task])
