"""
Resolution core: tracks the selected division, its driver list and the car
number being looked up, and derives what the dashboard should show.
"""

import asyncio
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Protocol, Set, Tuple

from config import RESULT_ANCHOR, UNCONFIGURED_ENDPOINT
from .drivers import NO_STATS_MESSAGE, DriverRecord, find_driver
from .division_client import DivisionFetchError
from .registry import SourceEntry, SourceRegistry
from .resolution import (
    Error,
    Found,
    Idle,
    Loading,
    NoQuery,
    NotFound,
    ResolutionState,
)


class DriverSource(Protocol):
    """Anything that can fetch a division's drivers (DivisionClient in production)."""

    async def fetch_drivers(self, endpoint: str) -> List[DriverRecord]:
        ...


Listener = Callable[["ResolutionCore"], None]


class ResolutionCore:
    """
    State owner for one page session.

    All methods run on the event loop thread. select_source() schedules the
    fetch as a task and returns immediately, so queries can be typed while
    the driver list is loading. Each selection bumps a request token and a
    fetch result is only applied if its token is still the latest one.
    """

    def __init__(
        self,
        registry: SourceRegistry,
        client: DriverSource,
        result_anchor: str = RESULT_ANCHOR,
    ):
        self._registry = registry
        self._client = client
        self._result_anchor = result_anchor

        self._selected: SourceEntry = registry.sentinel
        self._query: str = ""
        self._records: Tuple[DriverRecord, ...] = ()

        # Outcome of the latest selection: Idle, Loading, Error or None once loaded
        self._source_state: Optional[ResolutionState] = Idle()
        self._state: ResolutionState = Idle()

        self._token: int = 0
        self._fetch_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

        self._scroll_pending: bool = False
        self._listeners: List[Listener] = []

    # Observable state

    @property
    def state(self) -> ResolutionState:
        return self._state

    @property
    def query(self) -> str:
        return self._query

    @property
    def selected(self) -> SourceEntry:
        return self._selected

    @property
    def records(self) -> Tuple[DriverRecord, ...]:
        return self._records

    def list_sources(self) -> List[SourceEntry]:
        return self._registry.list_sources()

    def add_listener(self, listener: Listener) -> None:
        """Call listener(core) after every visible change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def consume_scroll_signal(self) -> bool:
        """
        Check whether the page should scroll to the result.

        Returns True once per transition into Found, then False until the
        next such transition.
        """
        pending = self._scroll_pending
        self._scroll_pending = False
        return pending

    def snapshot(self) -> Dict[str, Any]:
        """
        Everything the page needs to render, as JSON-ready data.

        Consumes the scroll signal.
        """
        return {
            "sources": [
                {"name": e.name, "endpoint": e.endpoint} for e in self.list_sources()
            ],
            "selected": self._selected.name,
            "query": self._query,
            "state": self._state.to_dict(),
            "scrollTo": self._result_anchor if self.consume_scroll_signal() else None,
        }

    # Events

    def select_source(self, entry: SourceEntry) -> None:
        """
        Make entry the active division.

        Clears the query and the current driver list. A real division starts
        a fetch on the running event loop; the sentinel goes back to Idle.
        """
        self._token += 1
        self._selected = entry
        self._query = ""
        self._records = ()

        if entry.is_sentinel:
            self._source_state = Idle()
        elif entry.endpoint == UNCONFIGURED_ENDPOINT:
            self._source_state = Error(
                f"The {entry.name} division endpoint is not configured. "
                "Set its Apps Script web app URL."
            )
        else:
            self._source_state = Loading()
            self._start_fetch(entry, self._token)

        self._resolve()
        self._notify()

    def set_query(self, raw: str) -> None:
        """Set the car number to look up. Never touches the network."""
        self._query = raw.strip()
        self._resolve()
        self._notify()

    async def wait_for_fetch(self) -> None:
        """Wait for the latest fetch, if one is outstanding."""
        if self._fetch_task is not None and not self._fetch_task.done():
            await self._fetch_task

    # Internals

    def _start_fetch(self, entry: SourceEntry, token: int) -> None:
        """Schedule the fetch for entry, tagged with the selection token."""
        task = asyncio.get_running_loop().create_task(self._fetch(entry, token))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._fetch_task = task

    async def _fetch(self, entry: SourceEntry, token: int) -> None:
        """Fetch entry's drivers and apply the outcome if still current."""
        try:
            records = await self._client.fetch_drivers(entry.endpoint)
        except DivisionFetchError as e:
            if token != self._token:
                print(f"[CORE] Discarding stale failure for {entry.name}")
                return
            print(f"[CORE] {entry.name}: {e}")
            self._records = ()
            self._source_state = Error(str(e))
        except Exception as e:
            if token != self._token:
                print(f"[CORE] Discarding stale failure for {entry.name}")
                return
            print(f"[CORE] Unexpected error loading {entry.name}: {e!r}")
            self._records = ()
            self._source_state = Error(f"Failed to load driver data: {e}")
        else:
            if token != self._token:
                print(f"[CORE] Discarding stale driver list for {entry.name}")
                return
            self._records = tuple(records)
            self._source_state = None

        self._resolve()
        self._notify()

    def _resolve(self) -> None:
        """Derive the visible state from selection outcome, query and drivers."""
        previous = self._state

        if self._source_state is not None:
            state = self._source_state
        elif not self._query:
            state = NoQuery()
        else:
            driver = find_driver(self._records, self._query)
            if driver is None:
                state = NotFound(self._query)
            else:
                state = Found(replace(driver, stats=driver.stats or NO_STATS_MESSAGE))

        if isinstance(state, Found) and not isinstance(previous, Found):
            self._scroll_pending = True
        elif not isinstance(state, Found):
            self._scroll_pending = False

        self._state = state

    def _notify(self) -> None:
        """Tell listeners the state may have changed."""
        for listener in list(self._listeners):
            listener(self)
