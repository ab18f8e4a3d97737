"""
Keeps search results in step with what the user asked for last.

Every submit gets a ticket and a fingerprint. Starting a new search cancels
the one in flight; a run that finishes after a newer submit is discarded.
Runs wait a short quiet period first so a burst of filter edits costs one
query. Listeners hear about every filter change together with its origin,
so a reset or a restore can be told apart from a user edit.
"""
import asyncio
import hashlib
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

from listing_search.config import SEARCH_DEBOUNCE_MS
from listing_search.errors import SearchCancelled
from listing_search.models import CanonicalFilter, Domain, SortKey

LOG = logging.getLogger("listing_search.coordinator")

T = TypeVar("T")


class ChangeOrigin(str, Enum):
    USER = "user"
    RESET = "reset"        # filters cleared programmatically
    RESTORE = "restore"    # filters rebuilt from a URL or a stored context


@dataclass(frozen=True)
class SearchRequest:
    filter: CanonicalFilter
    sort_key: SortKey = SortKey.PUBLISHED
    domain: Domain = Domain.SALE
    page: int = 1

    def fingerprint(self) -> str:
        payload = {
            "filter": _canonical(self.filter),
            "sort": SortKey(self.sort_key).value,
            "domain": Domain(self.domain).value,
            "page": self.page,
        }
        blob = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha1(blob.encode("utf-8")).hexdigest()


def _canonical(flt: CanonicalFilter) -> dict:
    data = flt.model_dump(mode="json")
    return {k: sorted(v) if isinstance(v, list) else v for k, v in data.items()}


@dataclass(frozen=True)
class FilterChangeEvent:
    request: SearchRequest
    origin: ChangeOrigin

    @property
    def suppress_side_effects(self) -> bool:
        return self.origin is not ChangeOrigin.USER


Listener = Callable[[FilterChangeEvent], None]


class SearchCoordinator(Generic[T]):
    def __init__(
        self,
        run: Callable[[SearchRequest], Awaitable[T]],
        debounce_ms: int = SEARCH_DEBOUNCE_MS,
    ):
        self._run = run
        self.debounce = max(debounce_ms, 0) / 1000.0
        self._seq = 0
        self._task: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []
        self.latest_fingerprint: Optional[str] = None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a filter-change listener; returns the function that removes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    async def submit(self, request: SearchRequest, origin: ChangeOrigin = ChangeOrigin.USER) -> Optional[T]:
        """
        Run ``request`` unless something newer arrives first.
        Returns None when the run was superseded.
        """
        self._seq += 1
        seq = self._seq
        fingerprint = request.fingerprint()
        self.latest_fingerprint = fingerprint

        event = FilterChangeEvent(request, ChangeOrigin(origin))
        for listener in list(self._listeners):
            listener(event)

        if self._task is not None and not self._task.done():
            self._task.cancel()
        task = asyncio.ensure_future(self._debounced(seq, request))
        self._task = task

        try:
            result = await task
            self._check_current(seq)
            return result
        except asyncio.CancelledError:
            # cancelled by our own caller rather than by a newer submit
            if seq == self._seq:
                raise
        except SearchCancelled:
            pass
        except Exception:
            if seq == self._seq:
                raise
        LOG.debug("search %s superseded", fingerprint[:12])
        return None

    async def _debounced(self, seq: int, request: SearchRequest) -> T:
        if self.debounce:
            await asyncio.sleep(self.debounce)
        self._check_current(seq)
        return await self._run(request)

    def _check_current(self, seq: int) -> None:
        if seq != self._seq:
            raise SearchCancelled(f"search #{seq} superseded by #{self._seq}")

    async def aclose(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
