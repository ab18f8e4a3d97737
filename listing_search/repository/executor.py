import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from listing_search.compiler import Predicate
from listing_search.config import FULL_SCAN_CAP
from listing_search.errors import SourceQueryFailure
from listing_search.models import SortKey
from listing_search.ordering import sql_order
from listing_search.sources import SourceDescriptor
from listing_search.sql import TABLES, count_select, rows_select

LOG = logging.getLogger("listing_search.repo")

RawRecord = Dict[str, Any]


@dataclass(frozen=True)
class Window:
    offset: int
    limit: int


class SourceQueryExecutor:
    """
    Read-only access to the feeds. Every call checks out its own pooled
    connection on a worker thread, so calls can be gathered concurrently.
    No retries: a failing query raises SourceQueryFailure for the caller.
    """

    def __init__(self, engine: Engine, full_scan_cap: int = FULL_SCAN_CAP):
        self.engine = engine
        self.full_scan_cap = full_scan_cap

    # ---- async API ----

    async def execute(
        self,
        predicate: Predicate,
        sort_key: SortKey,
        window: Optional[Window] = None,
        columns: Optional[Sequence[str]] = None,
    ) -> List[RawRecord]:
        if window is None:
            rows, _ = await self.scan(predicate, sort_key, columns)
            return rows
        return await asyncio.to_thread(self._rows, predicate, sort_key, window, columns)

    async def scan(
        self,
        predicate: Predicate,
        sort_key: SortKey,
        columns: Optional[Sequence[str]] = None,
    ) -> Tuple[List[RawRecord], bool]:
        """All matching rows up to the cap; the flag says the cap cut rows off."""
        rows = await asyncio.to_thread(
            self._rows, predicate, sort_key, Window(0, self.full_scan_cap + 1), columns
        )
        if len(rows) > self.full_scan_cap:
            LOG.warning(
                "source %s matched more than %d rows; result truncated",
                predicate.source.name, self.full_scan_cap,
            )
            return rows[: self.full_scan_cap], True
        return rows, False

    async def count(self, predicate: Predicate) -> int:
        return await asyncio.to_thread(self._count, predicate)

    async def page(
        self,
        predicate: Predicate,
        sort_key: SortKey,
        window: Window,
        columns: Optional[Sequence[str]] = None,
    ) -> Tuple[List[RawRecord], int]:
        """Rows for ``window`` plus the total under the same predicate, fetched together."""
        rows, total = await asyncio.gather(
            self.execute(predicate, sort_key, window, columns),
            self.count(predicate),
        )
        return rows, total

    async def get_by_id(self, source: SourceDescriptor, listing_id: str) -> Optional[RawRecord]:
        return await asyncio.to_thread(self._one, source, listing_id)

    # ---- blocking work ----

    def _rows(self, predicate, sort_key, window: Window, columns) -> List[RawRecord]:
        table = predicate.table
        stmt = (
            rows_select(table, columns)
            .where(predicate.clause)
            .order_by(*sql_order(table, predicate.source, sort_key))
            .limit(window.limit)
            .offset(window.offset)
        )
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as e:
            LOG.error("rows query failed for source %s: %s", predicate.source.name, e)
            raise SourceQueryFailure(predicate.source.name, "rows", str(e)) from e
        LOG.debug(
            "source %s: %d rows (offset=%d limit=%d)",
            predicate.source.name, len(rows), window.offset, window.limit,
        )
        return [dict(r) for r in rows]

    def _count(self, predicate) -> int:
        # total count without ordering or pagination
        stmt = count_select(predicate.table).where(predicate.clause)
        try:
            with self.engine.connect() as conn:
                total = conn.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            LOG.error("count query failed for source %s: %s", predicate.source.name, e)
            raise SourceQueryFailure(predicate.source.name, "count", str(e)) from e
        return int(total)

    def _one(self, source: SourceDescriptor, listing_id: str) -> Optional[RawRecord]:
        table = TABLES[source.table]
        stmt = rows_select(table).where(table.c[source.identity_field] == listing_id)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(stmt).mappings().first()
        except SQLAlchemyError as e:
            raise SourceQueryFailure(source.name, "detail", str(e)) from e
        return dict(row) if row else None
