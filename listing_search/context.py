"""
Per-session memory of the last search in each domain, read back by the
detail page to work out previous/next. Writes replace the whole context.
"""
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

import redis.asyncio as redis
from pydantic import ValidationError

from listing_search.config import CONTEXT_TTL_SECONDS
from listing_search.models import Domain, SearchContext

LOG = logging.getLogger("listing_search.context")


class SearchContextStore(ABC):
    @abstractmethod
    async def save(self, session: str, context: SearchContext) -> None:
        ...

    @abstractmethod
    async def load(self, session: str, domain: Domain) -> Optional[SearchContext]:
        ...


class MemoryContextStore(SearchContextStore):
    """In-process store for development and tests."""

    def __init__(self):
        self._data: Dict[Tuple[str, Domain], SearchContext] = {}

    async def save(self, session: str, context: SearchContext) -> None:
        self._data[(session, Domain(context.domain))] = context

    async def load(self, session: str, domain: Domain) -> Optional[SearchContext]:
        return self._data.get((session, Domain(domain)))


class RedisContextStore(SearchContextStore):
    """Contexts as JSON strings under ``search-context:<domain>:<session>``, expiring after ``ttl``."""

    def __init__(self, client: "redis.Redis", ttl: int = CONTEXT_TTL_SECONDS):
        self.client = client
        self.ttl = ttl

    @classmethod
    def from_url(cls, url: str, ttl: int = CONTEXT_TTL_SECONDS) -> "RedisContextStore":
        return cls(redis.from_url(url, decode_responses=True), ttl)

    @staticmethod
    def key(session: str, domain: Domain) -> str:
        return f"search-context:{Domain(domain).value}:{session}"

    async def save(self, session: str, context: SearchContext) -> None:
        await self.client.setex(self.key(session, context.domain), self.ttl, context.model_dump_json())

    async def load(self, session: str, domain: Domain) -> Optional[SearchContext]:
        raw = await self.client.get(self.key(session, domain))
        if raw is None:
            return None
        try:
            return SearchContext.model_validate_json(raw)
        except ValidationError as e:
            # written by an older build; treat as no context
            LOG.warning("discarding unreadable search context for session %s: %s", session, e)
            return None

    async def close(self) -> None:
        await self.client.aclose()
