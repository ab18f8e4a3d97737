# listing_search/deps.py
import uuid
from typing import Optional

from fastapi import Cookie, Header, Response
from sqlalchemy import create_engine

from listing_search.config import CONTEXT_TTL_SECONDS, DATABASE_URL, FULL_SCAN_CAP, REDIS_URL
from listing_search.context import MemoryContextStore, RedisContextStore, SearchContextStore
from listing_search.engine import FederatedSearch
from listing_search.repository.executor import SourceQueryExecutor

SESSION_HEADER = "X-Search-Session"
SESSION_COOKIE = "search_session"

# Single engine for the process; each source query checks out its own connection
engine = create_engine(
    DATABASE_URL,
    future=True,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
)


def _context_store() -> SearchContextStore:
    if REDIS_URL:
        return RedisContextStore.from_url(REDIS_URL, ttl=CONTEXT_TTL_SECONDS)
    return MemoryContextStore()


search_service = FederatedSearch(SourceQueryExecutor(engine, FULL_SCAN_CAP), _context_store())


def get_search() -> FederatedSearch:
    """FastAPI dependency returning the process-wide search engine."""
    return search_service


def get_session(
    response: Response,
    header: Optional[str] = Header(None, alias=SESSION_HEADER),
    cookie: Optional[str] = Cookie(None, alias=SESSION_COOKIE),
) -> str:
    """
    Browsing session the search context is stored under.
    A new one is issued as a cookie when the caller has none.
    """
    session = header or cookie
    if not session:
        session = uuid.uuid4().hex
        response.set_cookie(
            SESSION_COOKIE, session, max_age=CONTEXT_TTL_SECONDS, httponly=True, samesite="lax",
        )
    return session
