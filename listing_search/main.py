import logging

from fastapi import FastAPI

from listing_search.config import LOG_FORMAT, LOG_LEVEL
from listing_search.routers import listings

logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO), format=LOG_FORMAT)

app = FastAPI(
    title="Federated Listing Search API",
    version="1.0.0",
    description="One filter, answered across the resale, new-development and rental feeds.",
)

app.include_router(listings.router)


@app.get("/api/health")
def health():
    return {"status": "ok"}
