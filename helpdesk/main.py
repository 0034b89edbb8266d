"""FastAPI application wiring for the helpdesk action relay.

Two request handlers sit between the help-desk front end, the Postgres store
and the external reasoning backend:

- ``POST /functions/v1/handle-message``: a customer message on a ticket.
- ``POST /functions/v1/handle-manager-prompt``: a manager prompt that curates
  knowledge-base articles.

The shared connection pool is opened when the application starts and closed
on shutdown; each request checks out one connection for its full duration.
"""

from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

from .__version__ import __build_date__, __commit_sha__, __version__
from .app_logging import init_logging
from .core.db import close_pool, init_pool
from .core.settings import get_settings
from .routers import manager, messages

load_dotenv()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_pool(get_settings())
    try:
        yield
    finally:
        close_pool()


app = FastAPI(title="helpdesk", version=__version__, lifespan=lifespan)
init_logging(app)
app.include_router(messages.router)
app.include_router(manager.router)


@app.get("/api/health")
async def health():
    """Liveness/readiness probe with a minimal JSON body."""
    return {"status": "ok"}


@app.get("/api/version")
async def version():
    """Return version information for the application."""
    return {
        "version": __version__,
        "build_date": __build_date__,
        "commit_sha": __commit_sha__,
    }
