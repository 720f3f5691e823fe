"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import connections
from logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Drain the account sync pool on shutdown."""
    yield
    try:
        connections.get_connection_sync_service().scheduler.shutdown(wait=True)
    except Exception:
        logger.warning("Account sync pool shutdown failed", exc_info=True)


app = FastAPI(
    title="Bridge Sync",
    description="Aggregation-bridge sync, reconciliation and connection health",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(connections.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
