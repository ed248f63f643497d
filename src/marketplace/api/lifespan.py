"""Application lifespan: domain infrastructure is released when the server stops."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from marketplace.domain import marketplace

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Marketplace API starting", domain=marketplace.name)
    yield
    logger.info("Marketplace API shutting down")
    marketplace.close()
