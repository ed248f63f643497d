"""Marketplace FastAPI application.

Web server that runs checkout, order lifecycle and delivery queries
synchronously via HTTP. Every request is wrapped in the marketplace domain
context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace.api.lifespan import lifespan
from marketplace.domain import marketplace
from marketplace.utils.logging import add_context, clear_context

marketplace.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Marketplace API",
    description="Multi-vendor delivery marketplace: checkout, orders and delivery",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the marketplace domain context and bind request log context."""
    add_context(path=request.url.path, method=request.method)
    try:
        with marketplace.domain_context():
            return await call_next(request)
    finally:
        clear_context()


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from marketplace.api.errors import register_exception_handlers  # noqa: E402
from marketplace.api.routes import (  # noqa: E402
    checkout_router,
    customer_router,
    delivery_router,
    order_router,
    vendor_router,
)

app.include_router(checkout_router)
app.include_router(order_router)
app.include_router(customer_router)
app.include_router(vendor_router)
app.include_router(delivery_router)
register_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": marketplace.name})
