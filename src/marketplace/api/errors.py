"""HTTP mapping for marketplace errors.

protean's handlers cover the base exception types (ValidationError → 400,
ObjectNotFoundError → 404, ...). The marketplace subtypes that need a
different status are registered on top; Starlette picks the most specific
handler along the exception's MRO.
"""

import math

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers as register_protean_handlers

from marketplace.errors import (
    EmptyCart,
    Expired,
    InvalidTransition,
    NotFound,
    OutOfZone,
    OwnershipMismatch,
    PriceNotFound,
    RateLimited,
    StoreUnavailable,
)

STATUS_CODES = {
    NotFound: 404,
    Expired: 404,
    OwnershipMismatch: 403,
    EmptyCart: 400,
    StoreUnavailable: 409,
    OutOfZone: 400,
    PriceNotFound: 400,
    InvalidTransition: 409,
    RateLimited: 429,
}


def _body(exc) -> dict:
    return {"error": exc.messages, "code": exc.code}


async def _marketplace_error(request: Request, exc) -> JSONResponse:
    status_code = next(STATUS_CODES[cls] for cls in type(exc).__mro__ if cls in STATUS_CODES)
    return JSONResponse(status_code=status_code, content=_body(exc))


async def _rate_limited(request: Request, exc: RateLimited) -> JSONResponse:
    retry_after = max(1, math.ceil(exc.retry_after))
    return JSONResponse(
        status_code=429,
        content={**_body(exc), "retry_after": retry_after},
        headers={"Retry-After": str(retry_after)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    register_protean_handlers(app)
    for exc_class in STATUS_CODES:
        if exc_class is RateLimited:
            app.add_exception_handler(exc_class, _rate_limited)
        else:
            app.add_exception_handler(exc_class, _marketplace_error)
