"""
Exception -> HTTP response mapping.

* ``BusinessRuleError``  -- client fault; its own status code and ``code``.
* ``LockNotAcquired``    -- another admin is mid-update; retryable 503.
* ``SQLAlchemyError``    -- server fault; logged with traceback, generic 500.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from movenow.domain.errors import BusinessRuleError
from movenow.infrastructure.locks import LockNotAcquired

logger = logging.getLogger(__name__)


async def business_rule_handler(request: Request, exc: BusinessRuleError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


async def lock_busy_handler(request: Request, exc: LockNotAcquired):
    logger.warning("%s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={
            "detail": "Resource is being updated, please retry",
            "code": "LockNotAcquired",
        },
    )


async def persistence_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Persistence failure on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": "InternalError"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BusinessRuleError, business_rule_handler)
    app.add_exception_handler(LockNotAcquired, lock_busy_handler)
    app.add_exception_handler(SQLAlchemyError, persistence_error_handler)
