import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from country_cache.core.exceptions import ExternalSourceUnavailable

logger = logging.getLogger(__name__)


def error_response(status_code, error, details=None):
    content = {"error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Build a simple field -> message map from validation errors
    details = {}
    for err in exc.errors():
        loc = err.get("loc") or ()
        # prefer the last location token as the field name
        field = loc[-1] if loc else "query"
        details[str(field)] = err.get("msg")
    return error_response(400, "Validation failed", details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_response(404, "Not found")
    return error_response(exc.status_code, str(exc.detail))


async def external_source_handler(request: Request, exc: ExternalSourceUnavailable):
    logger.error("External data source unavailable: %s (%s)", exc.source, exc.reason)
    return error_response(503, "External data source unavailable", {"source": exc.source})


async def internal_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return error_response(500, "Internal server error")


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(ExternalSourceUnavailable, external_source_handler)
    app.add_exception_handler(Exception, internal_exception_handler)
