import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from country_cache import database
from country_cache.api.endpoints import country, status
from country_cache.api.errors import error_response, register_exception_handlers
from country_cache.config import Config
from country_cache.logging_config import configure_logging
from country_cache.migrations import apply_schema

configure_logging()
logger = logging.getLogger("country_cache.http")

# Requests to these paths are served but not logged
QUIET_PATHS = {"/status", "/health", "/favicon.ico"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The store must be open and migrated before any traffic is served
    database.acquire()
    apply_schema()
    yield
    database.close()


app = FastAPI(title="Country Currency & Exchange API", lifespan=lifespan)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
register_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:8]
    start = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "Unhandled error on %s %s [%s]", request.method, request.url.path, request_id
        )
        response = error_response(500, "Internal server error")

    elapsed_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"

    if request.url.path not in QUIET_PATHS:
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            "%s %s %s %s %.2fms [%s]",
            "OK" if response.status_code < 400 else "FAIL",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
    return response


app.include_router(country.router)
app.include_router(status.router)


@app.get("/health")
def health_check():
    """Health check endpoint to verify database connection"""
    db_type = database.acquire().dialect.name
    db = database.new_session()
    try:
        db.execute(text("SELECT 1"))
        schema_ready = database.table_exists("countries")
    except Exception as e:
        logger.warning("Health check failed: %s", e)
        return {
            "status": "unhealthy",
            "database": {"status": "disconnected", "type": db_type},
        }
    finally:
        db.close()

    return {
        "status": "healthy" if schema_ready else "degraded",
        "database": {"status": "connected", "type": db_type, "schema_ready": schema_ready},
    }


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Country Currency & Exchange API",
        "endpoints": {
            "GET /health": "Health check and database status",
            "POST /countries/refresh": "Refresh country data",
            "GET /countries": "Get countries (supports ?region=, ?currency=, ?sort=, ?limit=, ?offset=)",
            "GET /countries/{name}": "Get country by name",
            "DELETE /countries/{name}": "Delete country",
            "GET /status": "Get system status",
            "GET /countries/image": "Get summary image",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=Config.host, port=Config.port)
