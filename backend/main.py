# main.py — Kanbex API Gateway
# Features:
# - One procedure set served over REST (/api) and RPC (/api/trpc)
# - Generated OpenAPI document at /docs/swagger.json, Swagger UI at /docs, ReDoc at /redoc
# - Request correlation IDs and security headers
# - Health check with DB verification

import uuid
import time
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text

from config import settings, check_startup_config
from database import engine, init_db, close_db, get_db_context
from errors import ApiError, BadRequest, InternalServerError, clean_validation_errors
from gateway import mount
from routers import app_routers
from telemetry import setup_telemetry

VERSION = "1.0.0"

# Logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
)
logger = logging.getLogger("kanbex")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting Kanbex v{VERSION}...")
    check_startup_config(settings)
    await init_db()
    setup_telemetry(app, engine)
    yield
    logger.info("Shutting down Kanbex...")
    await close_db()


app = FastAPI(
    title="Kanbex APIs",
    description="OpenAPI compliant REST API for kanban board",
    version=VERSION,
    lifespan=lifespan,
    openapi_url="/docs/swagger.json",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ============================================================
# CORS
# ============================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID", "X-Correlation-ID"],
    expose_headers=["X-Request-ID", "X-Correlation-ID"],
)


# ============================================================
# MIDDLEWARE: Correlation IDs + Timing
# ============================================================

@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    correlation_id = request.headers.get("X-Correlation-ID", request_id)
    request.state.request_id = request_id
    request.state.correlation_id = correlation_id

    start = time.perf_counter()
    response = await call_next(request)
    duration = time.perf_counter() - start

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Correlation-ID"] = correlation_id
    response.headers["X-Response-Time"] = f"{duration:.4f}s"

    logger.info(
        f"{request.method} {request.url.path} → {response.status_code} "
        f"({duration:.3f}s) [rid={request_id[:8]}]"
    )
    return response


# ============================================================
# MIDDLEWARE: Security Headers
# ============================================================

@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# ============================================================
# EXCEPTION HANDLERS
# ============================================================

@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_rest(getattr(request.state, "request_id", None)),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    err = BadRequest("Invalid input", issues=clean_validation_errors(exc.errors()))
    return JSONResponse(
        status_code=err.status_code,
        content=err.to_rest(getattr(request.state, "request_id", None)),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    err = InternalServerError()
    return JSONResponse(
        status_code=err.status_code,
        content=err.to_rest(getattr(request.state, "request_id", None)),
    )


# ============================================================
# PROCEDURES
# ============================================================

procedures = mount(app, app_routers)


# ============================================================
# HEALTH & ROOT
# ============================================================

@app.get("/health", include_in_schema=False)
async def health_check():
    """Health check with database connectivity verification"""
    try:
        async with get_db_context() as db:
            await db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.warning(f"Health check could not reach the database: {e}")
        db_status = f"error: {str(e)[:100]}"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "version": VERSION,
        "environment": settings.environment,
        "database": db_status,
    }


@app.get("/", include_in_schema=False)
async def root():
    return {
        "name": "Kanbex",
        "version": VERSION,
        "docs": "/docs",
        "openapi": "/docs/swagger.json",
        "rest": "/api",
        "rpc": "/api/trpc",
        "procedures": len(procedures),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.environment == "development",
    )
