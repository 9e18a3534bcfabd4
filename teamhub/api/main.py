"""
TeamHub API Server

FastAPI server that provides REST endpoints for players, teams, team
memberships, games and attendance.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import os
import uvicorn

from teamhub.api.routes import router
from teamhub.database import db
from teamhub.services.auth_service import get_token_service

# Set up logging
# Allow log level to be configured via environment variable (default: INFO)
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
numeric_level = getattr(logging, log_level, logging.INFO)
logging.basicConfig(
    level=numeric_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup and shutdown events."""
    # Startup
    logger.info("Starting up TeamHub API...")

    # Refuse to start without a token signing secret
    get_token_service()

    try:
        await db.init_database()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)
        raise

    yield  # App is running

    # Shutdown
    logger.info("Shutting down TeamHub API...")
    await db.engine.dispose()


app = FastAPI(
    title="TeamHub API",
    description="API for managing sports teams, their games and game attendance",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware (origins configured via ALLOWED_ORIGINS env var)
allowed_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


def validation_message(errors) -> str:
    """Turn the first pydantic error into a single client-facing message."""
    if not errors:
        return "Invalid request."
    error = errors[0]
    loc = [str(part) for part in error.get("loc", ())]
    if loc and loc[0] in ("body", "query", "path", "header"):
        loc = loc[1:]
    field = ".".join(loc)
    error_type = error.get("type", "")

    if error_type == "value_error" and "error" in error.get("ctx", {}):
        return str(error["ctx"]["error"])
    if error_type == "json_invalid":
        return "Request body is not valid JSON."
    if error_type == "missing":
        if not field:
            return "Request body is required."
        return f"Missing required field: {field}."
    if not field:
        return "Invalid request body."
    return f"Invalid value for {field}."


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    message = validation_message(exc.errors())
    logger.debug(f"Rejected {request.method} {request.url.path}: {message}")
    return JSONResponse(status_code=400, content={"message": message})


# Include API routes
app.include_router(router)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
