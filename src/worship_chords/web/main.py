"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from worship_chords import __version__
from worship_chords.config import settings
from worship_chords.db.client import DatabaseClient
from worship_chords.logging_config import get_logger, setup_logging
from worship_chords.web.deps import set_database
from worship_chords.web.routes import assist, auth, health, media, songs, transpose

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan.

    Args:
        app: FastAPI application

    Yields:
        None
    """
    # Startup
    setup_logging(settings.LOG_DIR)
    settings.DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    db = DatabaseClient(settings.DB_PATH)
    db.initialize_schema()
    purged = db.purge_expired_sessions()
    if purged:
        logger.info(f"Purged {purged} expired sessions")
    set_database(db)
    logger.info(f"API started with database {settings.DB_PATH}")

    yield

    # Shutdown
    set_database(None)
    db.close()


app = FastAPI(
    title="Worship Chords API",
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report request validation errors as 400 with per-field details."""
    errors = [
        {"field": ".".join(str(part) for part in error["loc"][1:]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "Validation failed", "errors": errors})


app.include_router(health.router, prefix="/api/v1")
app.include_router(auth.router, prefix="/api/v1")
app.include_router(songs.router, prefix="/api/v1")
app.include_router(media.router, prefix="/api/v1")
app.include_router(assist.router, prefix="/api/v1")
app.include_router(transpose.router, prefix="/api/v1")


@app.get("/")
async def root() -> dict:
    """Root endpoint.

    Returns:
        Service info
    """
    return {
        "message": "Worship Chords API",
        "version": __version__,
    }


def main() -> None:
    """Entry point for running the service directly."""
    import uvicorn

    uvicorn.run(
        "worship_chords.web.main:app",
        host="0.0.0.0",
        port=8000,
        reload=False,
    )


if __name__ == "__main__":
    main()
