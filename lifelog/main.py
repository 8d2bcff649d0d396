from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from lifelog.db.base import close_database, get_database, get_db
from lifelog.core.config import settings
from lifelog.core.logging import configure_logging
from lifelog.routers import events as events_router
from lifelog.routers import values as values_router
from lifelog.routers import analytics as analytics_router
from lifelog.routers import transfer as transfer_router
from lifelog.routers import settings as settings_router
from lifelog.core.errors import (
    LifelogException,
    lifelog_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

configure_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(_: FastAPI):
    get_database()
    yield
    close_database()


app = FastAPI(
    title="Lifelog API",
    description=(
        "**Personal event tracker**\n\n"
        "Records one boolean, numeric or free-text value per event per day, "
        "filters out placeholder values for charts, and backs the whole store "
        "up to a portable JSON snapshot.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(LifelogException, lifelog_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(events_router.router)
app.include_router(values_router.router)
app.include_router(analytics_router.router)
app.include_router(transfer_router.router)
app.include_router(settings_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception:
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
