# clinic/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from clinic.core.config import settings
from clinic.db.seed import seed_if_empty
from clinic.db.sql import AsyncSessionLocal, init_db
from clinic.routers import appointments, health, session, users
from clinic.services import build_services

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# Define lifespan event
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create tables, seed an empty store, then build the outbound service
    handles. Tests may install their own handles on app.state beforehand.
    """
    await init_db()
    if settings.SEED_ON_STARTUP:
        async with AsyncSessionLocal() as db:
            await seed_if_empty(db)

    owns_services = getattr(app.state, "services", None) is None
    if owns_services:
        app.state.services = build_services()
    logger.info("Clinic API started (env=%s)", settings.APP_ENV)
    try:
        yield
    finally:
        if owns_services:
            await app.state.services.aclose()
            app.state.services = None


app = FastAPI(
    title="Clinic Appointment Booking API",
    debug=settings.DEBUG,
    lifespan=lifespan,
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    # Clients read `message`; `detail` kept for FastAPI tooling
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail, "detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# Routing
app.include_router(health.router, prefix=settings.API_PREFIX, tags=["health"])
app.include_router(users.router, prefix=settings.API_PREFIX, tags=["users"])
app.include_router(session.router, prefix=settings.API_PREFIX, tags=["session"])
app.include_router(appointments.router, prefix=settings.API_PREFIX, tags=["appointments"])


@app.get("/")
def root():
    return {"message": "Clinic Appointment API running successfully"}
