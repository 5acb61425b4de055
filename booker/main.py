import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from booker.api import availability, bookings, health, notify
from booker.config import settings
from booker.providers.ubc_provider import MockPortalProvider, UBCTennisProvider
from booker.services.booking_service import booking_service

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    if not settings.booker_api_token:
        logger.warning(
            "BOOKER_API_TOKEN is not configured. "
            "/check_now, /book and /notify will reject every request."
        )

    portal_config = settings.portal_config()
    if portal_config.has_credentials:
        logger.info("Portal credentials configured - using real UBCTennisProvider")
        provider = UBCTennisProvider(portal_config)
    else:
        logger.warning(
            "Portal credentials not configured - using MockPortalProvider. "
            "Set PORTAL_USERNAME and PORTAL_PASSWORD for real bookings."
        )
        provider = MockPortalProvider()
    booking_service.set_portal_provider(provider)

    yield

    await provider.close()


app = FastAPI(
    title="UBC Tennis Booker",
    description="Finds and books UBC Recreation tennis courts",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    detail = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": "Invalid request", "detail": detail})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


app.include_router(health.router)
app.include_router(availability.router)
app.include_router(bookings.router)
app.include_router(notify.router)
