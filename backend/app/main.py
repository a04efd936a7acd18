from contextlib import asynccontextmanager
import logging

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.core.config import settings
from app.core.limiter import limiter
from app.core.logging import setup_logging
from app.core.session import InstitutionScopeError
from app.services.platform import PlatformAPIError, close_platform_client
from app.services.spreadsheet import ImportFileRejected
from app.services.wizard import ImportSubmissionRefused, InvalidWizardTransition

setup_logging()

logger = logging.getLogger(__name__)

# Initialize Sentry error monitoring
if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        environment=settings.APP_ENV,
        send_default_pii=False,
    )
    logger.info("Sentry initialized")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Forwarding platform calls to %s", settings.PLATFORM_API_URL)
    yield
    await close_platform_client()


app = FastAPI(
    title="Internship Admin Gateway",
    version="0.1.0",
    docs_url="/api/docs" if settings.APP_ENV != "production" else None,
    redoc_url="/api/redoc" if settings.APP_ENV != "production" else None,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Error translation ───

@app.exception_handler(PlatformAPIError)
async def platform_error_handler(request: Request, exc: PlatformAPIError):
    # Upstream 5xx and transport failures are a bad gateway from the console's view
    status_code = exc.status_code if exc.status_code < 500 else 502
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


@app.exception_handler(ImportFileRejected)
async def file_rejected_handler(request: Request, exc: ImportFileRejected):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(ImportSubmissionRefused)
async def submission_refused_handler(request: Request, exc: ImportSubmissionRefused):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(InstitutionScopeError)
async def institution_scope_handler(request: Request, exc: InstitutionScopeError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(InvalidWizardTransition)
async def wizard_transition_handler(request: Request, exc: InvalidWizardTransition):
    return JSONResponse(status_code=409, content={"detail": exc.message, "step": exc.step.value})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception: %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error."})


# ─── Routers ───
from app.api.v1.router import api_router  # noqa: E402

app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health():
    return {"status": "ok", "env": settings.APP_ENV}
