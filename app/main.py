from contextlib import asynccontextmanager
import logging
import uuid

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.arq import close_arq_pool
from app.core.config import settings
from app.core.logging import configure_logging
from app.api.v1 import interests, matches, notifications
from app.schemas.interest import Interest as InterestSchema
from app.services.exceptions import DuplicateInterest, InterestServiceError
from app.services.side_effect_dispatcher import drain_background_tasks

configure_logging(settings.app_env, settings.log_level or None)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await drain_background_tasks(timeout=5.0)
    await close_arq_pool()


app = FastAPI(
    title="Matchmaking Interest API",
    description="Interest lifecycle and candidate ranking for a matchmaking platform",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def bind_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(InterestServiceError)
async def interest_error_handler(request: Request, exc: InterestServiceError):
    """Render domain refusals as typed, user-facing errors"""
    body = exc.to_dict()
    if isinstance(exc, DuplicateInterest) and exc.interest is not None:
        body["interest"] = InterestSchema.model_validate(exc.interest).model_dump(mode="json")
    logger.info(f"{request.method} {request.url.path} refused: {exc.code} ({exc.detail})")
    return JSONResponse(status_code=exc.status_code, content=body)


# Include API routers
app.include_router(interests.router, prefix="/api/v1/interests", tags=["Interests"])
app.include_router(matches.router, prefix="/api/v1/matches", tags=["Matches"])
app.include_router(notifications.router, prefix="/api/v1/notifications", tags=["Notifications"])


@app.get("/healthz")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "version": "1.0.0"}


@app.get("/")
async def root():
    """Root endpoint"""
    return {"message": "Matchmaking Interest API", "docs": "/docs"}
