"""FastAPI application exposing release context builds.

Endpoints:
- POST /context - Build the release context for a commit range
- GET /health - Health check for load balancers and monitoring
- Automatic OpenAPI/Swagger documentation at /docs

Architecture notes:
- FastAPI handles HTTP concerns (routing, validation, serialization)
- The context builder handles the crawl
- Requests accept camelCase or snake_case fields; responses use the same
  camelCase payload the prompt builder sends to the LLM

To run locally:
    uvicorn nuntia.main:app --reload --port 8000
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from nuntia import __version__
from nuntia.config import RangeConfig
from nuntia.context.builder import ContextBuilder
from nuntia.context.github import GitHubClient, SourceProviderProtocol
from nuntia.logging_config import get_logger, setup_logging
from nuntia.schemas import ReleaseContext

logger = get_logger(__name__)

ProviderFactory = Callable[[str, str], SourceProviderProtocol]


# ---------------------------------------------------------------------------
# Application Lifespan (startup/shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging and the provider factory once at startup.

    Tests replace app.state.provider_factory with one returning mocks.
    """
    setup_logging()
    if not hasattr(app.state, "provider_factory"):
        app.state.provider_factory = GitHubClient
    yield


# ---------------------------------------------------------------------------
# FastAPI App
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Nuntia",
    description="Release context builder for release notes generation",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class TimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        start = time.time()
        response = await call_next(request)
        duration = time.time() - start
        response.headers["X-Process-Time"] = f"{duration:.2f}s"
        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_s=round(duration, 3),
        )
        return response


app.add_middleware(TimingMiddleware)


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


@app.exception_handler(httpx.HTTPStatusError)
async def upstream_error_handler(request: Request, exc: httpx.HTTPStatusError) -> JSONResponse:
    """Range resolution failed upstream (unknown ref, bad token, rate limit)."""
    return JSONResponse(
        status_code=502,
        content={
            "error": "upstream_error",
            "detail": f"GitHub returned {exc.response.status_code} for {exc.request.url.path}",
        },
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"error": "validation_error", "detail": str(exc)},
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint for load balancers and monitoring."""
    return {"status": "healthy"}


@app.post(
    "/context",
    response_model=ReleaseContext,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def build_context(config: RangeConfig, request: Request) -> ReleaseContext:
    """Build the release context for a commit range.

    Per-reference failures are dropped from the context; failing to resolve
    the range itself yields a 502.
    """
    factory: ProviderFactory = request.app.state.provider_factory
    provider = factory(config.owner, config.repo)
    return await ContextBuilder(provider).build(config)
