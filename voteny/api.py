"""FastAPI application and route handlers."""

import sys
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Path, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from loguru import logger
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from . import __version__
from .aggregates import VoteAggregates
from .config import settings
from .exceptions import StorageError, ValidationError, VoteError
from .hooks import VoteHooks
from .host import PageTitle, RenderContext, SiteUser
from .middleware import add_request_id, create_token, get_current_user, get_optional_user
from .models import (
    LoginRequest,
    MagicWordResponse,
    PageVotesResponse,
    TotalVotesResponse,
    VoteRequest,
    VoteResponse,
)
from .storage import VoteRepository, cache_key, create_cache, create_repository
from .types import HealthStatus

PageId = Annotated[int, Path(ge=0, description="Page identifier")]


def configure_logging() -> None:
    """Configure logging - should be called at startup, not import time."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=settings.log_level,
        serialize=False,
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            level=settings.log_level,
        )


def get_limiter() -> Limiter:
    """Get or create rate limiter."""
    return Limiter(
        key_func=get_remote_address,
        storage_uri=settings.redis_url or "memory://",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    configure_logging()

    repository = create_repository()
    cache = create_cache()

    await repository.startup()
    await cache.startup()

    aggregates = VoteAggregates(repository, cache, key_prefix=settings.cache_key_prefix)
    app.state.repository = repository
    app.state.cache = cache
    app.state.aggregates = aggregates
    app.state.hooks = VoteHooks(aggregates, repository)

    logger.info("Application started successfully")

    yield

    await repository.shutdown()
    await cache.shutdown()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="VoteNY",
    version=__version__,
    description="Page voting widget and vote aggregates for wikis",
    lifespan=lifespan,
)

app.middleware("http")(add_request_id)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

limiter = get_limiter()
app.state.limiter = limiter  # Required by slowapi
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle validation errors with clean messages."""
    error_messages = []

    for error in exc.errors():  # type: ignore[attr-defined]
        field = error["loc"][-1] if error["loc"] else "field"
        message = error.get("msg", f"Invalid {field}")

        match error["type"]:
            case "missing":
                message = f"Required field '{field}' is missing"
            case "json_invalid":
                message = "Invalid JSON format"

        error_messages.append(message)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation failed",
            "message": "; ".join(error_messages),
            "details": error_messages,
        },
    )


app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]


@app.exception_handler(VoteError)
async def vote_error_handler(request: Request, exc: VoteError) -> JSONResponse:
    """Handle domain-specific errors."""
    logger.error(f"VoteNY error: {exc}")

    if isinstance(exc, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, StorageError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "type": exc.__class__.__name__},
    )


def get_repository(request: Request) -> VoteRepository:
    repository = getattr(request.app.state, "repository", None)
    if repository is None:
        raise RuntimeError("Service not initialized")
    return repository


def get_aggregates(request: Request) -> VoteAggregates:
    aggregates = getattr(request.app.state, "aggregates", None)
    if aggregates is None:
        raise RuntimeError("Service not initialized")
    return aggregates


def get_hooks(request: Request) -> VoteHooks:
    hooks = getattr(request.app.state, "hooks", None)
    if hooks is None:
        raise RuntimeError("Service not initialized")
    return hooks


@app.get("/votes/count", tags=["aggregates"])
async def total_votes_endpoint(
    aggregates: Annotated[VoteAggregates, Depends(get_aggregates)],
) -> TotalVotesResponse:
    """Number of votes on the whole site ({{NUMBEROFVOTES}})."""
    return TotalVotesResponse(count=await aggregates.number_of_votes())


@app.get("/pages/{page_id}/votes", tags=["aggregates"])
async def page_votes_endpoint(
    page_id: PageId,
    aggregates: Annotated[VoteAggregates, Depends(get_aggregates)],
) -> PageVotesResponse:
    """Vote count and average score of a page."""
    return PageVotesResponse(
        page_id=page_id,
        count=await aggregates.number_of_votes_page(page_id),
        score=await aggregates.score_page(page_id),
    )


@app.get("/pages/{page_id}/widget", tags=["widgets"], response_class=HTMLResponse)
async def widget_endpoint(
    page_id: PageId,
    hooks: Annotated[VoteHooks, Depends(get_hooks)],
    user: Annotated[SiteUser, Depends(get_optional_user)],
    widget: int = Query(0, alias="type", description="0 for the vote box, 1 for stars"),
) -> HTMLResponse:
    """Render the <vote> widget of a page."""
    context = RenderContext(title=PageTitle(article_id=page_id), user=user)
    html = await hooks.render_vote("", {"type": str(widget)}, context)

    headers = {"X-VoteNY-Modules": ",".join(context.output.module_styles + context.output.modules)}
    if not context.cacheable:
        headers["Cache-Control"] = "no-cache"
    return HTMLResponse(html or "", headers=headers)


@app.get("/magic-words/{magic_word_id}", tags=["aggregates"])
async def magic_word_endpoint(
    magic_word_id: str,
    hooks: Annotated[VoteHooks, Depends(get_hooks)],
    page_id: int | None = Query(None, ge=0),
) -> MagicWordResponse:
    """Value a magic word expands to, optionally on a given page."""
    title = PageTitle(article_id=page_id) if page_id is not None else None
    value = await hooks.assign_value_to_magic_word(RenderContext(title=title), magic_word_id)
    if value is None:
        raise HTTPException(status_code=404, detail=f"Unknown magic word: {magic_word_id}")
    return MagicWordResponse(magic_word=magic_word_id, page_id=page_id, value=value)


@app.post("/pages/{page_id}/votes", tags=["votes"])
@limiter.limit(settings.rate_limit)
async def cast_vote_endpoint(
    request: Request,
    page_id: PageId,
    vote: VoteRequest,
    repository: Annotated[VoteRepository, Depends(get_repository)],
    user: Annotated[SiteUser, Depends(get_current_user)],
) -> VoteResponse:
    """Cast or replace the caller's vote on a page."""
    if not settings.vote_min <= vote.value <= settings.vote_max:
        raise ValidationError(
            f"Vote value must be between {settings.vote_min} and {settings.vote_max}"
        )

    ip = request.client.host if request.client else None
    record = await repository.save_vote(page_id, user.id, user.name, vote.value, ip=ip)
    return VoteResponse(**record)


@app.delete("/pages/{page_id}/votes", tags=["votes"])
async def delete_vote_endpoint(
    page_id: PageId,
    repository: Annotated[VoteRepository, Depends(get_repository)],
    user: Annotated[SiteUser, Depends(get_current_user)],
) -> dict[str, int | bool]:
    """Withdraw the caller's vote on a page."""
    if not await repository.delete_vote(page_id, user.id):
        raise HTTPException(status_code=404, detail="No vote to remove")
    return {"page_id": page_id, "deleted": True}


@app.get("/health", tags=["health"])
async def health_endpoint(request: Request, response: Response) -> dict:
    """Check health status of storage and cache."""
    health: HealthStatus = {
        "storage": await _check_storage_health(request),
        "cache": await _check_cache_health(request),
    }
    all_healthy = all(health.values())

    if not all_healthy:
        response.status_code = 503

    return {"status": "healthy" if all_healthy else "unhealthy", "services": health}


@app.get("/", tags=["health"])
async def root_endpoint() -> dict[str, str]:
    """API information endpoint."""
    return {
        "name": "VoteNY",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
    }


@app.post("/login", tags=["auth"])
async def login_endpoint(login: LoginRequest) -> dict[str, str]:
    """Demo login endpoint for testing JWT.

    Returns:
        Dictionary with access_token and token_type.
    """
    token = create_token(login.user_id, login.username)
    return {"access_token": token, "token_type": "bearer"}


async def _check_storage_health(request: Request) -> bool:
    try:
        return await get_repository(request).health_check()
    except Exception as e:  # noqa: BLE001
        logger.error(f"Storage health check failed: {e}")
        return False


async def _check_cache_health(request: Request) -> bool:
    key = cache_key("health-check", prefix=settings.cache_key_prefix)
    try:
        await request.app.state.cache.set(key, True, 1)
    except Exception as e:  # noqa: BLE001
        logger.warning(f"Cache health check failed: {e}")
        return False
    else:
        return True


app.openapi_tags = [
    {"name": "aggregates", "description": "Vote counts and scores"},
    {"name": "widgets", "description": "Voting widget HTML"},
    {"name": "votes", "description": "Casting and withdrawing votes"},
    {"name": "health", "description": "Health checks"},
    {"name": "auth", "description": "Authentication"},
]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    return app
