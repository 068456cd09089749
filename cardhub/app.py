import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates
from starlette.middleware.base import BaseHTTPMiddleware

from cardhub.core.config import Settings, get_settings
from cardhub.core.errors import CardHubError, InternalError, InvalidArgumentError, error_envelope
from cardhub.core.logging import configure_logging
from cardhub.core.rate_limiter import RateLimiter
from cardhub.repositories import DocumentStore, SQLDocumentStore, build_store
from cardhub.routers import admin as admin_router
from cardhub.routers import callables as callables_router
from cardhub.routers import hooks as hooks_router
from cardhub.routers import pages as pages_router
from cardhub.routers import public as public_router
from cardhub.services.account_service import AccountService
from cardhub.services.card_service import CardService
from cardhub.services.quota_service import QuotaService
from cardhub.services.slug_service import SlugService
from cardhub.services.stats_service import StatsService

logger = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "templates")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (anti clickjacking, sniffing, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


@dataclass
class Services:
    """Everything the routers need, built around one DocumentStore."""

    settings: Settings
    store: DocumentStore
    slugs: SlugService
    quotas: QuotaService
    stats: StatsService
    accounts: AccountService
    cards: CardService
    rate_limiter: RateLimiter


def build_services(store: DocumentStore, settings: Settings) -> Services:
    slugs = SlugService(store)
    quotas = QuotaService(store, settings)
    stats = StatsService(store)
    accounts = AccountService(store, settings)
    cards = CardService(store, slugs=slugs, quotas=quotas, stats=stats, accounts=accounts)
    return Services(
        settings=settings,
        store=store,
        slugs=slugs,
        quotas=quotas,
        stats=stats,
        accounts=accounts,
        cards=cards,
        rate_limiter=RateLimiter(),
    )


async def _cardhub_error_handler(request: Request, exc: CardHubError):
    if isinstance(exc, InternalError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_envelope(exc))


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
    error = InvalidArgumentError("Invalid request body", {"fields": fields})
    return JSONResponse(status_code=error.status_code, content=error_envelope(error))


def _allowed_origins(settings: Settings) -> list[str]:
    allowed = {settings.public_base_url}
    if settings.app_env != "prod":
        allowed.update(
            {
                "http://localhost:3000",
                "http://127.0.0.1:3000",
                "http://localhost:5173",
                "http://127.0.0.1:5173",
            }
        )
    return sorted(origin for origin in allowed if origin)


def create_app(store: DocumentStore | None = None, settings: Settings | None = None) -> FastAPI:
    """Factory compatible with uvicorn/gunicorn (`uvicorn cardhub.app:create_app --factory`)."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    store = store or build_store(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        if isinstance(store, SQLDocumentStore):
            store.create_schema()
        logger.info("cardhub started (env=%s, store=%s)", settings.app_env, type(store).__name__)
        yield

    app = FastAPI(title="cardhub API", lifespan=lifespan)
    app.state.services = build_services(store, settings)
    app.state.templates = Jinja2Templates(directory=TEMPLATES_DIR)

    origins = _allowed_origins(settings)
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")
    app.add_exception_handler(CardHubError, _cardhub_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    app.include_router(public_router.router)
    app.include_router(callables_router.router)
    app.include_router(hooks_router.router)
    app.include_router(admin_router.router)
    # catch-all /{slug} goes last
    app.include_router(pages_router.router)
    return app
