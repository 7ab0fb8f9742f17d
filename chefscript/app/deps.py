# chefscript/app/deps.py
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from supabase import Client, create_client

from chefscript.app.config import settings
from chefscript.app.infra.db.supabase_repos import (
    SupabaseStyleRepository,
    SupabaseTemplateRepository,
    SupabaseTokenRepository,
)
from chefscript.app.services.recipe_pipeline import RecipePipeline
from chefscript.app.services.style_service import StyleService
from chefscript.app.services.template_service import TemplateService
from chefscript.app.services.token_ledger import TokenLedger
from chefscript.app.services.token_purchase import TokenPurchaseService
from chefscript.services.feedspy import FeedSpyExtractor
from chefscript.services.flux import FluxClient
from chefscript.services.history import RecipeHistory
from chefscript.services.openai_client import OpenAIClient
from chefscript.services.paypal import PayPalClient
from chefscript.services.plagiarism import PlagiarismChecker
from chefscript.services.recipe_generator import RecipeGenerator
from chefscript.services.recraft import RecraftClient
from chefscript.services.rewriter import ContentRewriter
from chefscript.services.scheduler import RateLimitedScheduler
from chefscript.services.template_renderer import TemplateRenderer

_client: Client | None = None


def get_supabase() -> Client:
    global _client
    if _client is None:
        if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Supabase is not configured",
            )
        _client = create_client(str(settings.SUPABASE_URL), settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


auth_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None


async def get_current_user(
    cred: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
    supa: Client = Depends(get_supabase),
) -> CurrentUser:
    """
    Resolve `Authorization: Bearer <access_token>` through Supabase Auth.
    """
    if cred is None or cred.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")

    token = cred.credentials
    try:
        res = supa.auth.get_user(token)
        user = res.user if res else None
        if not user:
            raise HTTPException(status_code=401, detail="Invalid token")

        name = None
        meta = getattr(user, "user_metadata", None) or {}
        if isinstance(meta, dict):
            name = meta.get("name")

        return CurrentUser(id=str(user.id), email=user.email, name=name)
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid/expired token")


# -- process-wide objects ------------------------------------------------------

def build_image_scheduler() -> RateLimitedScheduler:
    return RateLimitedScheduler(
        capacity=settings.RECRAFT_RATE_LIMIT_PER_MINUTE,
        window_seconds=60.0,
        spacing_seconds=settings.RECRAFT_OPERATION_SPACING_SECONDS,
    )


def get_image_scheduler(request: Request) -> RateLimitedScheduler:
    scheduler = getattr(request.app.state, "image_scheduler", None)
    if scheduler is None:
        scheduler = build_image_scheduler()
        request.app.state.image_scheduler = scheduler
    return scheduler


@lru_cache
def get_history() -> RecipeHistory:
    return RecipeHistory(settings.RECIPE_HISTORY_PATH)


# -- provider clients ----------------------------------------------------------

def get_openai_client() -> OpenAIClient:
    return OpenAIClient(
        api_key=settings.OPENAI_API_KEY,
        model_name=settings.OPENAI_MODEL,
        api_url=settings.OPENAI_API_URL,
    )


def get_recipe_generator(client: OpenAIClient = Depends(get_openai_client)) -> RecipeGenerator:
    return RecipeGenerator(client)


def get_rewriter(client: OpenAIClient = Depends(get_openai_client)) -> ContentRewriter:
    return ContentRewriter(client)


def get_flux_client() -> FluxClient:
    return FluxClient(
        api_key=settings.FLUX_API_KEY,
        api_url=settings.FLUX_API_URL,
        poll_interval=settings.FLUX_POLL_INTERVAL_SECONDS,
        max_attempts=settings.FLUX_MAX_POLL_ATTEMPTS,
    )


def get_recraft_client(scheduler: RateLimitedScheduler = Depends(get_image_scheduler)) -> RecraftClient:
    return RecraftClient(
        api_key=settings.RECRAFT_API_KEY,
        scheduler=scheduler,
        api_url=settings.RECRAFT_API_URL,
    )


def get_template_renderer() -> TemplateRenderer:
    return TemplateRenderer(
        proxy_url=settings.CORS_IMAGE_PROXY_URL,
        restricted_hosts=settings.CORS_RESTRICTED_HOSTS,
    )


def get_paypal_client() -> PayPalClient:
    return PayPalClient(
        client_id=settings.PAYPAL_CLIENT_ID,
        client_secret=settings.PAYPAL_CLIENT_SECRET,
        api_url=settings.PAYPAL_API_URL,
    )


# -- services ------------------------------------------------------------------

def get_token_ledger(supa: Client = Depends(get_supabase)) -> TokenLedger:
    return TokenLedger(SupabaseTokenRepository(supa))


def get_template_service(supa: Client = Depends(get_supabase)) -> TemplateService:
    return TemplateService(SupabaseTemplateRepository(supa))


def get_style_service(
    supa: Client = Depends(get_supabase),
    recraft: RecraftClient = Depends(get_recraft_client),
    ledger: TokenLedger = Depends(get_token_ledger),
) -> StyleService:
    return StyleService(SupabaseStyleRepository(supa), recraft, ledger)


def get_plagiarism_checker(ledger: TokenLedger = Depends(get_token_ledger)) -> PlagiarismChecker:
    return PlagiarismChecker(
        proxy_url=f"{settings.API_BASE_URL.rstrip('/')}/plagiarism",
        ledger=ledger,
        timeout=settings.PLAGIARISM_TIMEOUT_SECONDS,
    )


def get_recipe_pipeline(
    generator: RecipeGenerator = Depends(get_recipe_generator),
    flux: FluxClient = Depends(get_flux_client),
    recraft: RecraftClient = Depends(get_recraft_client),
    ledger: TokenLedger = Depends(get_token_ledger),
    history: RecipeHistory = Depends(get_history),
    templates: TemplateService = Depends(get_template_service),
) -> RecipePipeline:
    return RecipePipeline(generator, flux, recraft, ledger, history, templates)


def get_feedspy_extractor(
    generator: RecipeGenerator = Depends(get_recipe_generator),
    ledger: TokenLedger = Depends(get_token_ledger),
) -> FeedSpyExtractor:
    return FeedSpyExtractor(generator, ledger)


def get_token_purchase_service(
    paypal: PayPalClient = Depends(get_paypal_client),
    ledger: TokenLedger = Depends(get_token_ledger),
) -> TokenPurchaseService:
    return TokenPurchaseService(paypal, ledger)
