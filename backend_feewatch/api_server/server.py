"""
FastAPI server: thin HTTP surface over the claim and risk pipelines.

GET /activity     fee-claim scan for a wallet
GET /larp-check   creator/royalty risk assessment for a token
GET /wallet       launchpad registry passthrough (fee-share wallet, creators, lifetime fees)
GET /health       liveness

No business logic here: validate query params, call the pipeline, map errors
to status codes. Error bodies are {"success": false, "error": "..."}.
"""

from __future__ import annotations

from typing import Any, AsyncIterator

import httpx
from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend_feewatch import __version__
from backend_feewatch.claims.detector import detect_claims
from backend_feewatch.config.settings import Settings, get_settings
from backend_feewatch.core.exceptions import (
    FeewatchError,
    TokenNotFound,
    UpstreamUnavailable,
    ValidationError,
)
from backend_feewatch.feewatch_logging import get_logger
from backend_feewatch.risk.heuristic import HeuristicScorer
from backend_feewatch.risk.registry import CreatorRegistry
from backend_feewatch.risk.scorer import assess_risk

logger = get_logger(__name__)

REGISTRY_ENDPOINTS = ("wallet", "creator", "lifetime-fees")


# -----------------------------------------------------------------------------
# Dependencies
# -----------------------------------------------------------------------------

def get_app_settings() -> Settings:
    return get_settings()


async def get_http_client(settings: Settings = Depends(get_app_settings)) -> AsyncIterator[httpx.AsyncClient]:
    """One AsyncClient per request, closed when the response is sent."""
    async with httpx.AsyncClient(timeout=httpx.Timeout(settings.request_timeout_sec)) as client:
        yield client


def get_heuristic_scorer(settings: Settings = Depends(get_app_settings)) -> HeuristicScorer:
    return HeuristicScorer(settings.anthropic_api_key, settings.anthropic_model)


# -----------------------------------------------------------------------------
# Response models
# -----------------------------------------------------------------------------

class ActivityResponse(BaseModel):
    """GET /activity response: claim scan summary plus the aggregated profile."""

    wallet: str
    fee_program: str
    has_interacted: bool
    status: str
    method: str
    checked_transactions: int = Field(..., ge=0)
    candidates_listed: int = Field(..., ge=0)
    errors: int = Field(..., ge=0, description="Transactions skipped because they could not be fetched")
    deadline_reached: bool
    transaction_count: int = Field(..., ge=0)
    found_in_tx: str | None = None
    token_address: str | None = None
    profile: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None


class LarpCheckResponse(BaseModel):
    """GET /larp-check response."""

    success: bool
    contract_address: str
    risk_score: int | None = Field(None, ge=0, le=100)
    base_score: int | None = None
    analysis: str | None = None
    red_flags: list[str] = Field(default_factory=list)
    recommendation: str | None = None
    heuristic_fallback: bool | None = None
    creators: list[dict[str, Any]] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    creators_examined: int = 0
    history_errors: int = 0
    deadline_reached: bool = False
    error: str | None = None


class HealthResponse(BaseModel):
    status: str
    version: str


# -----------------------------------------------------------------------------
# App and routes
# -----------------------------------------------------------------------------

app = FastAPI(
    title="Backend Feewatch API",
    description="Fee-claim detection and creator-royalty risk scoring for Solana launchpad tokens.",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.exception_handler(ValidationError)
def validation_error_handler(request: Any, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})


@app.exception_handler(UpstreamUnavailable)
def upstream_error_handler(request: Any, exc: UpstreamUnavailable) -> JSONResponse:
    if isinstance(exc, TokenNotFound):
        status = 404
    elif exc.status_code is not None and 400 <= exc.status_code < 500:
        # registry rejected the lookup itself (unknown handle, bad key)
        status = exc.status_code
    else:
        status = 502
    logger.warning("api_upstream_error", status_code=status, upstream_status=exc.status_code, error=str(exc))
    return JSONResponse(status_code=status, content={"success": False, "error": str(exc)})


@app.exception_handler(FeewatchError)
def feewatch_error_handler(request: Any, exc: FeewatchError) -> JSONResponse:
    logger.error("api_unhandled_feewatch_error", error_type=type(exc).__name__, error=str(exc))
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


@app.get("/activity", response_model=ActivityResponse)
async def activity(
    wallet: str | None = Query(None, description="Wallet address (base58)"),
    program: str | None = Query(None, description="Program of interest; defaults to the fee program"),
    settings: Settings = Depends(get_app_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> dict[str, Any]:
    """
    Scan the wallet's recent transactions for fee claims.

    Always 200 once the input is valid: upstream trouble is reported in the
    body's error field.
    """
    logger.info("api_activity_called", wallet_id=wallet or "")
    result = await detect_claims(wallet or "", program, settings=settings, client=client)
    return result.to_dict()


@app.get("/larp-check", response_model=LarpCheckResponse)
async def larp_check(
    contract: str | None = Query(None, description="Token mint address"),
    settings: Settings = Depends(get_app_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
    heuristic: HeuristicScorer = Depends(get_heuristic_scorer),
) -> Any:
    """Score a token's creator/royalty setup. 404 when the registry does not know the token."""
    logger.info("api_larp_check_called", token=contract or "")
    report = await assess_risk(contract or "", settings=settings, client=client, heuristic=heuristic)
    if report.not_found:
        return JSONResponse(status_code=404, content=report.to_dict())
    return report.to_dict()


@app.get("/wallet")
async def registry_lookup(
    twitterUsername: str | None = Query(None),
    endpoint: str = Query("wallet", description="One of: wallet, creator, lifetime-fees"),
    tokenMint: str | None = Query(None),
    settings: Settings = Depends(get_app_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> dict[str, Any]:
    """Pass a registry lookup through unchanged; registry 4xx statuses pass through, other failures are 502."""
    if not (twitterUsername or "").strip():
        raise ValidationError("twitterUsername parameter is required")
    if endpoint not in REGISTRY_ENDPOINTS:
        endpoint = "wallet"
    registry = CreatorRegistry(client, settings.bags_api_base_url, settings.bags_api_key)
    logger.info("api_registry_lookup", endpoint=endpoint)

    if endpoint == "creator":
        if not (tokenMint or "").strip():
            raise ValidationError("tokenMint required for creator endpoint")
        return await registry.get_creators_raw(tokenMint)
    if endpoint == "lifetime-fees":
        if not (tokenMint or "").strip():
            raise ValidationError("tokenMint required for lifetime-fees endpoint")
        return await registry.get_lifetime_fees(tokenMint)
    return await registry.get_fee_share_wallet(twitterUsername)
