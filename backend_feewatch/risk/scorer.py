"""
Token legitimacy scoring: registry -> launch history -> heuristic + rule flags.

Final score = clamp(heuristic base + sum of rule deltas, 0, 100). The
recommendation is always derived from that final score via RECOMMENDATION_BANDS;
the heuristic's own recommendation is informational only.
"""

from __future__ import annotations

import asyncio
import dataclasses
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

import httpx

from backend_feewatch.config.settings import Settings, get_settings
from backend_feewatch.core.exceptions import (
    TokenNotFound,
    UpstreamUnavailable,
    ValidationError,
    require_address,
)
from backend_feewatch.feewatch_logging import get_logger
from backend_feewatch.ledger.rate_limit import RateLimiter
from backend_feewatch.risk.flags import (
    SERIAL_LAUNCH_THRESHOLD,
    evaluate_flags,
    total_royalty_bps,
    unverified_royalty_pct,
)
from backend_feewatch.risk.heuristic import HeuristicScorer
from backend_feewatch.risk.models import (
    CreatorRecord,
    HeuristicResult,
    Recommendation,
    RiskAssessment,
)
from backend_feewatch.risk.registry import CreatorRegistry

logger = get_logger(__name__)

MIN_SCORE = 0
MAX_SCORE = 100

# (minimum final score, recommendation), checked top-down
RECOMMENDATION_BANDS: tuple[tuple[int, Recommendation], ...] = (
    (75, Recommendation.AVOID),
    (50, Recommendation.CAUTION),
    (25, Recommendation.MODERATE),
    (MIN_SCORE, Recommendation.LOW_RISK),
)


def recommendation_for(score: int) -> Recommendation:
    for floor, rec in RECOMMENDATION_BANDS:
        if score >= floor:
            return rec
    return Recommendation.LOW_RISK


def score(
    token: str,
    creators: Sequence[CreatorRecord],
    heuristic: HeuristicResult,
) -> RiskAssessment:
    """Combine the heuristic base score with rule-flag deltas into a bounded assessment."""
    flags = evaluate_flags(creators)
    raw = heuristic.base_score + sum(f.delta for f in flags)
    final = max(MIN_SCORE, min(MAX_SCORE, raw))
    assessment = RiskAssessment(
        score=final,
        red_flags=tuple(heuristic.red_flags) + tuple(f.message for f in flags),
        recommendation=recommendation_for(final),
        base_score=heuristic.base_score,
        analysis=heuristic.analysis,
        rule_flags=tuple(flags),
        heuristic_fallback=heuristic.fallback,
    )
    logger.info(
        "risk_scored",
        token=token,
        base_score=heuristic.base_score,
        final_score=final,
        flags=[f.code for f in flags],
        recommendation=assessment.recommendation.value,
    )
    return assessment


def creator_metadata(creators: Sequence[CreatorRecord]) -> dict[str, Any]:
    total = len(creators)
    royalty_total = total_royalty_bps(creators)
    return {
        "total_creators": total,
        "verified_creators": sum(1 for c in creators if c.is_verified_creator),
        "average_royalty_bps": round(royalty_total / total, 2) if total else 0.0,
        "total_royalty_bps": royalty_total,
        "unverified_royalty_pct": round(unverified_royalty_pct(creators), 1),
        "serial_launchers_detected": sum(
            1 for c in creators if c.historical_launch_count > SERIAL_LAUNCH_THRESHOLD
        ),
        "highest_launch_count": max((c.historical_launch_count for c in creators), default=0),
    }


@dataclass(frozen=True)
class RiskOptions:
    max_elapsed_sec: float = 25.0

    def validate(self) -> None:
        if self.max_elapsed_sec <= 0:
            raise ValidationError("max_elapsed_sec must be positive")


@dataclass(frozen=True)
class RiskReport:
    token: str
    assessment: RiskAssessment | None = None
    creators: tuple[CreatorRecord, ...] = ()
    creators_examined: int = 0
    """Creators whose launch history was looked up before the deadline."""
    history_errors: int = 0
    deadline_reached: bool = False
    error: str | None = None
    not_found: bool = False
    metadata: dict[str, Any] = field(default_factory=lambda: creator_metadata(()))

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        a = self.assessment
        return {
            "success": self.ok,
            "contract_address": self.token,
            "risk_score": a.score if a else None,
            "base_score": a.base_score if a else None,
            "analysis": a.analysis if a else None,
            "red_flags": list(a.red_flags) if a else [],
            "recommendation": a.recommendation.value if a else None,
            "heuristic_fallback": a.heuristic_fallback if a else None,
            "creators": [c.to_dict() for c in self.creators],
            "metadata": dict(self.metadata),
            "creators_examined": self.creators_examined,
            "history_errors": self.history_errors,
            "deadline_reached": self.deadline_reached,
            "error": self.error,
        }


async def assess_risk(
    token_id: str,
    options: RiskOptions | None = None,
    *,
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
    heuristic: HeuristicScorer | None = None,
    rate_limiter: RateLimiter | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Any] = asyncio.sleep,
) -> RiskReport:
    """
    Score token_id's creator/royalty setup.

    Raises ValidationError for bad input; registry failures come back in
    report.error (not_found=True when the token is unknown).
    """
    token = require_address(token_id, "contract")
    settings = settings or get_settings()
    options = options or RiskOptions(max_elapsed_sec=settings.claim_max_elapsed_sec)
    options.validate()
    heuristic = heuristic or HeuristicScorer(settings.anthropic_api_key, settings.anthropic_model)
    rate_limiter = rate_limiter or RateLimiter(settings.registry_rate_per_sec, sleep=sleep)

    if client is None:
        async with httpx.AsyncClient(timeout=httpx.Timeout(settings.request_timeout_sec)) as owned:
            return await _run(token, options, settings, owned, heuristic, rate_limiter, clock)
    return await _run(token, options, settings, client, heuristic, rate_limiter, clock)


async def _run(
    token: str,
    options: RiskOptions,
    settings: Settings,
    client: httpx.AsyncClient,
    heuristic: HeuristicScorer,
    rate_limiter: RateLimiter,
    clock: Callable[[], float],
) -> RiskReport:
    started = clock()
    deadline = started + options.max_elapsed_sec
    logger.info("risk_check_started", token=token)

    registry = CreatorRegistry(client, settings.bags_api_base_url, settings.bags_api_key)
    try:
        creators = await registry.get_creators(token)
    except TokenNotFound as e:
        logger.info("risk_token_not_found", token=token)
        return RiskReport(token=token, error=str(e), not_found=True)
    except UpstreamUnavailable as e:
        logger.error("risk_registry_failed", token=token, error=str(e))
        return RiskReport(token=token, error=f"Analysis failed: {e}")

    enriched: list[CreatorRecord] = []
    examined = 0
    history_errors = 0
    deadline_reached = False
    for creator in creators:
        now = clock()
        if deadline_reached or now >= deadline:
            deadline_reached = True
            enriched.append(creator)
            continue
        examined += 1
        await rate_limiter.acquire()
        try:
            count = await asyncio.wait_for(registry.get_launch_count(creator.wallet), timeout=deadline - now)
        except asyncio.TimeoutError:
            deadline_reached = True
            enriched.append(creator)
            continue
        except UpstreamUnavailable as e:
            history_errors += 1
            logger.warning("risk_history_failed", wallet_id=creator.wallet, error=str(e))
            count = 0
        enriched.append(dataclasses.replace(creator, historical_launch_count=count))
    if deadline_reached:
        logger.warning("risk_deadline_reached", token=token, examined=examined, total=len(creators))

    result = await heuristic.evaluate(token, enriched)
    assessment = score(token, enriched, result)
    return RiskReport(
        token=token,
        assessment=assessment,
        creators=tuple(enriched),
        creators_examined=examined,
        history_errors=history_errors,
        deadline_reached=deadline_reached,
        metadata=creator_metadata(enriched),
    )
