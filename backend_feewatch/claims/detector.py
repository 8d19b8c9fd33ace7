"""
Claim detection pipeline: list -> resolve -> classify -> aggregate.

Single task, strictly sequential per item, bounded by max_candidates and a
wall-clock budget. A listing failure ends the run with an error result; item
failures are counted and skipped. The result is always structurally complete.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Callable

import httpx

from backend_feewatch.claims.aggregator import aggregate
from backend_feewatch.claims.classifier import classify
from backend_feewatch.claims.models import DedupKey, EvidenceItem, Profile
from backend_feewatch.config.settings import Settings, get_settings
from backend_feewatch.core.exceptions import (
    DeadlineExceeded,
    ItemUnavailable,
    UpstreamUnavailable,
    ValidationError,
    require_address,
)
from backend_feewatch.feewatch_logging import bind_wallet
from backend_feewatch.ledger.lister import MAX_LISTING_LIMIT, SignatureLister
from backend_feewatch.ledger.models import CandidateRef
from backend_feewatch.ledger.rate_limit import BackoffPolicy, RateLimiter, Sleep
from backend_feewatch.ledger.resolver import DetailResolver

METHOD_NAME = "balance_changes_check"


@dataclass(frozen=True)
class ClaimScanOptions:
    listing_limit: int = 100
    max_candidates: int = 50
    max_elapsed_sec: float = 25.0

    def validate(self) -> None:
        if not (1 <= self.listing_limit <= MAX_LISTING_LIMIT):
            raise ValidationError(f"listing_limit must be between 1 and {MAX_LISTING_LIMIT}")
        if self.max_candidates < 1:
            raise ValidationError("max_candidates must be >= 1")
        if self.max_elapsed_sec <= 0:
            raise ValidationError("max_elapsed_sec must be positive")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ClaimScanOptions":
        return cls(
            listing_limit=settings.claim_listing_limit,
            max_candidates=settings.claim_max_candidates,
            max_elapsed_sec=settings.claim_max_elapsed_sec,
        )


@dataclass(frozen=True)
class ClaimScanResult:
    wallet: str
    program: str
    profile: Profile = field(default_factory=Profile)
    transaction_count: int = 0
    """Accepted claim transactions, deduplicated by signature only."""
    candidates_listed: int = 0
    candidates_examined: int = 0
    errors: int = 0
    """Items skipped because they could not be resolved."""
    deadline_reached: bool = False
    error: str | None = None

    @property
    def has_claims(self) -> bool:
        return self.profile.total_count > 0

    @property
    def status(self) -> str:
        if self.error:
            return "Error occurred"
        if self.candidates_listed == 0:
            return "No transactions found for wallet"
        n = self.profile.total_count
        if n == 0:
            return "No Fee Claims Found"
        return f"{n} Fee Claim{'s' if n > 1 else ''} Found!"

    @property
    def primary_claim(self) -> EvidenceItem | None:
        """Claim with the largest amount; first in scan order on ties."""
        items = self.profile.items
        if not items:
            return None
        return max(items, key=lambda i: i.claimed_amount or 0)

    def to_dict(self) -> dict[str, Any]:
        primary = self.primary_claim
        return {
            "wallet": self.wallet,
            "fee_program": self.program,
            "has_interacted": self.has_claims,
            "status": self.status,
            "method": METHOD_NAME,
            "checked_transactions": self.candidates_examined,
            "candidates_listed": self.candidates_listed,
            "errors": self.errors,
            "deadline_reached": self.deadline_reached,
            "transaction_count": self.transaction_count,
            "found_in_tx": primary.source_id if primary else None,
            "token_address": primary.subject_token if primary else None,
            "profile": self.profile.to_dict(),
            "error": self.error,
        }


async def detect_claims(
    subject: str,
    program_of_interest: str | None = None,
    options: ClaimScanOptions | None = None,
    *,
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
    rate_limiter: RateLimiter | None = None,
    backoff: BackoffPolicy | None = None,
    sleep: Sleep = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> ClaimScanResult:
    """
    Scan subject's recent transactions for fee claims against program_of_interest.

    Raises ValidationError for bad input. Never raises for upstream trouble:
    listing failures come back in result.error, item failures in result.errors.
    """
    subject = require_address(subject, "wallet")
    settings = settings or get_settings()
    program = (program_of_interest or settings.fee_program_id).strip()
    options = options or ClaimScanOptions.from_settings(settings)
    options.validate()

    if client is None:
        async with httpx.AsyncClient(timeout=httpx.Timeout(settings.request_timeout_sec)) as owned:
            return await _run(subject, program, options, settings, owned, rate_limiter, backoff, sleep, clock)
    return await _run(subject, program, options, settings, client, rate_limiter, backoff, sleep, clock)


async def _run(
    subject: str,
    program: str,
    options: ClaimScanOptions,
    settings: Settings,
    client: httpx.AsyncClient,
    rate_limiter: RateLimiter | None,
    backoff: BackoffPolicy | None,
    sleep: Sleep,
    clock: Callable[[], float],
) -> ClaimScanResult:
    log = bind_wallet(subject)
    started = clock()
    log.info("claim_scan_started", program=program, listing_limit=options.listing_limit)

    lister = SignatureLister(client, settings.solana_rpc_url)
    try:
        refs = await lister.list(subject, options.listing_limit)
    except UpstreamUnavailable as e:
        log.error("claim_scan_listing_failed", error=str(e))
        return ClaimScanResult(wallet=subject, program=program, error=f"Check failed: {e}")

    if rate_limiter is None:
        rate_limiter = RateLimiter(
            settings.rpc_rate_per_sec,
            pause_every=settings.rpc_pause_every,
            pause_sec=settings.rpc_pause_sec,
            sleep=sleep,
        )
    if backoff is None:
        backoff = BackoffPolicy(
            max_attempts=settings.rpc_max_attempts,
            initial_delay_sec=settings.rpc_backoff_initial_sec,
            max_delay_sec=settings.rpc_backoff_max_sec,
        )
    resolver = DetailResolver(
        client, settings.solana_rpc_url, rate_limiter, backoff=backoff, sleep=sleep, clock=clock
    )

    evidence, examined, errors, deadline_reached = await _scan(
        resolver, refs[: options.max_candidates], subject, program, started + options.max_elapsed_sec, clock, log
    )

    as_of = int(time.time())
    profile = aggregate(evidence, DedupKey.TOKEN, as_of=as_of)
    tx_profile = aggregate(evidence, DedupKey.TRANSACTION, as_of=as_of)

    result = ClaimScanResult(
        wallet=subject,
        program=program,
        profile=profile,
        transaction_count=tx_profile.total_count,
        candidates_listed=len(refs),
        candidates_examined=examined,
        errors=errors,
        deadline_reached=deadline_reached,
    )
    log.info(
        "claim_scan_finished",
        total_claims=profile.total_count,
        claim_transactions=tx_profile.total_count,
        checked=examined,
        errors=errors,
        deadline_reached=deadline_reached,
        elapsed_sec=round(clock() - started, 3),
    )
    return result


async def _scan(
    resolver: DetailResolver,
    refs: list[CandidateRef],
    subject: str,
    program: str,
    deadline: float,
    clock: Callable[[], float],
    log: Any,
) -> tuple[list[EvidenceItem], int, int, bool]:
    """Resolve and classify refs in order until done or past the deadline."""
    evidence: list[EvidenceItem] = []
    examined = 0
    errors = 0
    for ref in refs:
        if clock() >= deadline:
            log.warning("claim_scan_deadline_reached", checked=examined, remaining=len(refs) - examined)
            return evidence, examined, errors, True
        examined += 1
        try:
            record = await resolver.resolve(ref, deadline)
        except DeadlineExceeded:
            log.warning("claim_scan_deadline_reached", checked=examined, remaining=len(refs) - examined)
            return evidence, examined, errors, True
        except ItemUnavailable:
            errors += 1
            continue
        item = classify(record, subject, program)
        if item is not None:
            evidence.append(item)
    return evidence, examined, errors, False
