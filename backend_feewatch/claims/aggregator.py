"""
Evidence aggregation: fold accepted claims into a Profile.

Pure: the same input sequence always yields an equal Profile. Dedup keeps the
first occurrence per key in scan order (newest-first, as listed).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from backend_feewatch.claims.models import ClaimFrequency, DedupKey, EvidenceItem, Profile

SECONDS_PER_DAY = 86_400

# (minimum claims/day, tier), checked top-down; rate must be strictly above
FREQUENCY_TIERS: tuple[tuple[float, ClaimFrequency], ...] = (
    (0.5, ClaimFrequency.VERY_ACTIVE),
    (0.1, ClaimFrequency.ACTIVE),
    (1 / 30, ClaimFrequency.OCCASIONAL),
)


def dedupe(items: Iterable[EvidenceItem], key: DedupKey = DedupKey.TOKEN) -> tuple[EvidenceItem, ...]:
    seen: set[str] = set()
    kept: list[EvidenceItem] = []
    for item in items:
        k = item.dedup_key(key)
        if k in seen:
            continue
        seen.add(k)
        kept.append(item)
    return tuple(kept)


def claim_frequency(count: int, first_ts: int | None, as_of: int | None) -> tuple[ClaimFrequency, float]:
    """
    Bin claims per day into a tier.

    The window is at least one day so a burst of same-day claims is rated by
    its count rather than divided by zero.
    """
    if count <= 0:
        return ClaimFrequency.NONE, 0.0
    days = 1.0
    if first_ts is not None and as_of is not None:
        days = max(1.0, (as_of - first_ts) / SECONDS_PER_DAY)
    rate = count / days
    for threshold, tier in FREQUENCY_TIERS:
        if rate > threshold:
            return tier, round(rate, 4)
    return ClaimFrequency.RARE, round(rate, 4)


def aggregate(
    items: Iterable[EvidenceItem],
    key: DedupKey = DedupKey.TOKEN,
    *,
    as_of: int | None = None,
) -> Profile:
    """
    Build a Profile from evidence items.

    key selects the dedup rule (TOKEN: subject_token, falling back to
    source_id for items without a token; TRANSACTION: source_id).
    as_of is the reference time for frequency; defaults to the latest claim.
    """
    kept = dedupe(items, key)
    if not kept:
        return Profile()

    total_amount = sum((item.claimed_amount or Decimal(0) for item in kept), Decimal(0))
    timestamps = [item.timestamp for item in kept if item.timestamp is not None]
    first_ts = min(timestamps) if timestamps else None
    last_ts = max(timestamps) if timestamps else None
    frequency, rate = claim_frequency(len(kept), first_ts, as_of if as_of is not None else last_ts)

    return Profile(
        total_count=len(kept),
        total_amount=total_amount,
        first_timestamp=first_ts,
        last_timestamp=last_ts,
        items=kept,
        frequency=frequency,
        claims_per_day=rate,
    )
