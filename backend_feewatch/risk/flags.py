"""
Rule-based red flags for a token's creator/royalty configuration.

Each rule is a pure function of the creator list and returns a RedFlag with
a fixed score delta, or None. Rules are independent; evaluate_flags runs all
of them in RULES order.
"""

from __future__ import annotations

from typing import Callable, Sequence

from backend_feewatch.risk.models import MAX_ROYALTY_BPS, CreatorRecord, RedFlag

NON_CREATOR_HIGH_ROYALTY_BPS = 1000  # > 10%
VERIFIED_LOW_ROYALTY_BPS = 500  # < 5%
SERIAL_LAUNCH_THRESHOLD = 5
UNVERIFIED_SHARE_THRESHOLD_PCT = 70.0
MANY_CREATORS_THRESHOLD = 3

DELTA_NON_CREATOR_HIGH_ROYALTY = 30
DELTA_VERIFIED_LOW_ROYALTY = 10
DELTA_SERIAL_LAUNCHER = 20
DELTA_NO_VERIFIED_CREATORS = 25
DELTA_UNVERIFIED_ROYALTY_MAJORITY = 20
DELTA_MANY_CREATORS = 5
DELTA_ROYALTY_OVERALLOCATED = 15


def total_royalty_bps(creators: Sequence[CreatorRecord]) -> int:
    return sum(c.royalty_share_bps for c in creators)


def unverified_royalty_pct(creators: Sequence[CreatorRecord]) -> float:
    """Share (0..100) of all royalty bps going to unverified creators; 0 when nothing is allocated."""
    total = total_royalty_bps(creators)
    if total <= 0:
        return 0.0
    unverified = sum(c.royalty_share_bps for c in creators if not c.is_verified_creator)
    return unverified / total * 100


def check_non_creator_high_royalty(creators: Sequence[CreatorRecord]) -> RedFlag | None:
    hits = [c for c in creators if not c.is_verified_creator and c.royalty_share_bps > NON_CREATOR_HIGH_ROYALTY_BPS]
    if not hits:
        return None
    shares = ", ".join(f"{c.royalty_pct:.1f}%" for c in hits)
    return RedFlag(
        code="NON_CREATOR_HIGH_ROYALTY",
        delta=DELTA_NON_CREATOR_HIGH_ROYALTY,
        message=f"MAJOR RED FLAG: {len(hits)} non-creator(s) receiving high royalties ({shares})",
    )


def check_verified_low_royalty(creators: Sequence[CreatorRecord]) -> RedFlag | None:
    hits = [c for c in creators if c.is_verified_creator and c.royalty_share_bps < VERIFIED_LOW_ROYALTY_BPS]
    if not hits:
        return None
    return RedFlag(
        code="VERIFIED_CREATOR_LOW_ROYALTY",
        delta=DELTA_VERIFIED_LOW_ROYALTY,
        message="Verified creator(s) receiving suspiciously low royalties (< 5%) - possible LARP",
    )


def check_serial_launchers(creators: Sequence[CreatorRecord]) -> RedFlag | None:
    hits = [c for c in creators if c.historical_launch_count > SERIAL_LAUNCH_THRESHOLD]
    if not hits:
        return None
    details = ", ".join(f"{c.display_name} ({c.historical_launch_count} tokens)" for c in hits)
    return RedFlag(
        code="SERIAL_LAUNCHER",
        delta=DELTA_SERIAL_LAUNCHER,
        message=f"Serial token launcher(s) detected: {details}",
    )


def check_no_verified_creators(creators: Sequence[CreatorRecord]) -> RedFlag | None:
    if any(c.is_verified_creator for c in creators):
        return None
    return RedFlag(
        code="NO_VERIFIED_CREATORS",
        delta=DELTA_NO_VERIFIED_CREATORS,
        message="CRITICAL: No verified creators found - likely LARP token",
    )


def check_unverified_royalty_majority(creators: Sequence[CreatorRecord]) -> RedFlag | None:
    pct = unverified_royalty_pct(creators)
    if pct <= UNVERIFIED_SHARE_THRESHOLD_PCT:
        return None
    return RedFlag(
        code="UNVERIFIED_ROYALTY_MAJORITY",
        delta=DELTA_UNVERIFIED_ROYALTY_MAJORITY,
        message=f"{pct:.1f}% of royalties going to unverified creators - major LARP indicator",
    )


def check_many_creators(creators: Sequence[CreatorRecord]) -> RedFlag | None:
    if len(creators) <= MANY_CREATORS_THRESHOLD:
        return None
    return RedFlag(
        code="MANY_CREATORS",
        delta=DELTA_MANY_CREATORS,
        message=f"High number of creators ({len(creators)}) suggests potential money grab",
    )


def check_royalty_overallocated(creators: Sequence[CreatorRecord]) -> RedFlag | None:
    total = total_royalty_bps(creators)
    if total <= MAX_ROYALTY_BPS:
        return None
    return RedFlag(
        code="ROYALTY_OVERALLOCATED",
        delta=DELTA_ROYALTY_OVERALLOCATED,
        message=f"Royalty shares sum to {total / 100:.2f}% (more than 100%)",
    )


RULES: tuple[Callable[[Sequence[CreatorRecord]], RedFlag | None], ...] = (
    check_non_creator_high_royalty,
    check_verified_low_royalty,
    check_serial_launchers,
    check_no_verified_creators,
    check_unverified_royalty_majority,
    check_many_creators,
    check_royalty_overallocated,
)


def evaluate_flags(creators: Sequence[CreatorRecord]) -> list[RedFlag]:
    return [flag for flag in (rule(creators) for rule in RULES) if flag is not None]
