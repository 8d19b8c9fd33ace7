"""
Data models for creator-royalty risk scoring.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

MAX_ROYALTY_BPS = 10_000


class Recommendation(str, Enum):
    AVOID = "AVOID"
    CAUTION = "CAUTION"
    MODERATE = "MODERATE"
    LOW_RISK = "LOW_RISK"


@dataclass(frozen=True)
class CreatorRecord:
    """One royalty recipient of a launchpad token."""

    wallet: str
    is_verified_creator: bool
    royalty_share_bps: int
    historical_launch_count: int = 0
    username: str | None = None
    twitter_username: str | None = None

    def __post_init__(self) -> None:
        if not (0 <= self.royalty_share_bps <= MAX_ROYALTY_BPS):
            raise ValueError(f"royalty_share_bps must be within 0..{MAX_ROYALTY_BPS}")
        if self.historical_launch_count < 0:
            raise ValueError("historical_launch_count must be >= 0")

    @property
    def royalty_pct(self) -> float:
        return self.royalty_share_bps / 100

    @property
    def display_name(self) -> str:
        handle = self.twitter_username or self.username
        return f"@{handle}" if handle else self.wallet[:8]

    def to_dict(self) -> dict[str, Any]:
        return {
            "wallet": self.wallet,
            "is_verified_creator": self.is_verified_creator,
            "royalty_share_bps": self.royalty_share_bps,
            "historical_launch_count": self.historical_launch_count,
            "username": self.username,
            "twitter_username": self.twitter_username,
        }


@dataclass(frozen=True)
class RedFlag:
    """A triggered rule: stable code, fixed score delta, human-readable message."""

    code: str
    delta: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "delta": self.delta, "message": self.message}


@dataclass(frozen=True)
class HeuristicResult:
    """Decoded response of the heuristic-scoring service (or the fallback)."""

    base_score: int
    analysis: str
    red_flags: tuple[str, ...] = ()
    recommendation: Recommendation | None = None
    fallback: bool = False


@dataclass(frozen=True)
class RiskAssessment:
    score: int
    red_flags: tuple[str, ...]
    recommendation: Recommendation
    base_score: int = 50
    analysis: str = ""
    rule_flags: tuple[RedFlag, ...] = field(default_factory=tuple)
    heuristic_fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "risk_score": self.score,
            "red_flags": list(self.red_flags),
            "recommendation": self.recommendation.value,
            "base_score": self.base_score,
            "analysis": self.analysis,
            "rule_flags": [f.to_dict() for f in self.rule_flags],
            "heuristic_fallback": self.heuristic_fallback,
        }
