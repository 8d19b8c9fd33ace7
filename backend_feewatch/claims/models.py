"""
Data models for claim evidence and wallet profiles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping


class DedupKey(str, Enum):
    TOKEN = "token"
    TRANSACTION = "transaction"


class ClaimFrequency(str, Enum):
    NONE = "none"
    RARE = "rare"
    OCCASIONAL = "occasional"
    ACTIVE = "active"
    VERY_ACTIVE = "very_active"


@dataclass(frozen=True)
class EvidenceItem:
    """
    One accepted fee claim.

    claimed_amount is in SOL; None when the subject's own balance did not grow
    (the claim credited another account in the transaction).
    """

    source_id: str
    subject_token: str | None
    claimed_amount: Decimal | None
    timestamp: int | None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def dedup_key(self, key: DedupKey) -> str:
        if key is DedupKey.TOKEN and self.subject_token is not None:
            return f"token:{self.subject_token}"
        return f"tx:{self.source_id}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_id": self.source_id,
            "subject_token": self.subject_token,
            "claimed_amount": str(self.claimed_amount) if self.claimed_amount is not None else None,
            "timestamp": self.timestamp,
            "extra": dict(self.extra),
        }


@dataclass(frozen=True)
class Profile:
    """Aggregate over accepted evidence for one subject. Never absent; zero-valued when empty."""

    total_count: int = 0
    total_amount: Decimal = Decimal(0)
    first_timestamp: int | None = None
    last_timestamp: int | None = None
    items: tuple[EvidenceItem, ...] = ()
    frequency: ClaimFrequency = ClaimFrequency.NONE
    claims_per_day: float = 0.0

    @property
    def has_claims(self) -> bool:
        return self.total_count > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_count": self.total_count,
            "total_amount": str(self.total_amount),
            "first_timestamp": self.first_timestamp,
            "last_timestamp": self.last_timestamp,
            "frequency": self.frequency.value,
            "claims_per_day": self.claims_per_day,
            "items": [item.to_dict() for item in self.items],
        }
