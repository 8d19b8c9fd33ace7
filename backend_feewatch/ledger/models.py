"""
Data models for ledger listing and resolution.

CandidateRef is the unit emitted by the lister; DetailRecord is the resolved
transaction the classifier works on. Both are immutable once built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class CandidateRef:
    """
    Pointer to one transaction from getSignaturesForAddress.

    Ordered newest-first by ledger convention.
    """

    id: str
    observed_at: int | None  # Unix timestamp (blockTime); None if not available
    slot: int | None = None
    failed: bool = False  # True when the RPC reported err != null

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "CandidateRef":
        """Build from a single getSignaturesForAddress result item."""
        block_time = item.get("blockTime")
        slot = item.get("slot")
        return cls(
            id=item["signature"],
            observed_at=int(block_time) if block_time is not None else None,
            slot=int(slot) if slot is not None else None,
            failed=item.get("err") is not None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "observed_at": self.observed_at,
            "slot": self.slot,
            "failed": self.failed,
        }


@dataclass(frozen=True)
class DetailRecord:
    """
    Full resolved transaction, reduced to what the claim predicates need.

    signer_addresses are the first numRequiredSignatures account keys; index 0
    is the fee payer. balance_deltas maps account index to post - pre lamports.
    """

    id: str
    signer_addresses: tuple[str, ...]
    account_keys: tuple[str, ...]
    referenced_programs: frozenset[str]
    balance_deltas: Mapping[int, int] = field(default_factory=dict)
    block_time: int | None = None
    fee: int = 0

    @property
    def fee_payer(self) -> str | None:
        return self.signer_addresses[0] if self.signer_addresses else None

    def delta_for(self, address: str) -> int | None:
        """Balance delta (lamports) of the first account matching address; None if absent."""
        for idx, key in enumerate(self.account_keys):
            if key == address:
                return self.balance_deltas.get(idx)
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "signer_addresses": list(self.signer_addresses),
            "account_keys": list(self.account_keys),
            "referenced_programs": sorted(self.referenced_programs),
            "balance_deltas": {str(k): v for k, v in sorted(self.balance_deltas.items())},
            "block_time": self.block_time,
            "fee": self.fee,
        }
