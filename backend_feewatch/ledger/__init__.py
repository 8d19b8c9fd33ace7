"""
Solana ledger access package.

Lists candidate transaction signatures for an address and resolves each into
a DetailRecord under a rate limit with bounded retry.
"""

from backend_feewatch.ledger.lister import MAX_LISTING_LIMIT, SignatureLister
from backend_feewatch.ledger.models import CandidateRef, DetailRecord
from backend_feewatch.ledger.parser import parse_transaction
from backend_feewatch.ledger.rate_limit import BackoffPolicy, RateLimiter
from backend_feewatch.ledger.resolver import DetailResolver

__all__ = [
    "MAX_LISTING_LIMIT",
    "BackoffPolicy",
    "CandidateRef",
    "DetailRecord",
    "DetailResolver",
    "RateLimiter",
    "SignatureLister",
    "parse_transaction",
]
