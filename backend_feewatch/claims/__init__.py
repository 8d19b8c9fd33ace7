"""
Fee-claim detection package.

Classifies resolved transactions as fee claims and folds them into a
per-wallet Profile.
"""

from backend_feewatch.claims.aggregator import aggregate, dedupe
from backend_feewatch.claims.classifier import classify
from backend_feewatch.claims.detector import ClaimScanOptions, ClaimScanResult, detect_claims
from backend_feewatch.claims.models import ClaimFrequency, DedupKey, EvidenceItem, Profile

__all__ = [
    "ClaimFrequency",
    "ClaimScanOptions",
    "ClaimScanResult",
    "DedupKey",
    "EvidenceItem",
    "Profile",
    "aggregate",
    "classify",
    "dedupe",
    "detect_claims",
]
