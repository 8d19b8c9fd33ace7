"""
Creator-royalty risk scoring package.

Rule-based red flags plus an external heuristic score, combined into one
bounded RiskAssessment per token.
"""

from backend_feewatch.risk.flags import evaluate_flags
from backend_feewatch.risk.heuristic import HeuristicScorer, decode_heuristic_response
from backend_feewatch.risk.models import (
    CreatorRecord,
    HeuristicResult,
    Recommendation,
    RedFlag,
    RiskAssessment,
)
from backend_feewatch.risk.registry import CreatorRegistry
from backend_feewatch.risk.scorer import RiskOptions, RiskReport, assess_risk, recommendation_for, score

__all__ = [
    "CreatorRecord",
    "CreatorRegistry",
    "HeuristicResult",
    "HeuristicScorer",
    "Recommendation",
    "RedFlag",
    "RiskAssessment",
    "RiskOptions",
    "RiskReport",
    "assess_risk",
    "decode_heuristic_response",
    "evaluate_flags",
    "recommendation_for",
    "score",
]
