"""
Tests for risk scoring (risk.scorer): score combination, recommendation bands,
and the assess_risk pipeline against a fake registry and a mocked Anthropic client.
"""

from __future__ import annotations

import asyncio
import json
import time
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from backend_feewatch.core.exceptions import ValidationError
from backend_feewatch.risk.heuristic import FALLBACK_FLAG, HeuristicScorer, fallback_result
from backend_feewatch.risk.models import CreatorRecord, HeuristicResult, Recommendation
from backend_feewatch.risk.scorer import RiskOptions, assess_risk, recommendation_for, score

from conftest import LAUNCH_TOKEN, OTHER_WALLET, SUBJECT, FakeClock


def _heuristic(base, flags=()):
    return HeuristicResult(base_score=base, analysis="model says", red_flags=tuple(flags))


def _scorer_replying(text):
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=SimpleNamespace(content=[SimpleNamespace(text=text)]))
    return HeuristicScorer(None, "test-model", client=client), client


def _assess(fake_registry, settings, sleep, token=LAUNCH_TOKEN, *, reply=None, options=None, clock=None):
    heuristic, _client = _scorer_replying(reply if reply is not None else json.dumps({"riskScore": 20}))

    async def run():
        async with fake_registry.client() as client:
            return await assess_risk(
                token,
                options,
                settings=settings,
                client=client,
                heuristic=heuristic,
                clock=clock or FakeClock(),
                sleep=sleep,
            )

    return asyncio.run(run())


@pytest.mark.parametrize(
    "value, expected",
    [
        (100, Recommendation.AVOID),
        (75, Recommendation.AVOID),
        (74, Recommendation.CAUTION),
        (50, Recommendation.CAUTION),
        (49, Recommendation.MODERATE),
        (25, Recommendation.MODERATE),
        (24, Recommendation.LOW_RISK),
        (0, Recommendation.LOW_RISK),
    ],
)
def test_recommendation_bands(value, expected):
    assert recommendation_for(value) is expected


def test_score_adds_rule_deltas_to_base():
    creators = [CreatorRecord("V", True, 9000), CreatorRecord("U", False, 1000, historical_launch_count=8)]
    assessment = score(LAUNCH_TOKEN, creators, _heuristic(30, ["model flag"]))
    assert assessment.base_score == 30
    assert assessment.score == 50
    assert assessment.recommendation is Recommendation.CAUTION
    assert assessment.red_flags[0] == "model flag"
    assert [f.code for f in assessment.rule_flags] == ["SERIAL_LAUNCHER"]
    assert assessment.red_flags[1] == assessment.rule_flags[0].message


def test_score_is_clamped_high():
    """No verified creators with a high base: 90 + 75 clamps to 100."""
    creators = [CreatorRecord("U1", False, 6000), CreatorRecord("U2", False, 4000)]
    assessment = score(LAUNCH_TOKEN, creators, _heuristic(90))
    assert assessment.score == 100
    assert assessment.recommendation is Recommendation.AVOID


def test_score_recommendation_ignores_heuristic_recommendation():
    """Recommendation follows the final score, not the model's opinion."""
    result = HeuristicResult(base_score=10, analysis="", recommendation=Recommendation.AVOID)
    assessment = score(LAUNCH_TOKEN, [CreatorRecord("V", True, 10_000)], result)
    assert assessment.score == 10
    assert assessment.recommendation is Recommendation.LOW_RISK


def test_score_with_fallback_heuristic():
    assessment = score(LAUNCH_TOKEN, [CreatorRecord("V", True, 10_000)], fallback_result("garbled"))
    assert assessment.score == 50
    assert assessment.recommendation is Recommendation.CAUTION
    assert assessment.red_flags == (FALLBACK_FLAG,)
    assert assessment.heuristic_fallback is True


def test_assess_risk_no_verified_creators(fake_registry, settings, sleep):
    """Every creator unverified: rule deltas push the score to AVOID."""
    fake_registry.creators[LAUNCH_TOKEN] = [
        {"wallet": SUBJECT, "isCreator": False, "royaltyBps": 6000},
        {"wallet": OTHER_WALLET, "isCreator": False, "royaltyBps": 4000},
    ]
    report = _assess(fake_registry, settings, sleep, reply=json.dumps({"riskScore": 40, "redFlags": ["fake celeb"]}))
    assert report.ok
    assert report.assessment.base_score == 40
    assert report.assessment.score == 100
    assert report.assessment.recommendation is Recommendation.AVOID
    codes = [f.code for f in report.assessment.rule_flags]
    assert "NO_VERIFIED_CREATORS" in codes
    assert "UNVERIFIED_ROYALTY_MAJORITY" in codes
    assert report.metadata["verified_creators"] == 0
    assert report.metadata["unverified_royalty_pct"] == 100.0
    data = report.to_dict()
    assert data["success"] is True
    assert data["risk_score"] == 100
    assert data["red_flags"][0] == "fake celeb"


def test_assess_risk_enriches_launch_history(fake_registry, settings, sleep):
    fake_registry.creators[LAUNCH_TOKEN] = [
        {"wallet": SUBJECT, "isCreator": True, "royaltyBps": 9000, "twitterUsername": "alice"},
        {"wallet": OTHER_WALLET, "isCreator": False, "royaltyBps": 1000},
    ]
    fake_registry.history[OTHER_WALLET] = 12
    report = _assess(fake_registry, settings, sleep)
    assert report.creators_examined == 2
    assert [c.historical_launch_count for c in report.creators] == [0, 12]
    assert report.metadata["serial_launchers_detected"] == 1
    assert report.metadata["highest_launch_count"] == 12
    assert report.metadata["total_royalty_bps"] == 10_000
    assert report.metadata["average_royalty_bps"] == 5000.0
    assert report.assessment.score == 40
    assert report.assessment.recommendation is Recommendation.MODERATE


def test_assess_risk_history_failure_counts_as_zero(fake_registry, settings, sleep):
    fake_registry.creators[LAUNCH_TOKEN] = [{"wallet": SUBJECT, "isCreator": True, "royaltyBps": 10_000}]
    fake_registry.history_status[SUBJECT] = 500
    report = _assess(fake_registry, settings, sleep)
    assert report.ok
    assert report.history_errors == 1
    assert report.creators[0].historical_launch_count == 0


def test_assess_risk_deadline_stops_history_lookups(fake_registry, settings, sleep):
    fake_registry.creators[LAUNCH_TOKEN] = [
        {"wallet": SUBJECT, "isCreator": True, "royaltyBps": 5000},
        {"wallet": OTHER_WALLET, "isCreator": True, "royaltyBps": 5000},
    ]
    fake_registry.history[OTHER_WALLET] = 20
    report = _assess(
        fake_registry,
        settings,
        sleep,
        options=RiskOptions(max_elapsed_sec=15.0),
        clock=FakeClock(start=0.0, step=10.0),
    )
    assert report.deadline_reached is True
    assert report.creators_examined == 1
    assert len(report.creators) == 2
    assert report.creators[1].historical_launch_count == 0
    assert report.assessment is not None


def test_assess_risk_stalled_history_lookup_hits_deadline(fake_registry, settings, sleep, monkeypatch):
    """A history call still pending at the deadline is abandoned; scoring goes ahead."""
    fake_registry.creators[LAUNCH_TOKEN] = [{"wallet": SUBJECT, "isCreator": True, "royaltyBps": 10_000}]
    answer = fake_registry.handler

    async def stalled_history(request):
        if request.url.path.endswith("/creator/history"):
            await asyncio.sleep(5.0)
        return answer(request)

    monkeypatch.setattr(fake_registry, "handler", stalled_history)
    report = _assess(fake_registry, settings, sleep, options=RiskOptions(max_elapsed_sec=0.3), clock=time.monotonic)
    assert report.deadline_reached is True
    assert report.creators_examined == 1
    assert report.history_errors == 0
    assert report.creators[0].historical_launch_count == 0
    assert report.assessment is not None


def test_assess_risk_unparseable_reply_uses_fallback(fake_registry, settings, sleep):
    fake_registry.creators[LAUNCH_TOKEN] = [{"wallet": SUBJECT, "isCreator": True, "royaltyBps": 10_000}]
    report = _assess(fake_registry, settings, sleep, reply="I cannot help with that.")
    assert report.assessment.heuristic_fallback is True
    assert report.assessment.score == 50
    assert FALLBACK_FLAG in report.assessment.red_flags


def test_assess_risk_token_not_found(fake_registry, settings, sleep):
    report = _assess(fake_registry, settings, sleep)
    assert report.not_found is True
    assert report.ok is False
    assert report.assessment is None
    data = report.to_dict()
    assert data["success"] is False
    assert data["risk_score"] is None
    assert data["metadata"]["total_creators"] == 0


def test_assess_risk_registry_outage(settings, sleep):
    def handler(request):
        return httpx.Response(502, json={"error": "bad gateway"})

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            heuristic, _ = _scorer_replying("{}")
            return await assess_risk(LAUNCH_TOKEN, settings=settings, client=client, heuristic=heuristic, sleep=sleep)

    report = asyncio.run(run())
    assert report.not_found is False
    assert report.error == "Analysis failed: bad gateway"


def test_assess_risk_requires_contract(fake_registry, settings, sleep):
    with pytest.raises(ValidationError, match="contract parameter is required"):
        _assess(fake_registry, settings, sleep, token=" ")
    assert fake_registry.requests == []
