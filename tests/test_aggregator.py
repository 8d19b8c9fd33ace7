"""
Tests for evidence aggregation (claims.aggregator).
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from backend_feewatch.claims.aggregator import SECONDS_PER_DAY, aggregate, claim_frequency, dedupe
from backend_feewatch.claims.models import ClaimFrequency, DedupKey, EvidenceItem, Profile

from conftest import LAUNCH_TOKEN, LAUNCH_TOKEN_2

T0 = 1_700_000_000


def _item(sig, token=LAUNCH_TOKEN, amount="0.5", ts=T0):
    return EvidenceItem(
        source_id=sig,
        subject_token=token,
        claimed_amount=Decimal(amount) if amount is not None else None,
        timestamp=ts,
    )


def test_empty_input_is_zero_profile():
    """No evidence: a present, zero-valued profile."""
    profile = aggregate([])
    assert profile == Profile()
    assert profile.total_count == 0
    assert profile.total_amount == Decimal(0)
    assert profile.first_timestamp is None
    assert profile.last_timestamp is None
    assert profile.frequency is ClaimFrequency.NONE
    assert profile.has_claims is False


def test_aggregate_is_idempotent():
    """Same input sequence, equal profile."""
    items = [_item("s1", ts=T0 + 100), _item("s2", token=LAUNCH_TOKEN_2, ts=T0)]
    assert aggregate(items) == aggregate(list(items))


def test_token_dedup_keeps_first_seen():
    """Two claims for the same token count once; the first (newest) occurrence wins."""
    items = [
        _item("newest", amount="1.0", ts=T0 + 500),
        _item("older", amount="2.0", ts=T0),
        _item("other", token=LAUNCH_TOKEN_2, amount="0.25", ts=T0 + 100),
    ]
    profile = aggregate(items, DedupKey.TOKEN)
    assert profile.total_count == 2
    assert [i.source_id for i in profile.items] == ["newest", "other"]
    assert profile.total_amount == Decimal("1.25")
    assert profile.first_timestamp == T0 + 100
    assert profile.last_timestamp == T0 + 500


def test_transaction_dedup_counts_every_signature():
    items = [_item("s1"), _item("s2"), _item("s1")]
    profile = aggregate(items, DedupKey.TRANSACTION)
    assert profile.total_count == 2
    assert profile.total_amount == Decimal("1.0")


def test_items_without_token_fall_back_to_signature():
    """Under token dedup, tokenless claims are keyed by their transaction."""
    items = [_item("s1", token=None), _item("s2", token=None), _item("s1", token=None)]
    kept = dedupe(items, DedupKey.TOKEN)
    assert [i.source_id for i in kept] == ["s1", "s2"]


def test_unknown_amount_contributes_zero():
    items = [_item("s1", amount=None), _item("s2", token=LAUNCH_TOKEN_2, amount="0.1")]
    profile = aggregate(items)
    assert profile.total_count == 2
    assert profile.total_amount == Decimal("0.1")


def test_missing_timestamps_ignored_for_bounds():
    items = [_item("s1", ts=None), _item("s2", token=LAUNCH_TOKEN_2, ts=T0 + 10)]
    profile = aggregate(items)
    assert profile.first_timestamp == T0 + 10
    assert profile.last_timestamp == T0 + 10


@pytest.mark.parametrize(
    "count, days, expected",
    [
        (1, 1, ClaimFrequency.VERY_ACTIVE),
        (5, 10, ClaimFrequency.ACTIVE),
        (3, 60, ClaimFrequency.OCCASIONAL),
        (1, 60, ClaimFrequency.RARE),
        (0, 10, ClaimFrequency.NONE),
    ],
)
def test_claim_frequency_tiers(count, days, expected):
    tier, _rate = claim_frequency(count, T0, T0 + days * SECONDS_PER_DAY)
    assert tier is expected


def test_claim_frequency_window_at_least_one_day():
    """Same-second claims are rated over one day, not divided by zero."""
    tier, rate = claim_frequency(3, T0, T0)
    assert tier is ClaimFrequency.VERY_ACTIVE
    assert rate == 3.0


def test_as_of_changes_frequency_only():
    items = [_item("s1", ts=T0)]
    recent = aggregate(items, as_of=T0)
    stale = aggregate(items, as_of=T0 + 90 * SECONDS_PER_DAY)
    assert recent.frequency is ClaimFrequency.VERY_ACTIVE
    assert stale.frequency is ClaimFrequency.RARE
    assert recent.total_amount == stale.total_amount


def test_profile_to_dict_serializes_decimals():
    data = aggregate([_item("s1", amount="0.0005")]).to_dict()
    assert data["total_count"] == 1
    assert data["total_amount"] == "0.0005"
    assert data["items"][0]["claimed_amount"] == "0.0005"
    assert data["frequency"] == "very_active"
