"""
Heuristic risk scoring via Anthropic Claude.

The model is asked for a JSON object {riskScore, analysis, redFlags,
recommendation}. Its reply is untrusted free text: decode_heuristic_response
extracts and validates the object and never raises; anything unusable
becomes the conservative fallback (score 50, CAUTION).
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Sequence

from backend_feewatch.core.exceptions import ParseFailure
from backend_feewatch.feewatch_logging import get_logger
from backend_feewatch.risk.models import CreatorRecord, HeuristicResult, Recommendation

logger = get_logger(__name__)

FALLBACK_SCORE = 50
FALLBACK_RECOMMENDATION = Recommendation.CAUTION
FALLBACK_FLAG = "Unable to parse detailed analysis"
MAX_TOKENS = 1000
TIMEOUT_SEC = 30.0

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

_PROMPT_TEMPLATE = """\
You are a cryptocurrency token analyst who detects "LARP" tokens: launches that \
pretend to be backed by a celebrity, influencer or established project that is \
not actually involved.

Assess the creator and royalty setup of this token.

Token contract: {token}
Number of creators: {count}

Creators:
{creators}

Red flags to weigh:
1. Unverified creators (is_verified_creator: false) receiving more than 10% royalties.
2. Verified creators receiving less than 5%: the real person is probably not involved.
3. Creators who launched more than 5 tokens before: likely serial spam launchers.
4. Usernames that do not match the person or project the token implies.
5. No verified creator at all.
6. Most of the royalty pool going to unverified wallets.

Reply with a single JSON object and nothing else:
{{
  "riskScore": <integer 0-100, 100 = highest risk>,
  "analysis": "<short explanation focused on the LARP indicators>",
  "redFlags": ["<specific red flag>", ...],
  "recommendation": "AVOID" | "CAUTION" | "MODERATE" | "LOW_RISK"
}}"""


def fallback_result(raw: str = "") -> HeuristicResult:
    return HeuristicResult(
        base_score=FALLBACK_SCORE,
        analysis=raw,
        red_flags=(FALLBACK_FLAG,),
        recommendation=FALLBACK_RECOMMENDATION,
        fallback=True,
    )


def _strip_fences(text: str) -> str:
    lines = [line for line in text.splitlines() if not line.strip().startswith("```")]
    return "\n".join(lines)


def _coerce_score(value: Any) -> int:
    if isinstance(value, bool):
        raise ParseFailure("riskScore is not a number")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ParseFailure(f"riskScore is not a number: {value!r}") from e
    if not math.isfinite(number):
        raise ParseFailure(f"riskScore is not finite: {value!r}")
    score = int(round(number))
    return max(0, min(100, score))


def _coerce_recommendation(value: Any) -> Recommendation | None:
    if not isinstance(value, str):
        return None
    try:
        return Recommendation(value.strip().upper().replace(" ", "_"))
    except ValueError:
        return None


def parse_heuristic_json(raw: str) -> HeuristicResult:
    """Strict decode of the model reply; raises ParseFailure."""
    if not isinstance(raw, str) or not raw.strip():
        raise ParseFailure("empty response")
    match = _JSON_OBJECT.search(_strip_fences(raw))
    if match is None:
        raise ParseFailure("no JSON object found in response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ParseFailure(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ParseFailure("JSON is not an object")
    if "riskScore" not in data:
        raise ParseFailure("riskScore missing")

    flags = data.get("redFlags") or []
    if not isinstance(flags, list):
        flags = [flags]
    analysis = data.get("analysis")
    return HeuristicResult(
        base_score=_coerce_score(data["riskScore"]),
        analysis=analysis if isinstance(analysis, str) else "",
        red_flags=tuple(str(f) for f in flags if f),
        recommendation=_coerce_recommendation(data.get("recommendation")),
    )


def decode_heuristic_response(raw: str) -> HeuristicResult:
    """Tolerant decode: the parsed result, or the fallback when parsing fails."""
    try:
        return parse_heuristic_json(raw)
    except ParseFailure as e:
        logger.warning("heuristic_parse_failed", error=str(e), raw=(raw or "")[:200])
        return fallback_result(raw or "")


def build_prompt(token: str, creators: Sequence[CreatorRecord]) -> str:
    lines = []
    for c in creators:
        lines.append(
            f"- username: {c.username or 'N/A'} | twitter: @{c.twitter_username or 'N/A'} | "
            f"royalty: {c.royalty_pct:.2f}% | is_verified_creator: {str(c.is_verified_creator).lower()} | "
            f"previous launches: {c.historical_launch_count} | wallet: {c.wallet}"
        )
    return _PROMPT_TEMPLATE.format(token=token, count=len(creators), creators="\n".join(lines) or "- none")


class HeuristicScorer:
    """
    One Anthropic Messages call per token; single attempt.

    client may be injected (anything with an async messages.create); otherwise
    an AsyncAnthropic client is built lazily from api_key.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str,
        *,
        client: Any = None,
        max_tokens: int = MAX_TOKENS,
        timeout_sec: float = TIMEOUT_SEC,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._client = client
        self._max_tokens = max_tokens
        self._timeout_sec = timeout_sec

    def _get_client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise RuntimeError("ANTHROPIC_API_KEY not configured")
            import anthropic

            self._client = anthropic.AsyncAnthropic(api_key=self._api_key, timeout=self._timeout_sec)
        return self._client

    async def evaluate(self, token: str, creators: Sequence[CreatorRecord]) -> HeuristicResult:
        prompt = build_prompt(token, creators)
        try:
            client = self._get_client()
            message = await client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
            raw = "".join(
                getattr(block, "text", "") for block in (message.content or [])
            )
        except Exception as e:  # noqa: BLE001
            logger.error(
                "heuristic_call_failed",
                token=token,
                error_type=type(e).__name__,
                error=str(e),
            )
            return fallback_result()
        logger.info("heuristic_response_received", token=token, model=self._model)
        return decode_heuristic_response(raw)
