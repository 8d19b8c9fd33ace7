"""
Launchpad creator/royalty registry client (Bags public API v2).

Endpoints used:
  GET /token-launch/creator/v2?tokenMint=          token creators and royalty bps
  GET /token-launch/creator/history?wallet=        tokens a wallet has launched
  GET /token-launch/fee-share/wallet/twitter?...   fee-share wallet for a twitter handle
  GET /token-launch/lifetime-fees?tokenMint=       lifetime fees collected by a token
Responses are {"success": bool, "response": ...}. Authentication via x-api-key.
"""

from __future__ import annotations

from typing import Any

import httpx

from backend_feewatch.core.exceptions import TokenNotFound, UpstreamUnavailable, require_address
from backend_feewatch.feewatch_logging import get_logger
from backend_feewatch.risk.models import CreatorRecord

logger = get_logger(__name__)


def parse_creator(item: dict[str, Any]) -> CreatorRecord:
    """Build a CreatorRecord from one registry entry; raises ValueError/KeyError/TypeError if malformed."""
    wallet = str(item["wallet"]).strip()
    if not wallet:
        raise ValueError("creator wallet is empty")
    return CreatorRecord(
        wallet=wallet,
        is_verified_creator=item.get("isCreator") is True,
        royalty_share_bps=int(item.get("royaltyBps") or 0),
        username=item.get("username"),
        twitter_username=item.get("twitterUsername"),
    )


class CreatorRegistry:
    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        api_key: str | None,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key

    async def _get(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        """GET a registry path and return the decoded body; raise UpstreamUnavailable otherwise."""
        if not self._api_key:
            raise UpstreamUnavailable("BAGS_API_KEY not configured")
        url = f"{self._base_url}{path}"
        try:
            resp = await self._client.get(url, params=params, headers={"x-api-key": self._api_key})
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Registry request failed: {e}") from e
        try:
            data = resp.json()
        except ValueError:
            data = None
        if resp.status_code >= 400:
            detail = data.get("error") if isinstance(data, dict) else None
            raise UpstreamUnavailable(detail or f"HTTP {resp.status_code}", status_code=resp.status_code)
        if not isinstance(data, dict):
            raise UpstreamUnavailable("Registry returned a non-object body", status_code=resp.status_code)
        return data

    async def get_creators(self, token: str) -> list[CreatorRecord]:
        """Creators of token with historical_launch_count left at 0. Raises TokenNotFound if unknown."""
        token = require_address(token, "contract")
        data = await self._get("/token-launch/creator/v2", {"tokenMint": token})
        entries = data.get("response")
        if not data.get("success") or not entries or not isinstance(entries, list):
            raise TokenNotFound("Token not found in registry", status_code=404)

        creators: list[CreatorRecord] = []
        for item in entries:
            if not isinstance(item, dict):
                continue
            try:
                creators.append(parse_creator(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("registry_skip_invalid_creator", token=token, error=str(e))
        if not creators:
            raise TokenNotFound("Token has no valid creator records", status_code=404)
        logger.info("registry_creators_fetched", token=token, creator_count=len(creators))
        return creators

    async def get_launch_count(self, wallet: str) -> int:
        """Number of tokens wallet has launched; 0 when the registry reports none."""
        data = await self._get("/token-launch/creator/history", {"wallet": wallet})
        if not data.get("success"):
            return 0
        history = data.get("response")
        return len(history) if isinstance(history, list) else 0

    async def get_fee_share_wallet(self, twitter_username: str) -> dict[str, Any]:
        handle = require_address(twitter_username, "twitterUsername").lstrip("@")
        return await self._get("/token-launch/fee-share/wallet/twitter", {"twitterUsername": handle})

    async def get_lifetime_fees(self, token: str) -> dict[str, Any]:
        token = require_address(token, "tokenMint")
        return await self._get("/token-launch/lifetime-fees", {"tokenMint": token})

    async def get_creators_raw(self, token: str) -> dict[str, Any]:
        token = require_address(token, "tokenMint")
        return await self._get("/token-launch/creator/v2", {"tokenMint": token})
