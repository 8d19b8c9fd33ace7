"""
Paginated signature lister: getSignaturesForAddress, newest first.

A listing failure is stage-wide: it raises UpstreamUnavailable and the caller
aborts the run. No retry at this layer.
"""

from __future__ import annotations

from typing import Any

import httpx

from backend_feewatch.core.exceptions import UpstreamUnavailable, ValidationError, require_address
from backend_feewatch.feewatch_logging import get_logger
from backend_feewatch.ledger.models import CandidateRef
from backend_feewatch.ledger.rpc import RpcError, rpc_call

logger = get_logger(__name__)

MAX_LISTING_LIMIT = 500
RPC_PAGE_LIMIT = 1000


class SignatureLister:
    """Lists transaction signatures for an address from Solana RPC."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        rpc_url: str,
        *,
        page_size: int = RPC_PAGE_LIMIT,
        commitment: str = "confirmed",
    ) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        if not (1 <= page_size <= RPC_PAGE_LIMIT):
            raise ValueError(f"page_size must be between 1 and {RPC_PAGE_LIMIT}")
        self._client = client
        self._rpc_url = rpc_url
        self._page_size = page_size
        self._commitment = commitment

    async def list(self, address: str, limit: int) -> list[CandidateRef]:
        """
        Return up to limit CandidateRefs for address, newest first.

        Empty history returns []. Raises ValidationError for a bad address or
        limit, UpstreamUnavailable if any page request fails.
        """
        address = require_address(address)
        if not (1 <= limit <= MAX_LISTING_LIMIT):
            raise ValidationError(f"limit must be between 1 and {MAX_LISTING_LIMIT}")

        refs: list[CandidateRef] = []
        before: str | None = None
        while len(refs) < limit:
            page_limit = min(self._page_size, limit - len(refs))
            page = await self._fetch_page(address, before, page_limit)
            for item in page:
                if not isinstance(item, dict) or "signature" not in item:
                    continue
                try:
                    refs.append(CandidateRef.from_rpc_item(item))
                except (KeyError, TypeError, ValueError) as e:
                    logger.debug("lister_skip_invalid_item", error=str(e))
            if len(page) < page_limit:
                break
            before = page[-1].get("signature") if isinstance(page[-1], dict) else None
            if not before:
                break

        logger.info(
            "lister_signatures_fetched",
            wallet_id=address,
            signature_count=len(refs),
            limit=limit,
        )
        return refs[:limit]

    async def _fetch_page(self, address: str, before: str | None, limit: int) -> list[Any]:
        opts: dict[str, Any] = {"limit": limit, "commitment": self._commitment}
        if before is not None:
            opts["before"] = before
        try:
            result = await rpc_call(self._client, self._rpc_url, "getSignaturesForAddress", [address, opts])
        except RpcError as e:
            logger.warning("lister_rpc_failed", wallet_id=address, error=str(e))
            raise UpstreamUnavailable(f"RPC failed: {e}", status_code=e.status_code) from e
        if result is None:
            return []
        if not isinstance(result, list):
            raise UpstreamUnavailable("RPC returned a non-list signature result")
        return result
