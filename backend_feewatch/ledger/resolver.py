"""
Detail resolver: getTransaction for one CandidateRef under rate limit and backoff.

Every attempt waits on the shared RateLimiter first. Transient failures
(rate limit, 5xx, transport, not-yet-available) are retried per BackoffPolicy;
anything else fails at once. Retries stop early when the caller's deadline
passes. The caller skips items that raise ItemUnavailable.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable

import httpx

from backend_feewatch.core.exceptions import DeadlineExceeded, ItemUnavailable, ParseFailure
from backend_feewatch.feewatch_logging import get_logger
from backend_feewatch.ledger.models import CandidateRef, DetailRecord
from backend_feewatch.ledger.parser import parse_transaction
from backend_feewatch.ledger.rate_limit import BackoffPolicy, RateLimiter, Sleep
from backend_feewatch.ledger.rpc import RpcError, rpc_call

logger = get_logger(__name__)


class DetailResolver:
    def __init__(
        self,
        client: httpx.AsyncClient,
        rpc_url: str,
        rate_limiter: RateLimiter,
        *,
        backoff: BackoffPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        encoding: str = "json",
    ) -> None:
        self._client = client
        self._rpc_url = rpc_url
        self._rate_limiter = rate_limiter
        self._backoff = backoff or BackoffPolicy()
        self._sleep = sleep
        self._clock = clock
        self._encoding = encoding
        self.attempts = 0

    async def resolve(self, ref: CandidateRef, deadline: float | None = None) -> DetailRecord:
        """
        Fetch and parse one transaction; raise ItemUnavailable after retries are spent.

        deadline is a reading of this resolver's clock. Once it passes, no
        further attempt starts, an in-flight attempt is cancelled, and
        DeadlineExceeded is raised.
        """
        delays = self._backoff.delays()
        last_error: ItemUnavailable | None = None
        for attempt in range(self._backoff.max_attempts):
            try:
                return await self._attempt(ref, deadline)
            except DeadlineExceeded:
                logger.warning("resolver_deadline_reached", signature=ref.id, attempt=attempt + 1)
                raise
            except ItemUnavailable as e:
                last_error = e
                if not e.transient:
                    logger.info(
                        "resolver_item_failed",
                        signature=ref.id,
                        reason=e.reason,
                    )
                    raise
                logger.warning(
                    "resolver_retry",
                    signature=ref.id,
                    attempt=attempt + 1,
                    max_attempts=self._backoff.max_attempts,
                    error=e.reason,
                )
                if attempt + 1 < self._backoff.max_attempts:
                    delay = delays[attempt]
                    remaining = self._remaining(deadline)
                    if remaining is not None:
                        delay = min(delay, max(0.0, remaining))
                    await self._sleep(delay)

        logger.error(
            "resolver_give_up",
            signature=ref.id,
            max_attempts=self._backoff.max_attempts,
            error=last_error.reason if last_error else None,
        )
        if last_error is None:
            raise ItemUnavailable(ref.id, "no attempts made")
        raise last_error

    def _remaining(self, deadline: float | None) -> float | None:
        return None if deadline is None else deadline - self._clock()

    async def _attempt(self, ref: CandidateRef, deadline: float | None) -> DetailRecord:
        remaining = self._remaining(deadline)
        if remaining is None:
            return await self._resolve_once(ref)
        if remaining <= 0:
            raise DeadlineExceeded(ref.id)
        try:
            return await asyncio.wait_for(self._resolve_once(ref), timeout=remaining)
        except asyncio.TimeoutError as e:
            raise DeadlineExceeded(ref.id) from e

    async def _resolve_once(self, ref: CandidateRef) -> DetailRecord:
        await self._rate_limiter.acquire()
        self.attempts += 1
        params = [ref.id, {"encoding": self._encoding, "maxSupportedTransactionVersion": 0}]
        try:
            result = await rpc_call(self._client, self._rpc_url, "getTransaction", params)
        except RpcError as e:
            raise ItemUnavailable(ref.id, str(e), transient=e.transient) from e
        if result is None:
            # Not yet visible at this commitment level
            raise ItemUnavailable(ref.id, "no transaction data", transient=True)
        try:
            return parse_transaction(ref.id, result)
        except ParseFailure as e:
            raise ItemUnavailable(ref.id, f"malformed payload: {e}") from e
