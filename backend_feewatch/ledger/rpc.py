"""
Solana JSON-RPC over httpx.

One POST per call. Failures are raised as RpcError with a transient flag so
the lister (no retry) and the resolver (bounded retry) can map them to their
own error types.
"""

from __future__ import annotations

import itertools
from typing import Any

import httpx

_request_ids = itertools.count(1)

# RPC error codes that mean "slow down" or "not ready yet"
TRANSIENT_RPC_CODES = frozenset({429, -32429, -32005, -32004, -32014})


class RpcError(Exception):
    def __init__(
        self,
        message: str,
        *,
        transient: bool = False,
        status_code: int | None = None,
        code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.transient = transient
        self.status_code = status_code
        self.code = code


def build_rpc_body(method: str, params: list[Any]) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": next(_request_ids),
        "method": method,
        "params": params,
    }


async def rpc_call(
    client: httpx.AsyncClient,
    rpc_url: str,
    method: str,
    params: list[Any],
) -> Any:
    """Perform one JSON-RPC call and return its result member; raise RpcError otherwise."""
    body = build_rpc_body(method, params)
    try:
        resp = await client.post(rpc_url, json=body)
    except httpx.TimeoutException as e:
        raise RpcError(f"{method} timed out: {e}", transient=True) from e
    except httpx.TransportError as e:
        raise RpcError(f"{method} transport error: {e}", transient=True) from e

    if resp.status_code == 429 or resp.status_code >= 500:
        raise RpcError(
            f"{method} HTTP {resp.status_code}",
            transient=True,
            status_code=resp.status_code,
        )
    if resp.status_code >= 400:
        raise RpcError(f"{method} HTTP {resp.status_code}", status_code=resp.status_code)

    try:
        data = resp.json()
    except ValueError as e:
        raise RpcError(f"{method} returned invalid JSON") from e
    if not isinstance(data, dict):
        raise RpcError(f"{method} returned a non-object body")

    err = data.get("error")
    if err:
        code = err.get("code") if isinstance(err, dict) else None
        message = err.get("message", err) if isinstance(err, dict) else err
        raise RpcError(
            f"Solana RPC error: {message} (code={code})",
            transient=code in TRANSIENT_RPC_CODES,
            code=code,
        )
    return data.get("result")
