"""
Pytest fixtures for Feewatch tests.

HTTP collaborators are faked with httpx.MockTransport: FakeRpc answers Solana
JSON-RPC (getSignaturesForAddress / getTransaction), FakeRegistry answers the
launchpad registry. Sleeps are recorded instead of awaited.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from backend_feewatch.config.settings import Settings
from backend_feewatch.claims.predicates import FEE_PROGRAM_ID

RPC_URL = "https://rpc.test"
REGISTRY_URL = "https://registry.test/api/v1"

SUBJECT = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
OTHER_WALLET = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"
# 44 chars, ends in BAGS
LAUNCH_TOKEN = "7ZkqeXhYgRgAzKjEvz3mBVjq1tSbnKUWqBgyKCqjBAGS"
LAUNCH_TOKEN_2 = "3hWnvT8dQp4KcYxs5LrNzjUbMfE2aG6oVi9BtRkwBAGS"


def build_transaction(
    signers: list[str],
    others: list[str],
    deltas: list[int],
    *,
    programs: list[str] | None = None,
    block_time: int | None = 1_700_000_000,
    fee: int = 5000,
) -> dict[str, Any]:
    """
    getTransaction result (json encoding). Account keys are signers + others +
    programs; deltas apply to signers + others in order.
    """
    programs = programs or []
    keys = signers + others + programs
    pre = [10_000_000_000] * len(keys)
    post = list(pre)
    for idx, delta in enumerate(deltas):
        post[idx] = pre[idx] + delta
    instructions = [{"programIdIndex": keys.index(p), "accounts": [0], "data": ""} for p in programs]
    return {
        "slot": 250_000_000,
        "blockTime": block_time,
        "transaction": {
            "signatures": ["sig"],
            "message": {
                "header": {
                    "numRequiredSignatures": len(signers),
                    "numReadonlySignedAccounts": 0,
                    "numReadonlyUnsignedAccounts": len(programs),
                },
                "accountKeys": keys,
                "instructions": instructions,
            },
        },
        "meta": {
            "err": None,
            "fee": fee,
            "preBalances": pre,
            "postBalances": post,
            "innerInstructions": [],
        },
    }


def claim_transaction(subject: str = SUBJECT, token: str = LAUNCH_TOKEN, gain: int = 500_000, **kw: Any) -> dict[str, Any]:
    """A fee claim signed by subject: fee program instruction, launch token key, subject gains lamports."""
    return build_transaction([subject], [token], [gain, 0], programs=[FEE_PROGRAM_ID], **kw)


class FakeRpc:
    """
    Scriptable Solana RPC.

    signatures: list of getSignaturesForAddress items (newest first).
    transactions: signature -> getTransaction result.
    failures: signature -> list of responses served (in order) before the real one;
      each is an int HTTP status or a dict JSON-RPC error member.
    clock, detail_latency_sec: when clock is set, every getTransaction call
      advances it by detail_latency_sec (a slow node under a fake clock).
    """

    def __init__(self) -> None:
        self.signatures: list[dict[str, Any]] = []
        self.transactions: dict[str, Any] = {}
        self.failures: dict[str, list[Any]] = {}
        self.listing_status: int | None = None
        self.calls: list[tuple[str, list[Any]]] = []
        self.clock: Any = None
        self.detail_latency_sec = 0.0

    def add(self, signature: str, tx: Any, *, block_time: int | None = 1_700_000_000) -> None:
        self.signatures.append({"signature": signature, "slot": 1, "blockTime": block_time, "err": None})
        self.transactions[signature] = tx

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.calls if m == method)

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method, params = body["method"], body["params"]
        self.calls.append((method, params))
        if method == "getSignaturesForAddress":
            if self.listing_status is not None:
                return httpx.Response(self.listing_status, json={"error": "down"})
            opts = params[1] if len(params) > 1 else {}
            items = self.signatures
            before = opts.get("before")
            if before is not None:
                idx = [s["signature"] for s in items].index(before)
                items = items[idx + 1 :]
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": items[: opts.get("limit", 1000)]})
        if method == "getTransaction":
            sig = params[0]
            if self.clock is not None:
                self.clock.advance(self.detail_latency_sec)
            queue = self.failures.get(sig)
            if queue:
                failure = queue.pop(0)
                if isinstance(failure, int):
                    return httpx.Response(failure, text="error")
                return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": failure})
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": self.transactions.get(sig)})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32601, "message": "Method not found"}})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class FakeRegistry:
    """Scriptable launchpad registry: creators per token, launch history per wallet."""

    def __init__(self) -> None:
        self.creators: dict[str, list[dict[str, Any]]] = {}
        self.history: dict[str, int] = {}
        self.history_status: dict[str, int] = {}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params
        if path.endswith("/token-launch/creator/v2"):
            mint = params.get("tokenMint")
            if mint not in self.creators:
                return httpx.Response(200, json={"success": False, "error": "Token not found"})
            return httpx.Response(200, json={"success": True, "response": self.creators[mint]})
        if path.endswith("/token-launch/creator/history"):
            wallet = params.get("wallet")
            if wallet in self.history_status:
                return httpx.Response(self.history_status[wallet], json={"success": False, "error": "upstream"})
            launches = [{"tokenMint": f"mint{i}"} for i in range(self.history.get(wallet, 0))]
            return httpx.Response(200, json={"success": True, "response": launches})
        if path.endswith("/token-launch/fee-share/wallet/twitter"):
            return httpx.Response(200, json={"success": True, "response": {"wallet": OTHER_WALLET, "handle": params.get("twitterUsername")}})
        if path.endswith("/token-launch/lifetime-fees"):
            return httpx.Response(200, json={"success": True, "response": "123456789"})
        return httpx.Response(404, json={"success": False, "error": "Not found"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class SleepRecorder:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeClock:
    """Monotonic clock advanced by hand (or by `step` on every read)."""

    def __init__(self, start: float = 1000.0, step: float = 0.0) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at fake endpoints; pacing disabled."""
    return Settings(
        solana_rpc_url=RPC_URL,
        bags_api_key="test-key",
        bags_api_base_url=REGISTRY_URL,
        anthropic_api_key=None,
        rpc_rate_per_sec=0.0,
        rpc_pause_every=0,
        rpc_pause_sec=0.0,
        rpc_max_attempts=3,
        rpc_backoff_initial_sec=0.5,
        registry_rate_per_sec=0.0,
    )


@pytest.fixture
def fake_rpc() -> FakeRpc:
    return FakeRpc()


@pytest.fixture
def fake_registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_tx():
    return build_transaction


@pytest.fixture
def make_claim_tx():
    return claim_transaction


@pytest.fixture
def heuristic_client():
    """Stand-in Anthropic client; tests set messages.create.return_value."""
    from types import SimpleNamespace
    from unittest.mock import AsyncMock, MagicMock

    client = MagicMock()
    client.messages.create = AsyncMock(
        return_value=SimpleNamespace(content=[SimpleNamespace(text='{"riskScore": 20, "analysis": "ok"}')])
    )
    return client


@pytest.fixture
def client(settings, fake_rpc, fake_registry, heuristic_client):
    """FastAPI TestClient with settings, HTTP and heuristic dependencies pointed at the fakes."""
    from fastapi.testclient import TestClient

    from backend_feewatch.api_server.server import (
        app,
        get_app_settings,
        get_heuristic_scorer,
        get_http_client,
    )
    from backend_feewatch.risk.heuristic import HeuristicScorer

    def route(request: httpx.Request) -> httpx.Response:
        if request.url.host == "registry.test":
            return fake_registry.handler(request)
        return fake_rpc.handler(request)

    async def http_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(route)) as c:
            yield c

    app.dependency_overrides[get_app_settings] = lambda: settings
    app.dependency_overrides[get_http_client] = http_client
    app.dependency_overrides[get_heuristic_scorer] = lambda: HeuristicScorer(None, "test-model", client=heuristic_client)
    yield TestClient(app)
    app.dependency_overrides.clear()
