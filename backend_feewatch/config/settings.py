"""
Application settings.

Typed, read-only view over the environment (see config/env.py). Built once per
process by get_settings(); pipelines receive the values they need explicitly
so tests can construct components without touching the environment.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass

from backend_feewatch.config.env import (
    env_float,
    env_int,
    env_str,
    get_solana_rpc_url,
    load_feewatch_env,
)

DEFAULT_FEE_PROGRAM_ID = "FEEhPbKVKnco9EXnaY3i4R5rQVUx91wgVfu8qokixywi"
DEFAULT_BAGS_API_BASE_URL = "https://public-api-v2.bags.fm/api/v1"
DEFAULT_ANTHROPIC_MODEL = "claude-3-5-sonnet-20241022"


@dataclass(frozen=True)
class Settings:
    solana_rpc_url: str
    fee_program_id: str = DEFAULT_FEE_PROGRAM_ID
    bags_api_key: str | None = None
    bags_api_base_url: str = DEFAULT_BAGS_API_BASE_URL
    anthropic_api_key: str | None = None
    anthropic_model: str = DEFAULT_ANTHROPIC_MODEL

    request_timeout_sec: float = 30.0

    # Detail resolver rate limit and retry
    rpc_rate_per_sec: float = 8.0
    rpc_pause_every: int = 5
    rpc_pause_sec: float = 0.8
    rpc_max_attempts: int = 3
    rpc_backoff_initial_sec: float = 0.5
    rpc_backoff_max_sec: float = 8.0

    # Claim scan bounds
    claim_listing_limit: int = 100
    claim_max_candidates: int = 50
    claim_max_elapsed_sec: float = 25.0

    # Creator history lookups (one per creator)
    registry_rate_per_sec: float = 5.0

    api_host: str = "0.0.0.0"
    api_port: int = 8000


def load_settings() -> Settings:
    """Build Settings from the current environment (after loading .env)."""
    load_feewatch_env()
    return Settings(
        solana_rpc_url=get_solana_rpc_url(),
        fee_program_id=env_str("FEE_PROGRAM_ID", DEFAULT_FEE_PROGRAM_ID),
        bags_api_key=env_str("BAGS_API_KEY"),
        bags_api_base_url=env_str("BAGS_API_BASE_URL", DEFAULT_BAGS_API_BASE_URL).rstrip("/"),
        anthropic_api_key=env_str("ANTHROPIC_API_KEY"),
        anthropic_model=env_str("ANTHROPIC_MODEL", DEFAULT_ANTHROPIC_MODEL),
        request_timeout_sec=env_float("REQUEST_TIMEOUT_SEC", 30.0),
        rpc_rate_per_sec=env_float("RPC_RATE_PER_SEC", 8.0),
        rpc_pause_every=env_int("RPC_PAUSE_EVERY", 5),
        rpc_pause_sec=env_float("RPC_PAUSE_SEC", 0.8),
        rpc_max_attempts=max(1, env_int("RPC_MAX_ATTEMPTS", 3)),
        rpc_backoff_initial_sec=env_float("RPC_BACKOFF_INITIAL_SEC", 0.5),
        rpc_backoff_max_sec=env_float("RPC_BACKOFF_MAX_SEC", 8.0),
        claim_listing_limit=env_int("CLAIM_LISTING_LIMIT", 100),
        claim_max_candidates=env_int("CLAIM_MAX_CANDIDATES", 50),
        claim_max_elapsed_sec=env_float("CLAIM_MAX_ELAPSED_SEC", 25.0),
        registry_rate_per_sec=env_float("REGISTRY_RATE_PER_SEC", 5.0),
        api_host=env_str("API_HOST", "0.0.0.0"),
        api_port=env_int("API_PORT", 8000),
    )


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings (cached; call get_settings.cache_clear() in tests)."""
    return load_settings()
