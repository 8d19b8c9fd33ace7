"""
Solana transaction parser: raw getTransaction payloads to DetailRecord.

Purely structural; no claim logic. Handles both "json" and "jsonParsed"
encodings and versioned transactions (meta.loadedAddresses).
"""

from __future__ import annotations

from typing import Any

from backend_feewatch.core.exceptions import ParseFailure
from backend_feewatch.ledger.models import DetailRecord


def _get_account_keys(
    message: dict[str, Any],
    meta: dict[str, Any] | None = None,
) -> list[str]:
    """
    Resolve accountKeys to a list of base58 strings (handles json vs jsonParsed).
    For versioned transactions, appends meta.loadedAddresses (writable + readonly).
    """
    keys = message.get("accountKeys") or message.get("staticAccountKeys")
    if not keys:
        return []
    if isinstance(keys[0], str):
        out = list(keys)
    else:
        out = [str(k.get("pubkey", "")) for k in keys if isinstance(k, dict)]
    loaded = (meta or {}).get("loadedAddresses") or {}
    for role in ("writable", "readonly"):
        for addr in loaded.get(role) or []:
            if isinstance(addr, str):
                out.append(addr)
    return out


def _get_signers(message: dict[str, Any], account_keys: list[str]) -> list[str]:
    """First numRequiredSignatures keys (json) or keys flagged signer (jsonParsed)."""
    raw_keys = message.get("accountKeys") or []
    if raw_keys and isinstance(raw_keys[0], dict):
        return [str(k.get("pubkey", "")) for k in raw_keys if isinstance(k, dict) and k.get("signer")]
    header = message.get("header") or {}
    n = header.get("numRequiredSignatures")
    if not isinstance(n, int) or n < 1:
        # Fee payer is always the first key and always signs
        n = 1
    return account_keys[:n]


def _get_program_id(account_keys: list[str], instruction: dict[str, Any]) -> str | None:
    """Resolve program id for an instruction (programId or programIdIndex -> account key)."""
    pid = instruction.get("programId")
    if isinstance(pid, str) and pid:
        return pid
    idx = instruction.get("programIdIndex")
    if not isinstance(idx, int) or not (0 <= idx < len(account_keys)):
        return None
    return account_keys[idx]


def _instruction_programs(
    account_keys: list[str],
    message: dict[str, Any],
    meta: dict[str, Any],
) -> set[str]:
    """Program ids of top-level and inner instructions."""
    programs: set[str] = set()
    for ix in message.get("instructions") or []:
        if isinstance(ix, dict):
            pid = _get_program_id(account_keys, ix)
            if pid:
                programs.add(pid)
    for group in meta.get("innerInstructions") or []:
        if not isinstance(group, dict):
            continue
        for ix in group.get("instructions") or []:
            if isinstance(ix, dict):
                pid = _get_program_id(account_keys, ix)
                if pid:
                    programs.add(pid)
    return programs


def _balance_deltas(meta: dict[str, Any]) -> dict[int, int]:
    pre = meta.get("preBalances") or []
    post = meta.get("postBalances") or []
    deltas: dict[int, int] = {}
    for idx in range(min(len(pre), len(post))):
        try:
            deltas[idx] = int(post[idx]) - int(pre[idx])
        except (TypeError, ValueError):
            continue
    return deltas


def parse_transaction(signature: str, result: Any) -> DetailRecord:
    """
    Parse a getTransaction result into a DetailRecord.

    Raises ParseFailure when the payload lacks transaction.message, meta or
    account keys.
    """
    if not isinstance(result, dict):
        raise ParseFailure(f"transaction {signature}: result is not an object")
    transaction = result.get("transaction")
    meta = result.get("meta")
    if not isinstance(transaction, dict) or not isinstance(meta, dict):
        raise ParseFailure(f"transaction {signature}: missing transaction or meta")
    message = transaction.get("message")
    if not isinstance(message, dict):
        raise ParseFailure(f"transaction {signature}: missing message")

    account_keys = _get_account_keys(message, meta)
    if not account_keys:
        raise ParseFailure(f"transaction {signature}: no account keys")

    block_time = result.get("blockTime")
    try:
        fee = int(meta.get("fee") or 0)
    except (TypeError, ValueError):
        fee = 0

    return DetailRecord(
        id=signature,
        signer_addresses=tuple(_get_signers(message, account_keys)),
        account_keys=tuple(account_keys),
        referenced_programs=frozenset(_instruction_programs(account_keys, message, meta)),
        balance_deltas=_balance_deltas(meta),
        block_time=int(block_time) if isinstance(block_time, (int, float)) else None,
        fee=fee,
    )
