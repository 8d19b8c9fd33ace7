"""
Claim predicates and address constants.

Each predicate is a pure function of a DetailRecord (plus the subject or
program address) so the classifier chain can be tested step by step.
"""

from __future__ import annotations

from backend_feewatch.ledger.models import DetailRecord

FEE_PROGRAM_ID = "FEEhPbKVKnco9EXnaY3i4R5rQVUx91wgVfu8qokixywi"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"
SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
COMPUTE_BUDGET_PROGRAM_ID = "ComputeBudget111111111111111111111111111111"

# Never reported as the claimed token
INFRASTRUCTURE_PROGRAMS = frozenset({
    FEE_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    WRAPPED_SOL_MINT,
    SYSTEM_PROGRAM_ID,
    COMPUTE_BUDGET_PROGRAM_ID,
})

# Launchpad mints are vanity addresses: 44 base58 chars ending in "BAGS"
LAUNCHPAD_TOKEN_LENGTH = 44
LAUNCHPAD_TOKEN_SUFFIX = "BAGS"

PROGRAM_MATCH_ACCOUNT_KEY = "account_key"
PROGRAM_MATCH_INSTRUCTION = "instruction"


def is_fee_payer(record: DetailRecord, subject: str) -> bool:
    """The first signer (fee payer) is the subject."""
    return record.fee_payer == subject


def program_match(record: DetailRecord, program: str) -> str | None:
    """How program appears in the record: as an account key, as an instruction program, or not at all."""
    if program in record.account_keys:
        return PROGRAM_MATCH_ACCOUNT_KEY
    if program in record.referenced_programs:
        return PROGRAM_MATCH_INSTRUCTION
    return None


def involves_program(record: DetailRecord, program: str) -> bool:
    return program_match(record, program) is not None


def positive_delta_indexes(record: DetailRecord) -> list[int]:
    return sorted(idx for idx, delta in record.balance_deltas.items() if delta > 0)


def has_positive_delta(record: DetailRecord) -> bool:
    """At least one account balance increased."""
    return any(delta > 0 for delta in record.balance_deltas.values())


def is_launchpad_token(address: str) -> bool:
    return (
        len(address) == LAUNCHPAD_TOKEN_LENGTH
        and address.endswith(LAUNCHPAD_TOKEN_SUFFIX)
        and address not in INFRASTRUCTURE_PROGRAMS
    )


def find_launchpad_token(record: DetailRecord, subject: str) -> str | None:
    """First launchpad-token account key in account order, excluding the subject."""
    for key in record.account_keys:
        if key == subject:
            continue
        if is_launchpad_token(key):
            return key
    return None
