"""
Evidence classifier: decide whether a resolved transaction is a fee claim.

Chain, in order, stopping at the first failure:
  1. subject is the fee payer
  2. program of interest is referenced (account key or instruction program)
  3. some account balance increased
  4. extract the launchpad token (optional) and the subject's own gain
Rejection is the common case and returns None without raising.
"""

from __future__ import annotations

from decimal import Decimal

from backend_feewatch.claims import predicates
from backend_feewatch.claims.models import EvidenceItem
from backend_feewatch.feewatch_logging import get_logger
from backend_feewatch.ledger.models import DetailRecord

logger = get_logger(__name__)

LAMPORTS_PER_SOL = Decimal(1_000_000_000)


def lamports_to_sol(lamports: int) -> Decimal:
    return Decimal(lamports) / LAMPORTS_PER_SOL


def _subject_gain(record: DetailRecord, subject: str) -> Decimal | None:
    delta = record.delta_for(subject)
    if delta is None or delta <= 0:
        return None
    return lamports_to_sol(delta)


def classify(
    record: DetailRecord,
    subject: str,
    program_of_interest: str,
) -> EvidenceItem | None:
    if not predicates.is_fee_payer(record, subject):
        logger.debug("classify_reject_not_signer", signature=record.id)
        return None

    if not predicates.involves_program(record, program_of_interest):
        logger.debug("classify_reject_no_program", signature=record.id)
        return None

    if not predicates.has_positive_delta(record):
        logger.debug("classify_reject_no_positive_delta", signature=record.id)
        return None

    token = predicates.find_launchpad_token(record, subject)
    item = EvidenceItem(
        source_id=record.id,
        subject_token=token,
        claimed_amount=_subject_gain(record, subject),
        timestamp=record.block_time,
        extra={
            "program_match": predicates.program_match(record, program_of_interest),
            "positive_delta_accounts": predicates.positive_delta_indexes(record),
        },
    )
    logger.info(
        "classify_claim_found",
        signature=record.id,
        token=token,
        claimed_amount=str(item.claimed_amount) if item.claimed_amount is not None else None,
    )
    return item
