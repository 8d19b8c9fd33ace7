"""
Command-line entry: run one pipeline and print its result as JSON on stdout.

Usage:
  python -m backend_feewatch [--log-level LEVEL] claims WALLET [--program PROGRAM] [--limit N] [--max-candidates N]
  python -m backend_feewatch [--log-level LEVEL] risk CONTRACT

Exit codes: 0 ok, 1 upstream error (result still printed), 2 invalid input.
Logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Sequence

from backend_feewatch.claims.detector import ClaimScanOptions, detect_claims
from backend_feewatch.config.settings import get_settings
from backend_feewatch.core.exceptions import ValidationError
from backend_feewatch.feewatch_logging import configure_logging, get_logger
from backend_feewatch.risk.scorer import assess_risk

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="backend_feewatch", description="Fee-claim detection and LARP risk scoring")
    ap.add_argument("--log-level", default=None, help="Override LOG_LEVEL (e.g. DEBUG)")
    sub = ap.add_subparsers(dest="command", required=True)

    claims = sub.add_parser("claims", help="Scan a wallet for fee claims")
    claims.add_argument("wallet", help="Wallet address (base58)")
    claims.add_argument("--program", default=None, help="Program of interest (default: FEE_PROGRAM_ID)")
    claims.add_argument("--limit", type=int, default=None, help="Signatures to list (default: CLAIM_LISTING_LIMIT)")
    claims.add_argument("--max-candidates", type=int, default=None, help="Signatures to examine")

    risk = sub.add_parser("risk", help="Score a token's creator/royalty setup")
    risk.add_argument("contract", help="Token mint address")
    return ap


def _claim_options(args: argparse.Namespace) -> ClaimScanOptions:
    defaults = ClaimScanOptions.from_settings(get_settings())
    return ClaimScanOptions(
        listing_limit=args.limit if args.limit is not None else defaults.listing_limit,
        max_candidates=args.max_candidates if args.max_candidates is not None else defaults.max_candidates,
        max_elapsed_sec=defaults.max_elapsed_sec,
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        configure_logging(level=args.log_level)
    try:
        if args.command == "claims":
            result = asyncio.run(detect_claims(args.wallet, args.program, _claim_options(args)))
            payload, failed = result.to_dict(), result.error is not None
        else:
            report = asyncio.run(assess_risk(args.contract))
            payload, failed = report.to_dict(), not report.ok
    except ValidationError as e:
        logger.error("cli_invalid_input", command=args.command, error=str(e))
        print(json.dumps({"success": False, "error": str(e)}))
        return 2
    print(json.dumps(payload, indent=2, default=str))
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
