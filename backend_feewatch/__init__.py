"""
Backend Feewatch: fee-claim detection and creator-royalty risk scoring for Solana.

Scans a wallet's recent transactions for claims against a fee program and
scores launchpad tokens for LARP risk from their creator/royalty setup.
Every invocation recomputes from the ledger; nothing is persisted.
"""

__version__ = "0.1.0"
