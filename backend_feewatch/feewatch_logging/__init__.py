"""
Structured logging for Backend Feewatch.
"""

from backend_feewatch.feewatch_logging.logger import bind_wallet, configure_logging, get_logger, short_id

__all__ = ["bind_wallet", "configure_logging", "get_logger", "short_id"]
