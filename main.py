"""
Main entrypoint: run the FastAPI server under uvicorn.

Env: API_HOST, API_PORT, LOG_LEVEL, plus everything config.settings reads
(SOLANA_RPC_URL, BAGS_API_KEY, ANTHROPIC_API_KEY, ...).

Equivalent: uvicorn backend_feewatch.api_server.app:app --host 0.0.0.0 --port 8000
"""

import os

# Configure structured JSON logging before other imports that may log
from backend_feewatch.feewatch_logging import get_logger

logger = get_logger("main")


def main() -> None:
    from backend_feewatch.config.settings import get_settings
    from backend_feewatch.config.env import mask_rpc_url

    settings = get_settings()
    if not settings.bags_api_key:
        logger.warning("main_config_warning", message="BAGS_API_KEY not set; /larp-check and /wallet will fail")
    if not settings.anthropic_api_key:
        logger.warning("main_config_warning", message="ANTHROPIC_API_KEY not set; risk scores use the fallback")

    from backend_feewatch.api_server.app import app
    import uvicorn

    logger.info(
        "main_server_starting",
        host=settings.api_host,
        port=settings.api_port,
        rpc_url=mask_rpc_url(settings.solana_rpc_url),
    )
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=os.getenv("LOG_LEVEL", "info").lower())


if __name__ == "__main__":
    main()
