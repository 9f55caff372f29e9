"""
Main entrypoint: FastAPI server for wallet registration and verification.

Env: DATABASE_URL, LEDGER_RPC_URL, CONTRACT_ADDRESS, ADMIN_USERNAME, ADMIN_PASSWORD,
ADMIN_TOKEN_SECRET, API_HOST, API_PORT, LOG_LEVEL.

Equivalent: uvicorn backend_walletverify.api_server.app:app --host 0.0.0.0 --port 5000
"""

import os

# Configure structured JSON logging before other imports that may log
from backend_walletverify.verify_logging import get_logger

logger = get_logger("main")


def main() -> None:
    """Load settings and run the API in the main thread."""
    from backend_walletverify.api_server.server import create_app
    from backend_walletverify.config import load_settings
    import uvicorn

    settings = load_settings()
    app = create_app(settings)

    logger.info("main_server_starting", host=settings.api_host, port=settings.api_port)
    # log_config=None keeps the structlog handlers installed by verify_logging
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
