"""
FastAPI/ASGI application entrypoint.

Run with: uvicorn backend_walletverify.api_server.app:app --host 0.0.0.0 --port 5000
"""

from backend_walletverify.api_server.server import create_app

app = create_app()

__all__ = ["app"]
