"""
Main entrypoint: FastAPI server with the live monitor, or a one-shot debug.

Server mode starts the Monitor in the app lifespan (synthetic feed unless
--live / METASCAN_LIVE_SCAN) and serves HTTP + WebSocket in the main thread.

Env: BITCOIN_API_URL, METASCAN_LIVE_SCAN, API_HOST, API_PORT, LOG_LEVEL, etc.

API-only: uvicorn backend_metascan.api_server.app:app --host 0.0.0.0 --port 8000
"""

import sys

from backend_metascan.cli import main

if __name__ == "__main__":
    sys.exit(main())
