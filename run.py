#!/usr/bin/env python3
"""
Rating Ledger Entry Point

Starts the FastAPI server with the storage backend, host and port taken from
RATING_LEDGER_* environment variables (or .env).
"""

import sys

from rating_ledger.api import run_server
from rating_ledger.config import get_config


if __name__ == "__main__":
    config = get_config()
    print(f"Starting Rating Ledger ({config.storage_backend} storage)")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")

    try:
        run_server()
    except KeyboardInterrupt:
        print("\nShutting down Rating Ledger...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
