#!/usr/bin/env python3
"""
Run script for the Backoffice API.
This script checks the configuration and launches the FastAPI server.
"""
import os
import sys
import traceback
import uvicorn
from dotenv import load_dotenv

from backoffice.base_microservice import Settings
from backoffice.errors import ConfigError

if __name__ == "__main__":
    load_dotenv()

    # Refuse to start without a signing secret and a store URL
    try:
        Settings.from_env()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        port = int(os.getenv("PORT", "8000"))
        print("Starting Backoffice API server...")
        print(f"Access the API at http://localhost:{port}")
        print(f"API documentation at http://localhost:{port}/docs")

        uvicorn.run(
            "backoffice.main:app",
            host=os.getenv("HOST", "0.0.0.0"),
            port=port,
            reload=os.getenv("RELOAD", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "info").lower()
        )
    except Exception as e:
        print(f"Error starting server: {e}")
        traceback.print_exc()
        sys.exit(1)
