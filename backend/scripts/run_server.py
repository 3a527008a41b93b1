#!/usr/bin/env python3
"""
Backend server runner script.

This script starts the FastAPI server with the API configuration
(``API_HOST``, ``API_PORT``, ``API_RELOAD``).
"""

import sys
from pathlib import Path

# Add the repository root to the Python path
root_dir = Path(__file__).parent.parent.parent
sys.path.append(str(root_dir))

import uvicorn

from backend.common.config import get_config
from backend.common.logger import app_logger

logger = app_logger.getChild("scripts.run_server")


def main():
    """Run the backend server."""
    api_config = get_config().api
    try:
        logger.info(f"Starting server on {api_config.host}:{api_config.port} (reload: {api_config.reload})")

        uvicorn.run(
            "backend.main:app",
            host=api_config.host,
            port=api_config.port,
            reload=api_config.reload,
            log_level="info"
        )

    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
