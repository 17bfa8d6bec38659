#!/usr/bin/env python3
"""
GIC Banking API Entry Point

Starts the FastAPI server with host and port taken from GIC_* settings.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from gic_banking.api import run_server
from gic_banking.config import get_config
from gic_banking.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    setup_logging(level=config.log_level, log_format=config.log_format, log_file=config.log_file)

    print(f"Starting {config.bank_name} API on http://{config.api_host}:{config.api_port}")
    print(f"Documentation at: http://{config.api_host}:{config.api_port}/docs")

    try:
        run_server(host=config.api_host, port=config.api_port, debug=False)
    except KeyboardInterrupt:
        print("\nShutting down GIC Banking API...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
