#!/usr/bin/env python3
"""
Billing System Entry Point

Starts the FastAPI server with the billing and collections core.
Host, port, database and logging come from BILLING_* environment variables.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from core_billing.api import run_server
from core_billing.config import get_config
from core_billing.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    logger = setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)

    logger.info("Starting billing system on %s:%s", config.api_host, config.api_port)
    logger.info("Record store: %s", config.database_url)

    try:
        run_server(host=config.api_host, port=config.api_port, debug=False)
    except KeyboardInterrupt:
        logger.info("Shutting down billing system")
    except Exception:
        logger.exception("Error starting server")
        sys.exit(1)
