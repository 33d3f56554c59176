"""Main entry point for the API server."""

import sys
import logging

from azure_blob_broker.api.service_broker import run_server
from azure_blob_broker.logging_config import setup_logging

if __name__ == "__main__":
    setup_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting Azure Storage Blob broker API server...")
    try:
        run_server()
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error(f"Server failed to start: {e}")
        sys.exit(1)
