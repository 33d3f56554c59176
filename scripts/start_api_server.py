#!/usr/bin/env python3
"""Script to start the Azure Storage Blob broker API server."""

import sys
import logging

from azure_blob_broker.api.service_broker import run_server
from azure_blob_broker.logging_config import setup_logging
from azure_blob_broker.config import config


def main():
    """Start the API server."""
    setup_logging()
    logger = logging.getLogger(__name__)

    print("Starting Azure Storage Blob broker API server")
    print(f"Host: {config.api.host}")
    print(f"Port: {config.api.port}")
    print(f"Auth: {'Enabled' if config.api.auth_enabled else 'Disabled'}")
    print(f"Azure environment: {config.azure.environment}")
    print(f"Default location: {config.defaults.location_for(config.azure.environment)}")
    print()

    logger.info(f"Server configuration: host={config.api.host}, port={config.api.port}")

    try:
        run_server()
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        logger.info("Server stopped by user")
    except Exception as e:
        print(f"Server failed to start: {e}")
        logger.error(f"Server failed to start: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
