#!/usr/bin/env python3
"""
Script to run the Book Review API server.
"""

import uvicorn

from api.config import config as api_config
from utilities.config import config
from utilities.logger import setup_logging, get_logger


def main():
    """Run the API server."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )

    logger = get_logger(__name__)
    logger.info(
        "Starting Book Review API server",
        host=api_config.host,
        port=api_config.port,
        environment=config.environment,
        auth_transport=api_config.auth_transport,
    )

    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=config.debug,
        log_level=config.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()
