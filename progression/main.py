"""Main entry point for the progression API"""
import logging

import uvicorn

from progression.config import API_HOST, API_PORT, LOG_LEVEL, STORE_BACKEND, validate_config

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO)
)

logger = logging.getLogger(__name__)


def main() -> None:
    """Validate configuration and serve the API"""
    try:
        validate_config()
        logger.info("Configuration validated")
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        raise

    from progression.api.server import create_api_application

    app = create_api_application()
    logger.info(f"Starting progression API on {API_HOST}:{API_PORT} (store: {STORE_BACKEND})")
    uvicorn.run(app, host=API_HOST, port=API_PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
