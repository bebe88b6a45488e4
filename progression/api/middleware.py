"""API middleware for rate limiting and CORS"""
import logging
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi.middleware.cors import CORSMiddleware

from progression.config import CORS_ORIGINS

logger = logging.getLogger(__name__)

# Write routes are limited per client address
limiter = Limiter(key_func=get_remote_address)

WRITE_RATE_LIMIT = "120/minute"
REDEEM_RATE_LIMIT = "30/minute"
ADMIN_RATE_LIMIT = "30/minute"


def setup_cors(app):
    """Configure CORS middleware"""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    logger.info(f"CORS configured for origins: {CORS_ORIGINS}")


def setup_rate_limiting(app):
    """Configure rate limiting"""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    logger.info(f"Rate limiting configured: writes {WRITE_RATE_LIMIT}, redemptions {REDEEM_RATE_LIMIT} per IP")
