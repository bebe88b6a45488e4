"""Bearer API key check for the progression API"""
import hmac
import logging
from typing import Optional
from fastapi import HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from progression import config

logger = logging.getLogger(__name__)

# auto_error off so a missing header gets the same 401 as a wrong key
bearer_scheme = HTTPBearer(auto_error=False)


def key_matches(candidate: str, accepted: list[str]) -> bool:
    """Constant-time membership test against the accepted keys"""
    return any(hmac.compare_digest(candidate.encode(), key.encode()) for key in accepted)


async def verify_api_key(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme)
) -> str:
    """
    Caller's API key when it is one of `config.API_KEYS`

    Raises:
        HTTPException: 503 while no keys are configured, 401 for a missing or unknown key
    """
    accepted = config.API_KEYS
    if not accepted:
        logger.error("API_KEYS is empty, rejecting request")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="API authentication not configured"
        )

    if credentials is None or not key_matches(credentials.credentials, accepted):
        logger.warning("Rejected request with a missing or unknown API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return credentials.credentials
