import logging
import secrets

from fastapi import Header, HTTPException

from booker.config import settings

logger = logging.getLogger(__name__)


def require_bearer(
    authorization: str | None = Header(None, description="Bearer <BOOKER_API_TOKEN>"),
) -> None:
    """
    Reject the request unless it carries the configured API token.

    With no BOOKER_API_TOKEN configured every protected request is rejected.
    """
    expected = settings.booker_api_token
    if not expected:
        logger.warning("BOOKER_API_TOKEN is not configured, rejecting protected request")
        raise HTTPException(status_code=401, detail="Unauthorized")

    token = ""
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:]  # Remove "Bearer " prefix

    if not token or not secrets.compare_digest(token, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")
