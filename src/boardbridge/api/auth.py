"""Dependencies for session endpoints."""

from __future__ import annotations

from fastapi import Header, HTTPException, Request

from ..host.identity import HostTokenVerifier
from ..logging import get_logger
from ..service import BridgeService

logger = get_logger(__name__)


def get_bridge_service(request: Request) -> BridgeService:
    """Return the process-wide BridgeService created during application startup."""
    service = getattr(request.app.state, "bridge_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Session service is not initialized")
    return service


def get_host_token_verifier(request: Request) -> HostTokenVerifier:
    """Return the verifier for host identity tokens, configured from the host app secret."""
    verifier = getattr(request.app.state, "host_token_verifier", None)
    if verifier is None:
        logger.error("Host identity verification is not configured")
        raise HTTPException(status_code=503, detail="Host identity verification is not configured")
    return verifier


async def get_bearer_token(authorization: str | None = Header(None)) -> str:
    """
    Extract the auth subsystem access token from the Authorization header.

    Raises:
        HTTPException: If the header is missing or not a Bearer token
    """
    if not authorization:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not authorization.startswith("Bearer "):
        logger.warning("Invalid authorization format received")
        raise HTTPException(
            status_code=401,
            detail="Invalid authorization format. Expected: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization[7:]  # Remove "Bearer " prefix
    if not token.strip():
        raise HTTPException(
            status_code=401,
            detail="Empty bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token
