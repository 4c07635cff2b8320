"""
Session endpoints called by the panel embedded in the host board.

The panel reads the current user and an identity token from the host SDK and
forwards both here. Only the verified token decides who the user is; the
server runs the bootstrap pipeline and returns the session plus where to
route the user.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel, Field

from ...config import settings
from ...host.identity import (
    HostBoardContext,
    HostIdentityAdapter,
    HostTokenVerifier,
    email_from_claims,
)
from ...host.sdk import RequestHostSDK
from ...logging import get_logger
from ...service import BridgeService
from ..auth import get_bearer_token, get_bridge_service, get_host_token_verifier

logger = get_logger(__name__)

router = APIRouter()


class BootstrapRequest(BaseModel):
    """Current user as reported by the host SDK."""

    id: str = Field(..., min_length=1, max_length=255, description="Host platform user id")
    name: str | None = Field(default=None, max_length=255, description="Display name")


class SessionUser(BaseModel):
    id: str
    email: str
    name: str
    role: str
    primary_board_id: str | None = None
    is_super_admin: bool = False
    host_user_id: str | None = None
    permissions: dict[str, bool] = Field(default_factory=dict)


class RedirectInfo(BaseModel):
    kind: str
    board_id: str | None = None
    path: str


class SessionResponse(BaseModel):
    """Response model for an established session."""

    user: SessionUser
    secondary_auth_account_id: str = Field(..., description="Auth subsystem account id")
    redirect: RedirectInfo
    linked: bool = Field(..., description="Whether the auth account is linked to the user")
    access_token: str | None = None
    refresh_token: str | None = None
    expires_at: int | None = None
    host_board_id: str | None = Field(default=None, description="Board hosting the panel")


class SignOutResponse(BaseModel):
    status: str


@router.post("/bootstrap", response_model=SessionResponse)
async def bootstrap_session(
    body: BootstrapRequest,
    service: BridgeService = Depends(get_bridge_service),
    verifier: HostTokenVerifier = Depends(get_host_token_verifier),
    x_host_id_token: str | None = Header(None),
    x_host_board_id: str | None = Header(None),
) -> SessionResponse:
    """Resolve the host user into a directory user and an auth subsystem session."""
    claims = verifier.verify_for(x_host_id_token, body.id)

    sdk = RequestHostSDK(
        user_info={"id": body.id, "name": body.name, "email": email_from_claims(claims)},
        id_token=x_host_id_token,
        board_info={"id": x_host_board_id} if x_host_board_id else None,
    )
    adapter = HostIdentityAdapter(
        lambda: sdk,
        timeout=settings.host_sdk_timeout,
        poll_interval=settings.host_sdk_poll_interval,
    )

    session = await service.bootstrap_from_host(adapter)
    board_id = await HostBoardContext(sdk).get_board_id()

    return SessionResponse(**session.to_dict(), host_board_id=board_id)


@router.get("", response_model=SessionResponse)
async def get_session(
    token: str = Depends(get_bearer_token),
    service: BridgeService = Depends(get_bridge_service),
) -> SessionResponse:
    """Re-verify an auth subsystem session and re-read its directory user."""
    session = await service.restore_session(token)
    return SessionResponse(**session.to_dict())


@router.post("/sign-out", response_model=SignOutResponse)
async def sign_out(
    token: str = Depends(get_bearer_token),
    service: BridgeService = Depends(get_bridge_service),
) -> SignOutResponse:
    await service.sign_out(token)
    return SignOutResponse(status="signed_out")
