"""Host platform SDK boundary and availability detection."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..logging import get_logger

logger = get_logger(__name__)


class HostSDK(Protocol):
    """Capabilities the embedding host exposes to the application."""

    async def get_user_info(self) -> dict[str, Any] | None:
        """
        Return the user currently acting on the board: ``{id, name, email?}``.

        This is the current-user primitive. It must never be substituted by the
        installer-scoped primitives, which describe whoever installed the app.
        """
        ...

    async def get_id_token(self) -> str | None:
        """Issue an identity token for the current user."""
        ...

    async def get_board_info(self) -> dict[str, Any] | None:
        """Return information about the board the app is running in."""
        ...


SdkLocator = Callable[[], HostSDK | None]


async def wait_for_sdk(
    locator: SdkLocator, timeout: float = 3.0, poll_interval: float = 0.1
) -> HostSDK | None:
    """
    Poll ``locator`` until it yields an SDK or ``timeout`` seconds have passed.

    Returns None when the SDK never became available.
    """
    sdk = locator()
    if sdk is not None:
        return sdk

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        await asyncio.sleep(poll_interval)
        sdk = locator()
        if sdk is not None:
            return sdk

    logger.warning("Host SDK not available", timeout=timeout)
    return None


@dataclass
class RequestHostSDK:
    """
    HostSDK built from the values the embedded panel forwards with a request.

    The panel runs inside the host and calls the SDK there; the server only
    sees the results.
    """

    user_info: dict[str, Any] | None
    id_token: str | None = None
    board_info: dict[str, Any] | None = field(default=None)

    async def get_user_info(self) -> dict[str, Any] | None:
        return self.user_info

    async def get_id_token(self) -> str | None:
        return self.id_token

    async def get_board_info(self) -> dict[str, Any] | None:
        return self.board_info
