"""Access tokens for a service account acting on behalf of a user."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from timeoffsync.domain.errors import RequestFailed

if TYPE_CHECKING:
    from timeoffsync.config.google import GoogleCalendarConfig


class TokenSource(Protocol):
    async def token(self) -> str: ...


class DelegatedTokenSource:
    """Refreshes the delegated credentials off the event loop when they expire."""

    def __init__(self, credentials: service_account.Credentials) -> None:
        self._credentials = credentials

    @classmethod
    def for_user(cls, config: GoogleCalendarConfig, email: str) -> DelegatedTokenSource:
        credentials = service_account.Credentials.from_service_account_info(  # pyright: ignore[reportUnknownMemberType]
            config.service_account_info,
            scopes=list(config.scopes),
            subject=email,
        )
        return cls(credentials)

    async def token(self) -> str:
        if not self._credentials.valid:
            try:
                await asyncio.to_thread(self._credentials.refresh, Request())
            except GoogleAuthError as exc:
                raise RequestFailed(f"Failed to obtain a calendar token: {exc}") from exc
        token = self._credentials.token
        if not token:
            raise RequestFailed("No calendar token received")
        return str(token)


__all__ = ["DelegatedTokenSource", "TokenSource"]
