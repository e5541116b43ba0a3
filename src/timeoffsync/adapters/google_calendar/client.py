"""HTTP client for the Google Calendar API v3."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
import pydantic

from timeoffsync.adapters.http_resilience import ResilientClient
from timeoffsync.domain.errors import RequestFailed
from timeoffsync.domain.ports.calendar import CalendarClient, CalendarClientFactory

from .credentials import DelegatedTokenSource
from .schema import EventPayload, EventsPage
from .translator import build_event_body, build_patch_body, translate_event

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from datetime import datetime
    from types import TracebackType

    from timeoffsync.config.google import GoogleCalendarConfig
    from timeoffsync.config.http_resilience import ResilienceConfig
    from timeoffsync.domain.model import CalendarEventRecord, EventChanges, NewCalendarEvent

    from .credentials import TokenSource

log = getLogger(__name__)

MAX_RESULTS = 2500


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _events_path(calendar_id: str, event_id: str | None = None) -> str:
    path = f"/calendars/{quote(calendar_id, safe='')}/events"
    if event_id is not None:
        path = f"{path}/{quote(event_id, safe='')}"
    return path


class GoogleCalendarClient:
    """One user's calendar, reached through a shared HTTP client."""

    def __init__(self, client: ResilientClient, tokens: TokenSource, *, user: str) -> None:
        self._client = client
        self._tokens = tokens
        self.user = user

    async def list_events(
        self,
        calendar_id: str,
        window_start: datetime,
        window_end: datetime,
    ) -> list[CalendarEventRecord]:
        events: list[CalendarEventRecord] = []
        page_token: str | None = None
        while True:
            params: dict[str, str | int] = {
                "timeMin": window_start.isoformat(),
                "timeMax": window_end.isoformat(),
                "singleEvents": "true",
                "showDeleted": "true",
                "maxResults": MAX_RESULTS,
            }
            if page_token:
                params["pageToken"] = page_token
            payload = await self._request("GET", _events_path(calendar_id), params=params)
            try:
                page = EventsPage.model_validate(payload)
            except pydantic.ValidationError as exc:
                raise RequestFailed(f"Unreadable event list for {self.user}: {exc}") from exc
            for item in page.items:
                try:
                    event = EventPayload.model_validate(item)
                except pydantic.ValidationError as exc:
                    log.warning("Skipping unreadable event of %s: %s", self.user, exc)
                    continue
                record = translate_event(event)
                if record is None:
                    log.debug("Skipping event %s of %s without start/end", event.id, self.user)
                    continue
                events.append(record)
            page_token = page.next_page_token
            if not page_token:
                return events

    async def insert_event(
        self,
        calendar_id: str,
        event: NewCalendarEvent,
    ) -> CalendarEventRecord:
        payload = await self._request(
            "POST", _events_path(calendar_id), json=build_event_body(event)
        )
        return self._translate(payload)

    async def update_event(
        self,
        calendar_id: str,
        event_id: str,
        changes: EventChanges,
    ) -> CalendarEventRecord:
        payload = await self._request(
            "PATCH", _events_path(calendar_id, event_id), json=build_patch_body(changes)
        )
        return self._translate(payload)

    def _translate(self, payload: Any) -> CalendarEventRecord:
        try:
            record = translate_event(EventPayload.model_validate(payload))
        except pydantic.ValidationError as exc:
            raise RequestFailed(f"Calendar returned an unreadable event: {exc}") from exc
        if record is None:
            raise RequestFailed("Calendar returned an event without start/end")
        return record

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str | int] | None = None,
        json: object = None,
    ) -> Any:
        token = await self._tokens.token()
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise RequestFailed(f"Calendar request {method} {path} failed: {exc}") from exc
        if response.is_error:
            raise RequestFailed(
                f"Calendar request {method} {path} for {self.user} failed "
                f"with code {response.status_code}",
                status=response.status_code,
                body=response.text,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise RequestFailed(f"Unreadable calendar response for {method} {path}") from exc


class GoogleCalendarClientFactory:
    """Impersonates each user through domain-wide delegation."""

    def __init__(
        self,
        config: GoogleCalendarConfig,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] = _default_client_factory,
        token_source_factory: Callable[[str], TokenSource] | None = None,
    ) -> None:
        self.config = config
        self._client = client_factory(config.resilience)
        self._token_source_factory = token_source_factory or (
            lambda email: DelegatedTokenSource.for_user(config, email)
        )

    async def __aenter__(self) -> GoogleCalendarClientFactory:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def for_user(self, email: str) -> GoogleCalendarClient:
        tokens = self._token_source_factory(email)
        # fail here rather than on the first call if impersonation is not allowed
        await tokens.token()
        return GoogleCalendarClient(self._client, tokens, user=email)


if TYPE_CHECKING:
    _client_check: type[CalendarClient] = GoogleCalendarClient
    _factory_check: type[CalendarClientFactory] = GoogleCalendarClientFactory
