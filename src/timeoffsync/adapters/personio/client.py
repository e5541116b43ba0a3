"""HTTP client for the Personio API v1."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
import pydantic

from timeoffsync.adapters.http_resilience import ResilientClient
from timeoffsync.domain.errors import InvalidTimestamp, RequestFailed, ValidationError
from timeoffsync.domain.ports.hr import HrClient
from timeoffsync.domain.time_windows import utcnow

from .schema import (
    AuthResponse,
    EmployeePayload,
    PersonioResponse,
    TimeOffPeriodPayload,
    TimeOffTypePayload,
)
from .translator import (
    build_time_off_form,
    translate_employee,
    translate_time_off,
    translate_time_off_type,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from datetime import date
    from types import TracebackType

    from timeoffsync.config.http_resilience import ResilienceConfig
    from timeoffsync.config.personio import PersonioConfig
    from timeoffsync.domain.model import (
        Employee,
        TimeOffDraft,
        TimeOffRecord,
        TimeOffTypeDefinition,
    )
    from timeoffsync.domain.time_windows import Clock

log = getLogger(__name__)

PAGE_SIZE = 200
# rejected payloads; anything else is a plain request failure
_VALIDATION_STATUSES = frozenset({400, 422})


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class PersonioClient:
    """Authenticated access to employees, absence types and absences.

    Personio rotates the bearer token: every response may carry the token to
    use for the next request in its ``Authorization`` header.
    """

    def __init__(
        self,
        config: PersonioConfig,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] = _default_client_factory,
        clock: Clock = utcnow,
    ) -> None:
        self.config = config
        self._client = client_factory(config.resilience)
        self._clock = clock
        self._token: str | None = None

    async def __aenter__(self) -> PersonioClient:
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

    async def list_absence_types(self) -> list[TimeOffTypeDefinition]:
        items = await self._get_all("/company/time-off-types")
        return _translate_each(
            items,
            lambda item: translate_time_off_type(TimeOffTypePayload.model_validate(item)),
            "absence type",
        )

    async def list_employees(self) -> list[Employee]:
        items = await self._get_all("/company/employees")
        return _translate_each(
            items, lambda item: translate_employee(EmployeePayload.model_validate(item)), "employee"
        )

    async def list_time_offs(
        self,
        window_start: date,
        window_end: date,
        employee_id: int | None = None,
    ) -> list[TimeOffRecord]:
        params: dict[str, str | int] = {
            "start_date": window_start.isoformat(),
            "end_date": window_end.isoformat(),
        }
        if employee_id is not None:
            params["employees[]"] = employee_id
        items = await self._get_all("/company/time-offs", params)
        now = self._clock()
        return _translate_each(
            items,
            lambda item: translate_time_off(TimeOffPeriodPayload.model_validate(item), now=now),
            "time-off",
        )

    async def create_time_off(self, draft: TimeOffDraft) -> TimeOffRecord:
        document = await self._request(
            "POST", "/company/time-offs", data=build_time_off_form(draft)
        )
        if not isinstance(document.data, dict):
            raise RequestFailed("Personio did not return the created time-off")
        try:
            return translate_time_off(
                TimeOffPeriodPayload.model_validate(document.data), now=self._clock()
            )
        except (InvalidTimestamp, pydantic.ValidationError) as exc:
            raise RequestFailed(f"Personio returned an unusable time-off: {exc}") from exc

    async def delete_time_off(self, time_off_id: int) -> None:
        await self._request("DELETE", f"/company/time-offs/{time_off_id}")

    async def _get_all(
        self,
        path: str,
        params: Mapping[str, str | int] | None = None,
    ) -> list[Any]:
        items: list[Any] = []
        offset = 0
        while True:
            page_params = {**(params or {}), "limit": PAGE_SIZE, "offset": offset}
            document = await self._request("GET", path, params=page_params)
            data = document.data
            if not isinstance(data, list):
                raise RequestFailed(f"Response for {path} from Personio doesn't contain a list")
            page: list[Any] = data
            items.extend(page)
            if len(page) < PAGE_SIZE:
                return items
            metadata = document.metadata
            if metadata is not None and metadata.total_elements is not None:
                if len(items) >= metadata.total_elements:
                    return items
            offset += len(page)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str | int] | None = None,
        data: Mapping[str, str] | None = None,
    ) -> PersonioResponse:
        response = await self._send(method, path, params=params, data=data)
        if response.status_code == httpx.codes.UNAUTHORIZED:
            log.debug("Personio rejected the access token, re-authenticating")
            self._token = None
            response = await self._send(method, path, params=params, data=data)

        if response.status_code in _VALIDATION_STATUSES and method == "POST":
            raise ValidationError(
                f"Personio rejected {method} {path}: {_error_message(response)}",
                status=response.status_code,
                body=response.text,
            )
        if response.is_error:
            raise RequestFailed(
                f"Personio request {method} {path} failed with code {response.status_code}",
                status=response.status_code,
                body=response.text,
            )

        try:
            document = PersonioResponse.model_validate(response.json())
        except ValueError as exc:
            raise RequestFailed(
                f"Unreadable response for {method} {path} from Personio",
                status=response.status_code,
            ) from exc
        if not document.success:
            message = document.error.message if document.error else None
            raise RequestFailed(
                f"Error response for {method} {path} from Personio: {message or 'unknown error'}",
                status=response.status_code,
                body=response.text,
            )
        return document

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str | int] | None,
        data: Mapping[str, str] | None,
    ) -> httpx.Response:
        token = self._token or await self._authenticate()
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                data=data,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise RequestFailed(f"Personio request {method} {path} failed: {exc}") from exc
        self._rotate_token(response)
        return response

    async def _authenticate(self) -> str:
        try:
            response = await self._client.post(
                "/auth",
                data={
                    "client_id": self.config.client_id,
                    "client_secret": self.config.client_secret,
                },
            )
        except httpx.HTTPError as exc:
            raise RequestFailed(f"Personio authentication failed: {exc}") from exc
        if response.is_error:
            raise RequestFailed(
                f"Personio authentication failed with code {response.status_code}",
                status=response.status_code,
            )
        try:
            document = AuthResponse.model_validate(response.json())
        except ValueError as exc:
            raise RequestFailed("Unreadable authentication response from Personio") from exc
        if not document.success or document.data is None:
            raise RequestFailed("No token received from Personio", status=response.status_code)
        self._token = document.data.token
        return self._token

    def _rotate_token(self, response: httpx.Response) -> None:
        header = response.headers.get("authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() == "bearer" and token:
            self._token = token


def _error_message(response: httpx.Response) -> str:
    try:
        document = PersonioResponse.model_validate(response.json())
    except ValueError:
        return response.text or str(response.status_code)
    if document.error and document.error.message:
        return document.error.message
    return str(response.status_code)


T = TypeVar("T")


def _translate_each(
    items: Iterable[Any], translate: Callable[[Any], T], kind: str
) -> list[T]:
    records: list[T] = []
    for item in items:
        try:
            records.append(translate(item))
        except (InvalidTimestamp, pydantic.ValidationError) as exc:
            log.warning("Skipping unusable Personio %s: %s", kind, exc)
    return records


if TYPE_CHECKING:
    _client_check: type[HrClient] = PersonioClient
