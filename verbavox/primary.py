"""Client for the hosted primary store and classification of its errors."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union

import httpx

from .models import Config


class PrimaryStoreError(RuntimeError):
    """Raised when the primary store rejects a request or cannot be reached."""

    def __init__(self, code: Optional[str], message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ErrorKind(str, Enum):
    SCHEMA_MISSING = "schema_missing"
    PERMISSION_DENIED = "permission_denied"
    UNKNOWN = "unknown"


# Missing tables, missing rows and malformed ids all mean "nothing stored here".
_SCHEMA_CODES = {"42P01", "PGRST205", "PGRST116", "22P02"}
_SCHEMA_PHRASES = ("does not exist", "could not find the table", "no rows", "invalid input syntax")
_PERMISSION_CODES = {"42501", "401", "403", "PGRST301"}
_PERMISSION_PHRASES = ("permission denied", "row-level security", "not authorized")


def classify_error(error: Union[PrimaryStoreError, Exception]) -> ErrorKind:
    code = str(getattr(error, "code", "") or "")
    message = str(getattr(error, "message", "") or error).lower()

    if code in _SCHEMA_CODES or any(phrase in message for phrase in _SCHEMA_PHRASES):
        return ErrorKind.SCHEMA_MISSING
    if code in _PERMISSION_CODES or any(phrase in message for phrase in _PERMISSION_PHRASES):
        return ErrorKind.PERMISSION_DENIED
    return ErrorKind.UNKNOWN


def is_soft_error(error: Exception) -> bool:
    return classify_error(error) is not ErrorKind.UNKNOWN


class PrimaryStore(Protocol):
    def insert(self, table: str, record: Mapping[str, Any]) -> None:
        """Insert one row into ``table``."""

    def select(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return rows of ``table`` matching every equality filter."""


class RestPrimaryStore:
    """Talks to a PostgREST-style endpoint under ``<base_url>/rest/v1``."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        verify_ssl: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        headers: Dict[str, str] = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.Client(
            base_url=base_url.rstrip("/") + "/rest/v1",
            headers=headers,
            timeout=timeout,
            verify=verify_ssl,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: Config) -> Optional["RestPrimaryStore"]:
        if not config.server_url:
            return None
        return cls(
            config.server_url,
            api_key=config.server_token,
            timeout=config.api_timeout,
            verify_ssl=config.verify_ssl,
        )

    def close(self) -> None:
        self._client.close()

    def insert(self, table: str, record: Mapping[str, Any]) -> None:
        self._request("POST", f"/{table}", json=dict(record), headers={"Prefer": "return=minimal"})

    def select(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, str] = {"select": "*"}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"
        if order:
            column, _, direction = order.partition(" ")
            params["order"] = f"{column}.{direction or 'asc'}"
        if limit is not None:
            params["limit"] = str(limit)
        response = self._request("GET", f"/{table}", params=params)
        rows = response.json()
        if not isinstance(rows, list):
            raise PrimaryStoreError(None, f"Unexpected response for {table}: expected a list")
        return rows

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise _error_from_response(exc.response) from exc
        except httpx.HTTPError as exc:
            raise PrimaryStoreError(None, f"Request to primary store failed: {exc}") from exc
        return response


def _error_from_response(response: httpx.Response) -> PrimaryStoreError:
    code: Optional[str] = str(response.status_code)
    message = response.text or response.reason_phrase
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        code = str(payload.get("code") or code)
        message = payload.get("message") or message
    return PrimaryStoreError(code, message)
