"""
Async client for division driver lists served by Google Apps Script web apps.
"""

import asyncio
from typing import Any, List, Optional

import aiohttp

from .drivers import DriverRecord


class DivisionFetchError(Exception):
    """Base class for driver list fetch failures."""


class TransportError(DivisionFetchError):
    """Network failure, timeout or non-2xx response."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class MalformedPayloadError(DivisionFetchError):
    """Body isn't JSON, isn't a driver list, or carries an error field."""


def parse_payload(payload: Any) -> List[DriverRecord]:
    """
    Turn a decoded response body into driver records.

    Args:
        payload: Decoded JSON body.

    Returns:
        Driver records in payload order.

    Raises:
        MalformedPayloadError: If the payload reports an error or isn't a
            list of objects.
    """
    if isinstance(payload, dict):
        if payload.get("error"):
            raise MalformedPayloadError(str(payload["error"]))
        raise MalformedPayloadError(
            "Failed to load driver data: expected a list of drivers"
        )

    if not isinstance(payload, list):
        raise MalformedPayloadError(
            "Failed to load driver data: expected a list of drivers"
        )

    records = []
    for index, row in enumerate(payload):
        if not isinstance(row, dict):
            raise MalformedPayloadError(
                f"Failed to load driver data: row {index} is not an object"
            )
        records.append(DriverRecord.from_dict(row))
    return records


class DivisionClient:
    """Fetches a division's driver list over HTTP."""

    def __init__(self, timeout: float = 15.0):
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure aiohttp session exists."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def fetch_drivers(self, endpoint: str) -> List[DriverRecord]:
        """
        Fetch and validate a division's driver list.

        Args:
            endpoint: Apps Script web app URL.

        Returns:
            Driver records in sheet order.

        Raises:
            TransportError: On timeout, connection failure or non-2xx status.
            MalformedPayloadError: On a non-JSON body, a payload that isn't a
                driver list, or an ``{"error": ...}`` payload.
        """
        print(f"[FETCH] GET {endpoint}")
        try:
            payload = await self._make_request(endpoint)
        except asyncio.TimeoutError as e:
            print(f"[FETCH] Timeout after {self.timeout}s")
            raise TransportError(
                f"Failed to load driver data: request timed out after {self.timeout}s"
            ) from e
        except aiohttp.ClientResponseError as e:
            print(f"[FETCH] HTTP error {e.status}")
            raise TransportError(
                f"Failed to load driver data: HTTP error! status: {e.status}",
                status=e.status,
            ) from e
        except aiohttp.ClientError as e:
            print(f"[FETCH] Connection error: {e}")
            raise TransportError(f"Failed to load driver data: {e}") from e
        except ValueError as e:
            print(f"[FETCH] Invalid JSON: {e}")
            raise MalformedPayloadError(
                "Failed to load driver data: response was not valid JSON"
            ) from e

        records = parse_payload(payload)
        print(f"[FETCH] Loaded {len(records)} drivers")
        return records

    async def _make_request(self, endpoint: str) -> Any:
        """Make the GET request and decode the body as JSON."""
        session = await self._ensure_session()

        # Apps Script answers with a redirect to googleusercontent.com
        async with session.get(endpoint, allow_redirects=True) as resp:
            resp.raise_for_status()
            # Apps Script doesn't always send application/json
            return await resp.json(content_type=None)

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "DivisionClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
