import logging
from typing import Any, Optional

import httpx

from bbe_admin.core.logging import log_external_call

logger = logging.getLogger(__name__)

ADMIN_DATA_PATH = "/api/getAdminData"


class AdminApiError(Exception):
    """Base error for calls to the admin-data API, carries a message fit for the UI."""

    def __init__(self, user_message: str, detail: str = ""):
        super().__init__(detail or user_message)
        self.user_message = user_message
        self.detail = detail


class AdminApiTimeout(AdminApiError):
    def __init__(self, detail: str = ""):
        super().__init__("Request timed out. Please check your API server connection.", detail)


class AdminApiUnavailable(AdminApiError):
    def __init__(self, detail: str = ""):
        super().__init__("Cannot connect to API server. Please check the server is running.", detail)


class AdminApiStatusError(AdminApiError):
    def __init__(self, user_message: str, status_code: int, detail: str = ""):
        super().__init__(user_message, detail)
        self.status_code = status_code


class AdminApiClient:
    """Thin async client over the admin-data CRUD endpoint."""

    def __init__(
        self,
        base_url: str,
        list_timeout: float = 10.0,
        detail_timeout: float = 8.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.list_timeout = list_timeout
        self.detail_timeout = detail_timeout
        self._transport = transport

    async def _request(
        self,
        method: str,
        *,
        timeout: float,
        failure: str,
        params: Optional[dict[str, str]] = None,
        json: Any = None,
    ) -> Any:
        url = f"{self.base_url}{ADMIN_DATA_PATH}"
        log_external_call(logger, "admin-api", f"{method} {url} params={params or {}}")

        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            try:
                resp = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers={"Content-Type": "application/json"},
                )
            except httpx.TimeoutException as e:
                raise AdminApiTimeout(str(e)) from e
            except httpx.TransportError as e:
                raise AdminApiUnavailable(str(e)) from e

        if resp.is_error:
            raise AdminApiStatusError(
                _error_message(resp, failure), resp.status_code, f"HTTP error! status: {resp.status_code}"
            )

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise AdminApiError(failure, f"Invalid JSON from admin API: {e}") from e

    async def list_clients(self) -> list[dict[str, Any]]:
        data = await self._request(
            "GET",
            timeout=self.list_timeout,
            failure="Failed to load clients. Please try again.",
        )
        return data if isinstance(data, list) else []

    async def get_client(self, cuid: str) -> dict[str, Any]:
        data = await self._request(
            "GET",
            timeout=self.detail_timeout,
            failure="Failed to load client preferences. Please try again.",
            params={"clientCuid": cuid},
        )
        if not isinstance(data, dict):
            raise AdminApiError(
                "Failed to load client preferences. Please try again.",
                f"Unexpected payload for client {cuid}",
            )
        return data

    async def create_client(self, payload: dict[str, Any]) -> dict[str, Any]:
        data = await self._request(
            "POST", timeout=self.detail_timeout, failure="Failed to create client", json=payload
        )
        return data or {}

    async def update_client(self, cuid: str, data: dict[str, Any]) -> dict[str, Any]:
        # Whole-record PUT, last write wins
        result = await self._request(
            "PUT",
            timeout=self.detail_timeout,
            failure="Failed to update client data",
            json={"clientCuid": cuid, "data": data},
        )
        return result if isinstance(result, dict) else {}

    async def delete_client(self, cuid: str) -> None:
        await self._request(
            "DELETE",
            timeout=self.detail_timeout,
            failure="Failed to delete client",
            params={"clientCuid": cuid},
        )


def _error_message(resp: httpx.Response, fallback: str) -> str:
    try:
        body = resp.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return fallback
