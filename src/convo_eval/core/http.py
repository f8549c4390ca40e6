"""Base async HTTP client for the platform's edge functions and REST endpoints."""

from typing import Any

import httpx


class ServiceResponse:
    """Status code plus decoded JSON body (or the raw text under ``raw``)."""

    def __init__(self, status: int, body: Any) -> None:
        self.status = status
        self.body = body

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def error_text(self) -> str:
        if isinstance(self.body, dict):
            error = self.body.get("error")
            if error is not None:
                return str(error)
        return ""


class ServiceClient:
    """Thin wrapper over httpx.AsyncClient carrying base URL and auth headers.

    A client may be injected (tests pass one built on httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        bearer_token: str | None = None,
        timeout: float = 90.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._bearer = bearer_token if bearer_token is not None else api_key
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._bearer}",
        }
        if extra:
            headers.update(extra)
        return headers

    async def post(
        self,
        path: str,
        payload: Any,
        request_id: str | None = None,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> ServiceResponse:
        """POST JSON and return the response without raising on HTTP errors."""
        extra = dict(headers or {})
        if request_id:
            extra["x-request-id"] = request_id
        response = await self._client.post(
            f"{self.base_url}{path}",
            json=payload,
            headers=self._headers(extra),
            params=params,
        )
        return ServiceResponse(status=response.status_code, body=_decode(response))

    async def request(
        self,
        method: str,
        path: str,
        payload: Any = None,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> ServiceResponse:
        response = await self._client.request(
            method,
            f"{self.base_url}{path}",
            json=payload,
            params=params,
            headers=self._headers(headers),
        )
        return ServiceResponse(status=response.status_code, body=_decode(response))

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ServiceClient":
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text}
