"""HTTP client for the marketplace REST API."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar
from uuid import uuid4

import httpx
from pydantic import BaseModel, ValidationError

from mentorbook.config import settings

logger = logging.getLogger(__name__)

# Returns the current bearer token, or None for anonymous calls.
TokenProvider = Callable[[], Optional[str]]

ModelT = TypeVar("ModelT", bound=BaseModel)


class ApiError(Exception):
    """Base error for API request failures."""


class ApiConnectionError(ApiError):
    """Raised when the API cannot be reached or the request times out."""


class ApiAuthError(ApiError):
    """Raised when the API rejects the credentials."""


class ApiNotFoundError(ApiError):
    """Raised when the requested resource does not exist."""


class ApiRequestError(ApiError):
    """Raised for other HTTP errors and ``success: false`` envelopes."""

    def __init__(self, message: str, code: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


def static_token(token: Optional[str]) -> TokenProvider:
    """Token provider that always returns the same token."""

    def provider() -> Optional[str]:
        return token

    return provider


def anonymous() -> Optional[str]:
    return None


class ApiClient:
    """Thin async client that unwraps the API's ``{success, code, message, data}`` envelope."""

    def __init__(
        self,
        token_provider: TokenProvider = anonymous,
        http: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.token_provider = token_provider
        self.http = http or httpx.AsyncClient(
            base_url=base_url or settings.api.base_url,
            timeout=httpx.Timeout(timeout or settings.api.timeout_seconds),
            headers={"Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return await self.call("GET", path, params=params)

    async def post(self, path: str, *, json: dict[str, Any] | None = None) -> Any:
        return await self.call("POST", path, json=json)

    async def put(self, path: str, *, json: dict[str, Any] | None = None) -> Any:
        return await self.call("PUT", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.call("DELETE", path)

    async def call(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Issue a request and return the envelope's ``data`` member."""
        headers = {"X-Request-ID": str(uuid4())}
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self.http.request(
                method, path, params=params, json=json, headers=headers
            )
        except httpx.TimeoutException as exc:
            raise ApiConnectionError(f"api_timeout: Request to {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise ApiConnectionError(f"api_connection_failed: {exc}") from exc

        body = _json_or_none(response)
        code = str(body.get("code", "")) if isinstance(body, dict) else ""
        message = body.get("message") if isinstance(body, dict) else None

        if response.status_code in {401, 403}:
            raise ApiAuthError(message or "api_auth_failed")
        if response.status_code == 404:
            raise ApiNotFoundError(message or "api_not_found")
        if response.status_code >= 400:
            raise ApiRequestError(
                message or f"api_error_{response.status_code}",
                code=code,
                status_code=response.status_code,
            )

        if not isinstance(body, dict):
            return None
        if body.get("success") is False:
            raise ApiRequestError(
                message or "api_request_rejected",
                code=code,
                status_code=response.status_code,
            )
        logger.debug("%s %s -> %s", method, path, response.status_code)
        return body.get("data")


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def parse_model(model: type[ModelT], data: Any, what: str) -> ModelT:
    """Validate a response payload, reporting a malformed one as ApiRequestError."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        logger.warning("Malformed %s in API response: %s", what, exc)
        raise ApiRequestError(
            f"Malformed {what} in API response ({exc.error_count()} errors)",
            code="invalid_response",
        ) from exc
