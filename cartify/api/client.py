"""HTTP client for the Cartify REST backend.

Single point of HTTP communication for the bot and the web UI. Requests are
sent with a JSON body and a bearer token when the session has one. Every
call gets a timeout and one retry on network failure; HTTP error statuses
are never retried.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

import httpx

from cartify.config import settings

from .exceptions import (
    ApiError,
    AuthenticationRequired,
    CartifyError,
    InvalidResponse,
    NetworkError,
    NotFound,
    ServerError,
)

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]
UnauthorizedInterceptor = Callable[[], Union[None, Awaitable[None]]]


def _error_message(response: httpx.Response) -> Optional[str]:
    """Pull the backend's own message out of an error response, if any."""
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        return data.get("message") or data.get("error")
    return None


def _parse_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            request = response.request
            raise InvalidResponse(f"Malformed JSON from {request.method} {request.url.path}") from e
    return response.text


class ApiClient:
    """Async Cartify API client.

    Args:
        base_url: Backend root, e.g. https://carttifys-1.onrender.com
        token_provider: Returns the current bearer token (or None)
        clear_credentials: Called on 401 to drop the stored token and user
        timeout: Per-request timeout in seconds
        retries: Extra attempts after a network failure
        transport: Optional httpx transport (used by tests)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token_provider: Optional[TokenProvider] = None,
        clear_credentials: Optional[Callable[[], None]] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = settings.api_timeout if timeout is None else timeout
        self.retries = settings.api_retries if retries is None else max(0, retries)
        self._token_provider = token_provider
        self._clear_credentials = clear_credentials
        self._transport = transport
        self._unauthorized_interceptor: Optional[UnauthorizedInterceptor] = None

    def set_unauthorized_interceptor(self, interceptor: Optional[UnauthorizedInterceptor]) -> None:
        self._unauthorized_interceptor = interceptor

    def _get_async_client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout if timeout is None else timeout,
            transport=self._transport,
        )

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        token = self._token_provider() if self._token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        params: Optional[dict] = None,
        files: Optional[dict] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
    ) -> Any:
        """Send one request and return the parsed JSON (or text) body.

        Raises:
            AuthenticationRequired: On 401, after the session was cleared
            NotFound: On 404
            ServerError: On 5xx
            ApiError: On any other non-success status
            NetworkError: If no response arrived after all attempts
        """
        kwargs: dict[str, Any] = {"params": params, "headers": self._headers()}
        if files:
            kwargs["files"] = files
            if isinstance(body, dict):
                kwargs["data"] = body
        elif isinstance(body, (dict, list)):
            kwargs["json"] = body
        elif body is not None:
            kwargs["content"] = body

        attempts = 1 + (self.retries if retries is None else max(0, retries))
        response = None
        for attempt in range(1, attempts + 1):
            try:
                async with self._get_async_client(timeout) as client:
                    response = await client.request(method, endpoint, **kwargs)
                break
            except httpx.TransportError as e:
                if attempt < attempts:
                    logger.warning("Network error on %s %s (attempt %d/%d): %s", method, endpoint, attempt, attempts, e)
                    continue
                logger.error("Cartify API unavailable: %s %s: %s", method, endpoint, e)
                raise NetworkError() from e

        return await self._handle_response(method, endpoint, response)

    async def _handle_response(self, method: str, endpoint: str, response: httpx.Response) -> Any:
        status = response.status_code
        if 200 <= status < 300:
            return _parse_body(response)

        message = _error_message(response)
        payload = None
        try:
            payload = response.json()
        except ValueError:
            pass

        if status == 401:
            logger.info("401 on %s %s, clearing session", method, endpoint)
            await self._handle_unauthorized()
            raise AuthenticationRequired(message or "Authentication required. Please log in again.", payload)
        if status == 404:
            raise NotFound(message or f"Not found: {endpoint}", payload)
        if status >= 500:
            raise ServerError(status, message or f"Server error ({status}). Please try again later.", payload)
        raise ApiError(status, message or f"HTTP {status}: {response.reason_phrase}", payload)

    async def _handle_unauthorized(self) -> None:
        if self._clear_credentials:
            self._clear_credentials()
        if self._unauthorized_interceptor:
            result = self._unauthorized_interceptor()
            if inspect.isawaitable(result):
                await result
        else:
            logger.info("No unauthorized interceptor registered, redirecting to %s", settings.login_path)

    async def get(self, endpoint: str, params: Optional[dict] = None, **kwargs) -> Any:
        return await self.request("GET", endpoint, params=params, **kwargs)

    async def post(self, endpoint: str, body: Any = None, **kwargs) -> Any:
        return await self.request("POST", endpoint, body=body, **kwargs)

    async def put(self, endpoint: str, body: Any = None, **kwargs) -> Any:
        return await self.request("PUT", endpoint, body=body, **kwargs)

    async def delete(self, endpoint: str, **kwargs) -> Any:
        return await self.request("DELETE", endpoint, **kwargs)

    async def health(self) -> bool:
        """Check /api/health with a short timeout; never raises."""
        try:
            data = await self.request("GET", "/api/health", timeout=settings.health_timeout, retries=0)
        except CartifyError as e:
            logger.warning("Cartify health check failed: %s", e)
            return False
        if isinstance(data, dict):
            if "success" in data:
                return bool(data["success"])
            if "status" in data:
                return str(data["status"]).lower() in ("ok", "healthy", "up")
        return True
