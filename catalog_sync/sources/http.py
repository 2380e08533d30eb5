"""HTTP session wrapper shared by the Notion and Shopify clients."""

from typing import Any

import requests
import structlog
from requests.exceptions import ConnectionError, Timeout

from catalog_sync.errors import (
    ApiError,
    NotFoundError,
    RateLimitedError,
    UnauthenticatedError,
)
from catalog_sync.utils.retry import RetryPolicy

log = structlog.stdlib.get_logger()

READ_RETRYABLE = (RateLimitedError, ConnectionError, Timeout)
# Mutations are retried only when the server rejected them unapplied (429)
WRITE_RETRYABLE = (RateLimitedError,)


def raise_for_api_status(response: requests.Response, service: str, method: str = "") -> None:
    """Translate an error response into the matching ApiError subclass."""
    status = response.status_code
    if status < 400:
        return

    body = response.text[:500] if response.text else ""
    message = f"{service} API error {status} for {method} {response.url}: {body}"

    if status in (401, 403):
        raise UnauthenticatedError(message, status_code=status, body=body)
    if status == 404:
        raise NotFoundError(message, status_code=status, body=body)
    if status == 429:
        raise RateLimitedError(
            message,
            status_code=status,
            body=body,
            retry_after=_parse_retry_after(response.headers.get("Retry-After")),
        )
    raise ApiError(message, status_code=status, body=body)


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class ApiSession:
    """A requests session bound to one API, with timeouts and transport retries.

    Reads retry on throttling, connection errors and timeouts. Mutations
    retry only on throttling (HTTP 429).
    """

    def __init__(
        self,
        service: str,
        base_url: str,
        headers: dict[str, str],
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        retry_max_delay: float = 60.0,
        session: requests.Session | None = None,
    ):
        self.service = service
        self._base_url = base_url.rstrip("/")
        self._headers = headers
        self._timeout = timeout
        self._retry = RetryPolicy(max_retries, retry_base_delay, retry_max_delay)
        self._session = session or requests.Session()

    def get(self, path: str, params: dict[str, Any] | None = None) -> requests.Response:
        return self._retry.wrap(self._send, READ_RETRYABLE)("GET", path, params=params)

    def query(self, path: str, payload: dict[str, Any]) -> requests.Response:
        """POST a read-only query (e.g. a database query); retried like a GET."""
        return self._retry.wrap(self._send, READ_RETRYABLE)("POST", path, json=payload)

    def post(self, path: str, payload: dict[str, Any]) -> requests.Response:
        return self._mutate("POST", path, payload)

    def put(self, path: str, payload: dict[str, Any]) -> requests.Response:
        return self._mutate("PUT", path, payload)

    def patch(self, path: str, payload: dict[str, Any]) -> requests.Response:
        return self._mutate("PATCH", path, payload)

    def _mutate(self, method: str, path: str, payload: dict[str, Any]) -> requests.Response:
        return self._retry.wrap(self._send, WRITE_RETRYABLE)(method, path, json=payload)

    def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> requests.Response:
        if path.startswith(("http://", "https://")):
            url = path
        else:
            url = f"{self._base_url}/{path.lstrip('/')}"
        log.debug("api_request", service=self.service, method=method, url=url)

        response = self._session.request(
            method,
            url,
            headers=self._headers,
            params=params,
            json=json,
            timeout=self._timeout,
        )
        raise_for_api_status(response, self.service, method)
        return response
