from __future__ import annotations

import logging

import httpx

from .constants import LOGGER, MAX_LOGGED_BODY_CHARS
from .errors import (
    AuthenticationExpiredError,
    ClientError,
    ForbiddenError,
    NetworkUnavailableError,
    RateLimitedError,
    RequestTimeoutError,
    ServerError,
    UnknownClientError,
    ValidationFailedError,
    flatten_field_errors,
)
from .rate_limit import parse_retry_after

GENERIC_UNKNOWN_MESSAGE = "An error occurred. Please try again."


def _read_json(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return None


def _is_field_map(payload) -> bool:
    if not isinstance(payload, dict) or not payload:
        return False
    if "detail" in payload:
        return False
    return any(isinstance(value, (list, str)) for value in payload.values())


def _unknown_message(status_code: int | None, detail, *, production: bool) -> str:
    if isinstance(detail, str) and detail.strip():
        return detail.strip()
    if production:
        return GENERIC_UNKNOWN_MESSAGE
    if status_code is None:
        return "Request failed."
    return f"Request failed with status {status_code}."


def normalize_error_response(response: httpx.Response, *, production: bool = False) -> ClientError:
    """Map a non-2xx response to exactly one error category.

    The result depends only on the status code and body, so the same
    backend error always normalizes the same way regardless of endpoint.
    """
    status = response.status_code
    if status == 429:
        return RateLimitedError(
            parse_retry_after(response.headers.get("retry-after")),
            status_code=status,
        )
    if status == 401:
        return AuthenticationExpiredError(status_code=status)
    if status == 403:
        return ForbiddenError(status_code=status)
    if status >= 500:
        return ServerError(status_code=status)

    payload = _read_json(response)
    if 400 <= status < 500 and _is_field_map(payload):
        message = flatten_field_errors(payload)
        return ValidationFailedError(payload, message or None, status_code=status)

    detail = payload.get("detail") if isinstance(payload, dict) else None
    return UnknownClientError(
        _unknown_message(status, detail, production=production),
        status_code=status,
    )


def normalize_transport_error(error: httpx.HTTPError, *, production: bool = False) -> ClientError:
    if isinstance(error, httpx.TimeoutException):
        return RequestTimeoutError()
    if isinstance(error, httpx.TransportError):
        return NetworkUnavailableError()
    if production:
        return UnknownClientError(GENERIC_UNKNOWN_MESSAGE)
    return UnknownClientError(str(error) or None)


def build_log_hooks(logger: logging.Logger | None = None) -> dict[str, list]:
    log = logger or LOGGER

    async def log_request(request: httpx.Request) -> None:
        log.info("Job board API request %s %s", request.method, request.url)

    async def log_response(response: httpx.Response) -> None:
        log.info(
            "Job board API response %s %s -> %s",
            response.request.method,
            response.request.url,
            response.status_code,
        )
        if response.status_code >= 400:
            body = await response.aread()
            text = body.decode("utf-8", errors="replace")
            if len(text) > MAX_LOGGED_BODY_CHARS:
                text = text[:MAX_LOGGED_BODY_CHARS] + "...<truncated>"
            log.warning("Job board API error body: %s", text)

    return {"request": [log_request], "response": [log_response]}
