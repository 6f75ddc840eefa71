from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import Any, Callable

import httpx

from auth.models import CredentialPair
from auth.refresh import TokenRefreshError, refresh_access_token
from auth.token_store import MemoryTokenStore, TokenStore

from .constants import (
    APP_VERSION,
    CSRF_HEADER,
    DEFAULT_API_VERSION,
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT_SECONDS,
    HTTP_METHODS,
    LOGGER,
    REFRESH_PATH,
)
from .errors import AuthenticationExpiredError, RateLimitedError, UnknownClientError
from .http import build_log_hooks, normalize_error_response, normalize_transport_error
from .models import PendingRequest, RequestState
from .rate_limit import RateLimitWindow, parse_retry_after

RESPONSE_TYPES = {"json", "bytes", "text"}


def decode_body(response: httpx.Response, response_type: str = "json"):
    if response_type not in RESPONSE_TYPES:
        raise ValueError(f"Unsupported response_type {response_type!r}.")
    if response_type == "bytes":
        return response.content
    if response_type == "text":
        return response.text
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as error:
        raise UnknownClientError(
            "Received an invalid response from the server.",
            status_code=response.status_code,
        ) from error


def _retrieve_refresh_outcome(task: asyncio.Future) -> None:
    # Waiters may all be cancelled; mark a failed shared refresh as seen.
    if not task.cancelled():
        task.exception()


class ApiClient:
    """Authorized access to the job board backend.

    Owns the credential pair and the rate-limit window. Every call goes
    through :meth:`request`, which attaches the bearer token, refuses to
    send while a server backoff is active, recovers once from an expired
    access token, and turns every other failure into a ``ClientError``.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        token_store: TokenStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        csrf_token_fn: Callable[[], str | None] | None = None,
        on_authentication_expired: Callable[[], Any] | None = None,
        refresh_path: str = REFRESH_PATH,
        production: bool = False,
        coalesce_refresh: bool = False,
        debug: bool = False,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ) -> None:
        self.root_url = base_url.rstrip("/")
        self.base_url = f"{self.root_url}/api/{api_version.strip('/')}"
        self.production = production
        self._token_store = token_store or MemoryTokenStore()
        self._credentials: CredentialPair | None = None
        # Set once the backing store has been read or superseded.
        self._restored = False
        self._rate_limit = RateLimitWindow(clock=clock)
        self._csrf_token_fn = csrf_token_fn
        self._on_authentication_expired = on_authentication_expired
        self._refresh_url = self.url_for(refresh_path)
        self._coalesce_refresh = coalesce_refresh
        self._refresh_task: asyncio.Future | None = None
        self._logger = logger or LOGGER
        self._http = httpx.AsyncClient(
            headers={
                "Accept": "application/json",
                "User-Agent": f"jobboard-client/{APP_VERSION}",
            },
            timeout=timeout,
            transport=transport,
            event_hooks=build_log_hooks(self._logger) if debug else None,
        )

    async def __aenter__(self) -> "ApiClient":
        await self._ensure_restored()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def rate_limit(self) -> RateLimitWindow:
        return self._rate_limit

    @property
    def credentials(self) -> CredentialPair | None:
        return self._credentials

    def url_for(self, path: str, *, versioned: bool = True) -> str:
        if path.startswith(("http://", "https://")):
            return path
        prefix = self.base_url if versioned else self.root_url
        return f"{prefix}/{path.lstrip('/')}"

    # -- credentials -----------------------------------------------------------

    async def set_credentials(self, access_token: str, refresh_token: str | None) -> None:
        if not access_token:
            raise ValueError("access_token must be a non-empty string.")
        await self._store_credentials(
            CredentialPair(access_token=access_token, refresh_token=refresh_token or None)
        )

    async def clear_credentials(self) -> None:
        self._credentials = None
        self._restored = True
        await self._token_store.clear()
        self._logger.info("Cleared held credentials")

    async def restore_credentials(self) -> bool:
        self._credentials = await self._token_store.get()
        self._restored = True
        return self.is_authenticated()

    def is_authenticated(self) -> bool:
        """True iff an access token is held in memory or in the backing store."""
        if not self._restored:
            stored = self._token_store.peek()
            if stored is not None:
                self._credentials = stored
                self._restored = True
        return bool(self._credentials and self._credentials.access_token)

    async def _ensure_restored(self) -> None:
        if self._restored:
            return
        stored = await self._token_store.get()
        if not self._restored:
            self._credentials = stored
            self._restored = True

    async def _store_credentials(self, credentials: CredentialPair) -> None:
        self._credentials = credentials
        self._restored = True
        await self._token_store.set(credentials)

    async def _expire_credentials(self, reason: str) -> None:
        had_credentials = self._credentials is not None
        self._logger.warning("Authentication expired: %s", reason)
        await self.clear_credentials()
        if had_credentials and self._on_authentication_expired is not None:
            result = self._on_authentication_expired()
            if inspect.isawaitable(result):
                await result

    # -- requests --------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        *,
        params=None,
        json=None,
        data=None,
        files=None,
        content=None,
        headers: dict[str, str] | None = None,
        timeout=httpx.USE_CLIENT_DEFAULT,
        versioned: bool = True,
        authenticated: bool = True,
        refresh_on_401: bool = True,
    ) -> httpx.Response:
        """Send one call to the backend and return the 2xx response.

        ``files`` must be re-readable (bytes rather than open file handles)
        for the body to survive a replay after a token refresh.
        """
        if method.lower() not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method {method!r}.")
        pending = PendingRequest(
            method=method.upper(),
            url=self.url_for(path, versioned=versioned),
            params=params,
            headers=dict(headers or {}),
            json=json,
            data=data,
            files=files,
            content=content,
            timeout=timeout,
            authenticated=authenticated,
            refresh_on_401=refresh_on_401 and authenticated,
        )
        return await self._dispatch(pending)

    async def fetch(self, method: str, path: str, *, response_type: str = "json", **kwargs):
        response = await self.request(method, path, **kwargs)
        return decode_body(response, response_type)

    async def _dispatch(self, pending: PendingRequest) -> httpx.Response:
        if pending.authenticated:
            await self._ensure_restored()
        while True:
            if not self._rate_limit.can_make_request():
                wait_seconds = max(1, self._rate_limit.remaining_seconds())
                pending.transition(RequestState.FAILED)
                self._logger.warning(
                    "Blocked by rate-limit window %s %s wait=%ss",
                    pending.method,
                    pending.url,
                    wait_seconds,
                )
                raise RateLimitedError(wait_seconds)

            pending.transition(RequestState.REPLAYING if pending.retried else RequestState.SENDING)
            try:
                response = await self._send(pending)
            except httpx.HTTPError as error:
                pending.transition(RequestState.FAILED)
                self._logger.warning(
                    "Transport failure %s %s: %s",
                    pending.method,
                    pending.url,
                    type(error).__name__,
                )
                raise normalize_transport_error(error, production=self.production) from error

            if response.is_success:
                pending.transition(RequestState.DONE)
                return response

            if response.status_code == 429:
                retry_after = parse_retry_after(response.headers.get("retry-after"))
                deadline = self._rate_limit.record(retry_after)
                self._logger.warning(
                    "Rate limited %s %s retry_after=%ss deadline=%s",
                    pending.method,
                    pending.url,
                    retry_after,
                    deadline,
                )
                pending.transition(RequestState.FAILED)
                raise RateLimitedError(retry_after, status_code=429)

            if response.status_code == 401 and pending.authenticated:
                if pending.can_refresh:
                    pending.retried = True
                    pending.transition(RequestState.AWAITING_REFRESH)
                    try:
                        await self._refresh_credentials()
                    except AuthenticationExpiredError:
                        pending.transition(RequestState.FAILED)
                        raise
                    continue

                pending.transition(RequestState.FAILED)
                await self._expire_credentials(f"401 from {pending.method} {pending.url}")
                raise AuthenticationExpiredError(status_code=401)

            pending.transition(RequestState.FAILED)
            raise normalize_error_response(response, production=self.production)

    async def _send(self, pending: PendingRequest) -> httpx.Response:
        headers = dict(pending.headers)
        if pending.authenticated and self._credentials is not None:
            headers["Authorization"] = f"Bearer {self._credentials.access_token}"
        csrf_token = self._csrf_token_fn() if self._csrf_token_fn is not None else None
        if csrf_token:
            headers[CSRF_HEADER] = csrf_token

        return await self._http.request(
            pending.method,
            pending.url,
            params=pending.params,
            headers=headers,
            json=pending.json,
            data=pending.data,
            files=pending.files,
            content=pending.content,
            timeout=pending.timeout,
        )

    # -- refresh ---------------------------------------------------------------

    async def _refresh_credentials(self) -> None:
        if not self._coalesce_refresh:
            await self._perform_refresh()
            return

        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.ensure_future(self._perform_refresh())
            task.add_done_callback(_retrieve_refresh_outcome)
            self._refresh_task = task
        await asyncio.shield(task)

    async def _perform_refresh(self) -> None:
        credentials = self._credentials
        if credentials is None or not credentials.refresh_token:
            await self._expire_credentials("no refresh token held")
            raise AuthenticationExpiredError(status_code=401)

        self._logger.info("Access token rejected; refreshing")
        try:
            refreshed = await refresh_access_token(
                self._refresh_url,
                credentials.refresh_token,
                client=self._http,
            )
        except TokenRefreshError as error:
            if self._credentials_replaced(credentials):
                return
            self._logger.warning("Token refresh failed: %s", error)
            await self._expire_credentials("token refresh failed")
            raise AuthenticationExpiredError(status_code=401) from error

        if self._credentials_replaced(credentials):
            return
        await self._store_credentials(
            CredentialPair(
                access_token=refreshed.access_token,
                refresh_token=refreshed.refresh_token or credentials.refresh_token,
            )
        )

    def _credentials_replaced(self, refreshed_from: CredentialPair) -> bool:
        """True when the held pair changed while a refresh was in flight.

        A login, logout or another refresh wins over the stale refresh: its
        outcome is discarded and the caller replays with whatever pair is
        held now, or fails when nothing is held.
        """
        if self._credentials is refreshed_from:
            return False
        self._logger.info("Held credentials changed during refresh; discarding refresh result")
        if self._credentials is None:
            raise AuthenticationExpiredError(status_code=401)
        return True
