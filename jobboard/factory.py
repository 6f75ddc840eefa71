from __future__ import annotations

from typing import Any, Callable

import httpx

from auth.token_store import FileTokenStore, MemoryTokenStore

from .client import ApiClient
from .env import Settings, load_env, load_settings, setup_logging, validate_settings
from .resources import JobBoardAPI


def create_client(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    on_authentication_expired: Callable[[], Any] | None = None,
) -> ApiClient:
    if settings.token_store_path:
        token_store = FileTokenStore(settings.token_store_path)
    else:
        token_store = MemoryTokenStore()

    csrf_token = settings.csrf_token
    return ApiClient(
        base_url=settings.base_url,
        api_version=settings.api_version,
        timeout=settings.timeout,
        token_store=token_store,
        transport=transport,
        csrf_token_fn=(lambda: csrf_token) if csrf_token else None,
        on_authentication_expired=on_authentication_expired,
        production=settings.production,
        coalesce_refresh=settings.coalesce_refresh,
        debug=settings.debug,
    )


async def create_api(
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    on_authentication_expired: Callable[[], Any] | None = None,
) -> JobBoardAPI:
    """Build a ready-to-use API from the environment.

    Credentials persisted by a previous session are restored before
    returning.
    """
    load_env()
    settings = load_settings()
    setup_logging(settings)
    validate_settings(settings)

    client = create_client(
        settings,
        transport=transport,
        on_authentication_expired=on_authentication_expired,
    )
    await client.restore_credentials()
    return JobBoardAPI(client)
