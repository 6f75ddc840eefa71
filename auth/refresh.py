from __future__ import annotations

from dataclasses import dataclass

import httpx


class TokenRefreshError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class RefreshResponse:
    access_token: str
    # Only set when the backend rotates refresh tokens.
    refresh_token: str | None = None

    @classmethod
    def from_payload(cls, payload) -> "RefreshResponse":
        if not isinstance(payload, dict):
            raise TokenRefreshError("Refresh response must be a JSON object.")

        access_token = payload.get("access")
        refresh_token = payload.get("refresh")

        if not isinstance(access_token, str) or not access_token:
            raise TokenRefreshError("Refresh response missing access token.")
        if refresh_token is not None and (not isinstance(refresh_token, str) or not refresh_token):
            raise TokenRefreshError("Refresh response refresh token must be a non-empty string.")

        return cls(access_token=access_token, refresh_token=refresh_token)


async def refresh_access_token(
    refresh_url: str,
    refresh_token: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float | None = None,
) -> RefreshResponse:
    """Exchange a refresh token for a new access token.

    The call carries no Authorization header and is never retried.
    """
    own_client = client is None
    http_client = client or httpx.AsyncClient()
    request_timeout = httpx.USE_CLIENT_DEFAULT if timeout is None else timeout

    try:
        response = await http_client.post(
            refresh_url,
            json={"refresh": refresh_token},
            timeout=request_timeout,
        )
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPStatusError as error:
        raise TokenRefreshError(
            f"Token refresh failed with status {error.response.status_code}.",
            status_code=error.response.status_code,
        ) from error
    except httpx.HTTPError as error:
        raise TokenRefreshError(f"Token refresh request failed: {error}") from error
    except ValueError as error:
        raise TokenRefreshError("Refresh response was not valid JSON.") from error
    finally:
        if own_client:
            await http_client.aclose()

    return RefreshResponse.from_payload(payload)
