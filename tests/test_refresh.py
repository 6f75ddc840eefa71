import json

import httpx
import pytest

from auth.refresh import RefreshResponse, TokenRefreshError, refresh_access_token

REFRESH_URL = "https://jobs.example.com/api/v1/auth/refresh/"


@pytest.mark.asyncio
async def test_refresh_success(httpx_mock) -> None:
    httpx_mock.add_response(url=REFRESH_URL, method="POST", json={"access": "access-2"})

    token = await refresh_access_token(REFRESH_URL, "refresh-1")

    assert token == RefreshResponse(access_token="access-2", refresh_token=None)

    request = httpx_mock.get_request()
    assert json.loads(request.content) == {"refresh": "refresh-1"}
    assert "authorization" not in request.headers


@pytest.mark.asyncio
async def test_refresh_with_rotation(httpx_mock) -> None:
    httpx_mock.add_response(
        url=REFRESH_URL,
        method="POST",
        json={"access": "access-2", "refresh": "refresh-2"},
    )

    token = await refresh_access_token(REFRESH_URL, "refresh-1")

    assert token.refresh_token == "refresh-2"


@pytest.mark.asyncio
async def test_refresh_uses_given_client(httpx_mock) -> None:
    httpx_mock.add_response(url=REFRESH_URL, method="POST", json={"access": "access-2"})

    async with httpx.AsyncClient() as client:
        await refresh_access_token(REFRESH_URL, "refresh-1", client=client)
        assert client.is_closed is False


@pytest.mark.asyncio
async def test_refresh_rejected(httpx_mock) -> None:
    httpx_mock.add_response(
        url=REFRESH_URL,
        method="POST",
        status_code=401,
        json={"detail": "Token is invalid or expired"},
    )

    with pytest.raises(TokenRefreshError, match="status 401") as excinfo:
        await refresh_access_token(REFRESH_URL, "stale")

    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_refresh_network_error(httpx_mock) -> None:
    httpx_mock.add_exception(httpx.ConnectError("refused"))

    with pytest.raises(TokenRefreshError, match="request failed") as excinfo:
        await refresh_access_token(REFRESH_URL, "refresh-1")

    assert excinfo.value.status_code is None


@pytest.mark.asyncio
async def test_refresh_invalid_json(httpx_mock) -> None:
    httpx_mock.add_response(url=REFRESH_URL, method="POST", text="<html>oops</html>")

    with pytest.raises(TokenRefreshError, match="not valid JSON"):
        await refresh_access_token(REFRESH_URL, "refresh-1")


@pytest.mark.asyncio
async def test_refresh_missing_access(httpx_mock) -> None:
    httpx_mock.add_response(url=REFRESH_URL, method="POST", json={"refresh": "refresh-2"})

    with pytest.raises(TokenRefreshError, match="missing access token"):
        await refresh_access_token(REFRESH_URL, "refresh-1")


def test_refresh_payload_must_be_object() -> None:
    with pytest.raises(TokenRefreshError):
        RefreshResponse.from_payload(["access"])


def test_refresh_payload_rejects_blank_rotation() -> None:
    with pytest.raises(TokenRefreshError, match="non-empty string"):
        RefreshResponse.from_payload({"access": "a", "refresh": ""})
