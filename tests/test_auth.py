import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from skolaonline_widget import get_error_summary
from skolaonline_widget.auth import TokenAuthenticator
from skolaonline_widget.constants import KEY_REFRESH_TOKEN, TOKEN_URL
from skolaonline_widget.state_store import InMemoryStateStore
from skolaonline_widget.utils.error_utils import AuthError, NotAuthenticated

def _exchange(handler, stored_token="refresh-1"):
    """Run get_access_token against a mocked /connect/token and return (result, store, requests)."""
    requests = []
    store = InMemoryStateStore({KEY_REFRESH_TOKEN: stored_token} if stored_token is not None else {})

    def recording_handler(request):
        requests.append(request)
        return handler(request)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(recording_handler)) as client:
            authenticator = TokenAuthenticator(store, client=client)
            return await authenticator.get_access_token()

    return asyncio.run(run()), store, requests

def test_exchange_posts_refresh_token_form():
    result, _, requests = _exchange(lambda r: httpx.Response(200, json={"access_token": "access-1"}))

    assert result == "access-1"
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == TOKEN_URL
    form = parse_qs(request.content.decode())
    assert form == {
        "client_id": ["test_client"],
        "grant_type": ["refresh_token"],
        "refresh_token": ["refresh-1"],
    }

def test_rotated_refresh_token_is_stored():
    body = {"access_token": "access-1", "refresh_token": "refresh-2"}

    result, store, _ = _exchange(lambda r: httpx.Response(200, json=body))

    assert result == "access-1"
    assert store.get(KEY_REFRESH_TOKEN) == "refresh-2"

def test_token_kept_when_not_rotated():
    _, store, _ = _exchange(lambda r: httpx.Response(200, json={"access_token": "access-1", "refresh_token": ""}))

    assert store.get(KEY_REFRESH_TOKEN) == "refresh-1"

@pytest.mark.parametrize("stored_token", [None, "", "   "])
def test_missing_token_raises_not_authenticated(stored_token):
    with pytest.raises(NotAuthenticated) as exc_info:
        _exchange(lambda r: httpx.Response(200, json={"access_token": "x"}), stored_token=stored_token)

    assert exc_info.value.user_message == "Nepřihlášen"

def test_no_request_without_token():
    store = InMemoryStateStore()
    transport = httpx.MockTransport(lambda r: pytest.fail("no request expected"))

    async def run():
        async with httpx.AsyncClient(transport=transport) as client:
            await TokenAuthenticator(store, client=client).get_access_token()

    with pytest.raises(NotAuthenticated):
        asyncio.run(run())

def test_rejected_exchange_raises_auth_error():
    with pytest.raises(AuthError) as exc_info:
        _exchange(lambda r: httpx.Response(401, json={"error": "invalid_grant"}))

    assert exc_info.value.user_message == "Chyba přihlášení"
    assert get_error_summary()["by_type"].get("auth_errors") == 1

def test_timeout_raises_auth_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(AuthError) as exc_info:
        _exchange(handler)

    assert "timed out" in str(exc_info.value)

def test_transport_failure_raises_auth_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(AuthError):
        _exchange(handler)

@pytest.mark.parametrize("response", [
    httpx.Response(200, content=b"<html>maintenance</html>"),
    httpx.Response(200, json=["not", "an", "object"]),
    httpx.Response(200, json={"token_type": "Bearer"}),
    httpx.Response(200, json={"access_token": "   "}),
])
def test_malformed_body_raises_auth_error(response):
    with pytest.raises(AuthError):
        _exchange(lambda r: response)

def test_rejected_exchange_keeps_stored_token():
    store = InMemoryStateStore({KEY_REFRESH_TOKEN: "refresh-1"})

    async def run():
        transport = httpx.MockTransport(lambda r: httpx.Response(500))
        async with httpx.AsyncClient(transport=transport) as client:
            await TokenAuthenticator(store, client=client).get_access_token()

    with pytest.raises(AuthError):
        asyncio.run(run())

    assert store.get(KEY_REFRESH_TOKEN) == "refresh-1"
