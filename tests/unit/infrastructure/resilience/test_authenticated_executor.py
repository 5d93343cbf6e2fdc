import json

import httpx
import pytest

from tubeflow.domain.interfaces.token_provider import TokenProvider
from tubeflow.domain.models.errors import AuthenticationError, ClientError
from tubeflow.infrastructure.auth.static_token import StaticTokenProvider
from tubeflow.infrastructure.resilience.authenticated_executor import AuthenticatedRequestExecutor


@pytest.fixture
def mock_token_provider(mocker):
    provider = mocker.MagicMock(spec=TokenProvider)
    provider.is_loaded = True
    provider.is_signed_in = True
    provider.get_token = mocker.AsyncMock(return_value="fresh-token")
    return provider


@pytest.fixture
def ok_transport(scripted_transport):
    return scripted_transport(lambda request: httpx.Response(200, json={"ok": True}))


@pytest.mark.asyncio
async def test_adds_bearer_token(make_executor, ok_transport):
    executor = make_executor(
        ok_transport, executor_class=AuthenticatedRequestExecutor, token_provider=StaticTokenProvider("abc123"),
    )

    assert await executor.get("/api/leads") == {"ok": True}
    assert ok_transport.requests[0].headers["authorization"] == "Bearer abc123"
    assert executor.is_authenticated
    assert not executor.auth_loading


@pytest.mark.asyncio
async def test_token_is_fetched_per_request(make_executor, ok_transport, mock_token_provider):
    mock_token_provider.get_token.side_effect = ["first", "second"]
    executor = make_executor(ok_transport, executor_class=AuthenticatedRequestExecutor, token_provider=mock_token_provider)

    await executor.get("/api/leads")
    await executor.get("/api/leads")

    assert [r.headers["authorization"] for r in ok_transport.requests] == ["Bearer first", "Bearer second"]


@pytest.mark.asyncio
async def test_post_keeps_json_and_auth_headers(make_executor, ok_transport, mock_token_provider):
    executor = make_executor(ok_transport, executor_class=AuthenticatedRequestExecutor, token_provider=mock_token_provider)

    await executor.post("/api/quotations", {"lead_id": 4})

    request = ok_transport.requests[0]
    assert request.headers["authorization"] == "Bearer fresh-token"
    assert request.headers["content-type"] == "application/json"
    assert json.loads(request.content) == {"lead_id": 4}


@pytest.mark.asyncio
async def test_retry_is_authenticated(make_executor, scripted_transport, mock_token_provider):
    transport = scripted_transport(401, lambda request: httpx.Response(200, json=[]))
    executor = make_executor(transport, executor_class=AuthenticatedRequestExecutor, token_provider=mock_token_provider)

    with pytest.raises(ClientError):
        await executor.get("/api/invoices")
    assert await executor.retry("/api/invoices") == []

    assert transport.requests[1].headers["authorization"] == "Bearer fresh-token"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "is_loaded, is_signed_in, token, message",
    [
        (False, True, "t", "Authentication not loaded"),
        (True, False, "t", "User not authenticated"),
        (True, True, None, "Failed to obtain authentication token"),
    ],
)
async def test_refuses_without_usable_token(
    make_executor, ok_transport, mock_token_provider, mock_notifier, is_loaded, is_signed_in, token, message
):
    mock_token_provider.is_loaded = is_loaded
    mock_token_provider.is_signed_in = is_signed_in
    mock_token_provider.get_token.return_value = token
    executor = make_executor(ok_transport, executor_class=AuthenticatedRequestExecutor, token_provider=mock_token_provider)

    with pytest.raises(AuthenticationError, match=message):
        await executor.get("/api/leads")

    assert ok_transport.calls == 0
    assert executor.state.is_idle
    mock_notifier.show_error.assert_not_called()


@pytest.mark.asyncio
async def test_token_provider_failure_becomes_authentication_error(make_executor, ok_transport, mock_token_provider):
    mock_token_provider.get_token.side_effect = RuntimeError("session expired")
    executor = make_executor(ok_transport, executor_class=AuthenticatedRequestExecutor, token_provider=mock_token_provider)

    with pytest.raises(AuthenticationError, match="session expired") as exc_info:
        await executor.get("/api/leads")

    assert isinstance(exc_info.value.cause, RuntimeError)
    assert ok_transport.calls == 0


def test_auth_state_properties(mock_token_provider):
    mock_token_provider.is_loaded = False
    executor = AuthenticatedRequestExecutor(token_provider=mock_token_provider)

    assert executor.auth_loading
    assert not executor.is_authenticated
