import json
from urllib.parse import parse_qs

import httpx
import pytest

from plantcare.clients import DataStoreClient, SkillClients, TokenClient
from plantcare.config import DataStoreSettings
from plantcare.datastore import sync_watered_date, user_target, watered_date_commands
from plantcare.models import AccessToken

TOKEN_URL = "https://api.amazon.com/auth/o2/token"
COMMANDS_URL = "https://api.amazonalexa.com/v1/datastore/commands"


def make_token_client(handler, **kwargs):
    return TokenClient(
        token_url=TOKEN_URL,
        client_id="client-id",
        client_secret="client-secret",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_fetch_access_token_posts_client_credentials_form():
    captured = {}

    def handler(request):
        captured["method"] = request.method
        captured["url"] = str(request.url)
        captured["content_type"] = request.headers["content-type"]
        captured["form"] = parse_qs(request.content.decode())
        return httpx.Response(
            200,
            json={"access_token": "Atc|abc", "token_type": "Bearer", "expires_in": 3600, "scope": "alexa::datastore"},
        )

    token = await make_token_client(handler).fetch_access_token()

    assert token == AccessToken(access_token="Atc|abc", token_type="Bearer", expires_in=3600, scope="alexa::datastore")
    assert token.authorization == "Bearer Atc|abc"
    assert captured["method"] == "POST"
    assert captured["url"] == TOKEN_URL
    assert captured["content_type"] == "application/x-www-form-urlencoded"
    assert captured["form"] == {
        "grant_type": ["client_credentials"],
        "client_id": ["client-id"],
        "client_secret": ["client-secret"],
        "scope": ["alexa::datastore"],
    }


@pytest.mark.asyncio
async def test_fetch_access_token_returns_none_on_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    assert await make_token_client(handler).fetch_access_token() is None


@pytest.mark.asyncio
async def test_fetch_access_token_returns_none_on_rejection():
    def handler(request):
        return httpx.Response(401, json={"error": "invalid_client"})

    assert await make_token_client(handler).fetch_access_token() is None


@pytest.mark.asyncio
async def test_fetch_access_token_returns_none_on_unusable_body():
    def handler(request):
        return httpx.Response(200, json={"token_type": "Bearer"})

    assert await make_token_client(handler).fetch_access_token() is None


@pytest.mark.asyncio
async def test_push_commands_sends_authorized_json():
    captured = {}

    def handler(request):
        captured["url"] = str(request.url)
        captured["authorization"] = request.headers["authorization"]
        captured["user_agent"] = request.headers["user-agent"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"queuedResultId": "q-1"})

    client = DataStoreClient(
        commands_url=COMMANDS_URL,
        default_headers={"User-Agent": "sample/widget/v1.2"},
        transport=httpx.MockTransport(handler),
    )
    token = AccessToken(access_token="Atc|abc", token_type="Bearer")
    commands = watered_date_commands(DataStoreSettings(), "2024-05-01")

    result = await client.push_commands(token, commands, user_target("U1"))

    assert result == (True, 200, {"queuedResultId": "q-1"})
    assert captured["url"] == COMMANDS_URL
    assert captured["authorization"] == "Bearer Atc|abc"
    assert captured["user_agent"] == "sample/widget/v1.2"
    assert captured["body"] == {
        "commands": [
            {
                "type": "PUT_OBJECT",
                "namespace": "plantCareReminder",
                "key": "plantData",
                "content": {"lastWateredDate": "2024-05-01"},
            }
        ],
        "target": {"type": "USER", "id": "U1"},
    }


@pytest.mark.asyncio
async def test_push_commands_reports_failures_without_raising():
    def rejecting(request):
        return httpx.Response(403, json={"message": "forbidden"})

    def unreachable(request):
        raise httpx.ReadTimeout("timed out", request=request)

    token = AccessToken(access_token="Atc|abc")
    commands = watered_date_commands(DataStoreSettings(), "")

    rejected = DataStoreClient(COMMANDS_URL, transport=httpx.MockTransport(rejecting))
    assert await rejected.push_commands(token, commands, user_target("U1")) == (
        False,
        403,
        {"message": "forbidden"},
    )

    timed_out = DataStoreClient(COMMANDS_URL, transport=httpx.MockTransport(unreachable))
    assert await timed_out.push_commands(token, commands, user_target("U1")) == (False, 0, None)


@pytest.mark.asyncio
async def test_push_commands_without_token_skips_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={})

    client = DataStoreClient(COMMANDS_URL, transport=httpx.MockTransport(handler))
    result = await client.push_commands(None, [], user_target("U1"))

    assert result == (False, 0, None)
    assert calls == []


@pytest.mark.asyncio
async def test_sync_watered_date_fetches_token_then_pushes():
    order = []

    def handler(request):
        if str(request.url) == TOKEN_URL:
            order.append("token")
            return httpx.Response(200, json={"access_token": "Atc|xyz", "token_type": "Bearer"})
        order.append("push")
        assert request.headers["authorization"] == "Bearer Atc|xyz"
        body = json.loads(request.content)
        assert body["commands"][0]["content"] == {"lastWateredDate": "2024-05-02"}
        assert body["target"] == {"type": "USER", "id": "U7"}
        return httpx.Response(200, json={})

    settings = DataStoreSettings(client_id="id", client_secret="secret")
    clients = SkillClients(
        tokens=TokenClient(TOKEN_URL, "id", "secret", transport=httpx.MockTransport(handler)),
        datastore=DataStoreClient(COMMANDS_URL, transport=httpx.MockTransport(handler)),
        settings=settings,
    )

    ok, status, _ = await sync_watered_date(clients, "U7", "2024-05-02")

    assert (ok, status) == (True, 200)
    assert order == ["token", "push"]


@pytest.mark.asyncio
async def test_sync_watered_date_skips_push_when_token_fails():
    pushed = []

    def token_handler(request):
        raise httpx.ConnectError("dns failure", request=request)

    def push_handler(request):
        pushed.append(request)
        return httpx.Response(200, json={})

    clients = SkillClients(
        tokens=TokenClient(TOKEN_URL, "id", "secret", transport=httpx.MockTransport(token_handler)),
        datastore=DataStoreClient(COMMANDS_URL, transport=httpx.MockTransport(push_handler)),
    )

    assert await sync_watered_date(clients, "U1", "") == (False, 0, None)
    assert pushed == []
