import os
import sys

import pytest

# Add service root and src/ to sys.path so 'plantcare' and 'server' import from the repo root
CURRENT_DIR = os.path.dirname(__file__)
SERVICE_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
SRC_ROOT = os.path.join(SERVICE_ROOT, "src")

for path in (SERVICE_ROOT, SRC_ROOT):
    if path not in sys.path:
        sys.path.insert(0, path)

from plantcare.attributes import InMemoryPersistenceAdapter  # noqa: E402
from plantcare.clients import SkillClients  # noqa: E402
from plantcare.config import DataStoreSettings  # noqa: E402
from plantcare.envelope import build_handler_input, deserialize_envelope  # noqa: E402
from plantcare.models import AccessToken  # noqa: E402
from plantcare.skills import SkillServices  # noqa: E402


class FakeTokenClient:
    def __init__(self, token=None):
        self.token = token
        self.calls = 0

    async def fetch_access_token(self):
        self.calls += 1
        return self.token


class FakeDataStoreClient:
    def __init__(self, result=(True, 200, {})):
        self.result = result
        self.pushes = []

    async def push_commands(self, token, commands, target):
        self.pushes.append({"token": token, "commands": commands, "target": target})
        if token is None:
            return False, 0, None
        return self.result


def make_envelope(request, *, user_id="U1", apl=False):
    interfaces = {"Alexa.Presentation.APL": {"runtime": {"maxVersion": "2023.2"}}} if apl else {}
    return {
        "version": "1.0",
        "session": {"new": True, "sessionId": "session-1", "user": {"userId": user_id}},
        "context": {
            "System": {
                "application": {"applicationId": "amzn1.ask.skill.test"},
                "user": {"userId": user_id},
                "device": {"deviceId": "device-1", "supportedInterfaces": interfaces},
            }
        },
        "request": {"requestId": "req-1", "timestamp": "2024-05-01T10:00:00Z", **request},
    }


def intent_envelope(name, **kwargs):
    return make_envelope({"type": "IntentRequest", "intent": {"name": name, "slots": {}}}, **kwargs)


def usage_envelope(request_type, instance_id, **kwargs):
    return make_envelope(
        {
            "type": request_type,
            "payload": {
                "packageId": "plantCareWidget",
                "packageVersion": "1.0",
                "usages": [{"instanceId": instance_id}],
            },
        },
        **kwargs,
    )


def user_event_envelope(*arguments, **kwargs):
    return make_envelope(
        {"type": "Alexa.Presentation.APL.UserEvent", "arguments": list(arguments)},
        **kwargs,
    )


def handler_input_for(envelope, persistence_adapter=None):
    return build_handler_input(deserialize_envelope(envelope), persistence_adapter)


def speech_text(response):
    """Plain text of the output speech, with the SSML wrapper stripped."""
    ssml = response.get("response", {}).get("outputSpeech", {}).get("ssml")
    if not isinstance(ssml, str):
        return None
    return ssml.removeprefix("<speak>").removesuffix("</speak>")


@pytest.fixture
def store():
    return InMemoryPersistenceAdapter()


@pytest.fixture
def token_client():
    return FakeTokenClient(AccessToken(access_token="Atc|abc", token_type="Bearer"))


@pytest.fixture
def datastore_client():
    return FakeDataStoreClient()


@pytest.fixture
def services(store, token_client, datastore_client):
    clients = SkillClients(
        tokens=token_client,
        datastore=datastore_client,
        settings=DataStoreSettings(),
    )
    return SkillServices(persistence_adapter=store, clients=clients, user_agent="test/agent")
