import json
from typing import Any, Dict, Iterator, List, Optional

import mongomock
import pytest
from cryptography.fernet import Fernet

from flowmate.db import Database
from flowmate.db.crypto import CredentialCipher
from flowmate.server.ai import ProviderRegistry
from flowmate.server.ai.base import TextProviderBase
from flowmate.server.credentials import CredentialResolver
from flowmate.server.engine.module_interface import ExecutableModule, ModuleInput, ModuleOutput
from flowmate.server.engine.module_registry import build_registry
from flowmate.server.modules import builtin_modules
from flowmate.server.workflow.executor import WorkflowExecutor


# =============================================================================
# Fakes
# =============================================================================

class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text or (json.dumps(payload) if payload is not None else "")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeHttp:
    """requests-compatible session; answers from a queue of (method, url-suffix) routes."""

    def __init__(self):
        self.routes: Dict[tuple, List[FakeResponse]] = {}
        self.calls: List[Dict[str, Any]] = []

    def add(self, method: str, url_suffix: str, response: FakeResponse) -> None:
        self.routes.setdefault((method.upper(), url_suffix), []).append(response)

    def request(self, method: str, url: str, **kwargs) -> FakeResponse:
        self.calls.append({"method": method.upper(), "url": url, **kwargs})
        for (route_method, suffix), queue in self.routes.items():
            if route_method == method.upper() and url.endswith(suffix) and queue:
                return queue.pop(0) if len(queue) > 1 else queue[0]
        return FakeResponse(404, {"detail": f"no route for {method} {url}"})

    def post(self, url: str, **kwargs) -> FakeResponse:
        return self.request("POST", url, **kwargs)


class FakeTextProvider(TextProviderBase):
    """Echoes the last user message; records every call on the class."""

    calls: List[Dict[str, Any]] = []
    chunks = ["Hello", ", ", "world"]
    fail_stream = False

    @property
    def provider_id(self) -> str:
        return "openai"

    def generate(self, messages, api_key, model=None, system=None, temperature=None, max_tokens=None):
        FakeTextProvider.calls.append({"messages": messages, "api_key": api_key, "system": system})
        return {
            "content": f"generated: {messages[-1]['content']}",
            "model": model or "fake-model",
            "usage": {"total_tokens": 3},
        }

    def stream(self, messages, api_key, model=None, system=None, temperature=None, max_tokens=None) -> Iterator[str]:
        FakeTextProvider.calls.append({"messages": messages, "api_key": api_key, "system": system})
        for chunk in self.chunks:
            yield chunk
        if self.fail_stream:
            raise RuntimeError("provider stream broke")


# =============================================================================
# Test modules
# =============================================================================

class EchoModule(ExecutableModule):
    @property
    def module_id(self) -> str:
        return "test.util.echo"

    @property
    def description(self) -> str:
        return "Return the value it was given"

    @property
    def inputs(self) -> List[ModuleInput]:
        return [ModuleInput(name="value", type="object")]

    @property
    def outputs(self) -> List[ModuleOutput]:
        return [ModuleOutput(name="value", type="object")]

    def execute(self, inputs, context):
        return {"value": inputs["value"]}


class ItemsModule(ExecutableModule):
    @property
    def module_id(self) -> str:
        return "test.util.items"

    @property
    def description(self) -> str:
        return "Produce a fixed list"

    @property
    def inputs(self) -> List[ModuleInput]:
        return []

    @property
    def outputs(self) -> List[ModuleOutput]:
        return [ModuleOutput(name="items", type="array")]

    def execute(self, inputs, context):
        return {"items": [{"n": 1}, {"n": 2}]}


class FailModule(ExecutableModule):
    @property
    def module_id(self) -> str:
        return "test.util.fail"

    @property
    def description(self) -> str:
        return "Always raises"

    @property
    def inputs(self) -> List[ModuleInput]:
        return []

    @property
    def outputs(self) -> List[ModuleOutput]:
        return [ModuleOutput(name="value", type="string")]

    def execute(self, inputs, context):
        raise RuntimeError("boom with key sk-abcdefghijklmnopqrstuvwxyz123456")


class SendModule(ExecutableModule):
    """Side-effecting module on the slack platform; counts real invocations."""

    platform = "slack"
    side_effects = True
    sent: List[Dict[str, Any]] = []

    @property
    def module_id(self) -> str:
        return "test.util.send"

    @property
    def description(self) -> str:
        return "Send a message"

    @property
    def inputs(self) -> List[ModuleInput]:
        return [ModuleInput(name="text", type="string")]

    @property
    def outputs(self) -> List[ModuleOutput]:
        return [ModuleOutput(name="message_id", type="string")]

    def get_mock_output(self, inputs):
        return {"message_id": "mock-id"}

    def execute(self, inputs, context):
        SendModule.sent.append({"text": inputs["text"], "token": context.credentials["bot_token"]})
        return {"message_id": "real-id"}


TEST_MODULES = (EchoModule, ItemsModule, FailModule, SendModule)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def cipher() -> CredentialCipher:
    return CredentialCipher(Fernet.generate_key().decode())


@pytest.fixture
def db(cipher) -> Database:
    database = Database(database_name="flowmate_test", client=mongomock.MongoClient(), cipher=cipher)
    yield database
    database.close()


@pytest.fixture
def http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture
def fake_provider(monkeypatch):
    FakeTextProvider.calls = []
    FakeTextProvider.fail_stream = False
    monkeypatch.setitem(ProviderRegistry._providers, "openai", FakeTextProvider)
    return FakeTextProvider


@pytest.fixture
def test_registry():
    SendModule.sent = []
    return build_registry([cls() for cls in TEST_MODULES])


@pytest.fixture
def full_registry():
    SendModule.sent = []
    return build_registry(builtin_modules() + [cls() for cls in TEST_MODULES])


@pytest.fixture
def resolver(db) -> CredentialResolver:
    return CredentialResolver(db.credential_repo, environ={})


@pytest.fixture
def executor(test_registry, resolver, db) -> WorkflowExecutor:
    return WorkflowExecutor(test_registry, resolver, workflow_repo=db.workflow_repo)
