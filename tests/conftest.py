"""
Pytest configuration for knowledge graph tests

Provides a temporary workspace, its GraphConfig, and a FakeGateway that
answers agent CLI commands from canned responses.
"""

import json

import pytest

from memory_graph.api.gateway import AgentGateway
from memory_graph.core.config import GraphConfig
from memory_graph.core.exceptions import GatewayError


class FakeGateway(AgentGateway):
    """
    Records every CLI invocation instead of spawning a process.

    responses maps a command key ("agents list", "memory status",
    "memory index", or a gateway RPC method such as "chat.history") to
    a JSON-serializable value, a raw string, an exception, or a callable
    taking the argument list. Unknown commands fail like a missing CLI.
    """

    def __init__(self, responses: dict | None = None):
        super().__init__("openclaw")
        self.responses = responses or {}
        self.calls: list[list[str]] = []

    @staticmethod
    def command_key(args: list[str]) -> str:
        if args[:2] == ["gateway", "call"]:
            return args[2]
        return " ".join(a for a in args if not a.startswith("--"))

    def keys_called(self) -> list[str]:
        return [self.command_key(args) for args in self.calls]

    async def run_cli(self, args: list[str], timeout: float = 15.0) -> str:
        self.calls.append(list(args))
        key = self.command_key(args)
        if key not in self.responses:
            raise GatewayError(f"openclaw {key}", "command not available")

        value = self.responses[key]
        if callable(value):
            value = value(args)
        if isinstance(value, Exception):
            raise value
        if isinstance(value, str):
            return value
        return json.dumps(value)


@pytest.fixture
def workspace(tmp_path):
    """Empty agent workspace with a memory directory."""
    ws = tmp_path / "workspace"
    (ws / "memory").mkdir(parents=True)
    return ws


@pytest.fixture
def config(tmp_path, workspace):
    return GraphConfig(workspace=workspace, openclaw_home=tmp_path / "home")


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture(autouse=True)
def no_api_key(monkeypatch):
    """Keep a developer's real key out of the tests."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


def completion(payload) -> dict:
    """Chat-completion response body carrying payload as JSON content."""
    return {"choices": [{"message": {"content": json.dumps(payload)}}]}
