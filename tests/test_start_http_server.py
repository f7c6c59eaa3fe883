"""Tests for the server launcher"""

import os

import uvicorn

from memory_graph.start_http_server import main


def test_flags_reach_uvicorn_and_environment(monkeypatch, tmp_path):
    for name in ("KG_HTTP_HOST", "KG_HTTP_PORT", "KG_LOG_LEVEL", "OPENCLAW_WORKSPACE"):
        monkeypatch.delenv(name, raising=False)
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    main(["--port", "9100", "--log-level", "debug", "--workspace", str(tmp_path)])

    assert calls == [("memory_graph.api.app:app", {"host": "127.0.0.1", "port": 9100, "log_level": "debug"})]
    assert os.environ["KG_LOG_LEVEL"] == "DEBUG"
    assert os.environ["OPENCLAW_WORKSPACE"] == str(tmp_path)


def test_defaults_come_from_environment(monkeypatch):
    monkeypatch.setenv("KG_HTTP_PORT", "9200")
    monkeypatch.setenv("KG_HTTP_HOST", "0.0.0.0")
    monkeypatch.delenv("KG_LOG_LEVEL", raising=False)
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append(kwargs))

    main([])

    assert calls == [{"host": "0.0.0.0", "port": 9200, "log_level": "info"}]
