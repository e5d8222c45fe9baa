# ToolJet API Probe MCP Server
# File: tests/test_tasks.py
# Version: v1
#
# Tests for the MCP task layer: probe_api, probe_sample, generate_config.
#
# These tests either run in mock mode or patch `_make_fetcher`, so no real
# HTTP calls are made.

from __future__ import annotations

import asyncio
import json
import re
from typing import List

import httpx
import pytest

from tooljet_probe_mcp.config import ProbeConfig
from tooljet_probe_mcp.fetcher import Fetcher
from tooljet_probe_mcp.tools import tasks


def _run(coro):
    """Helper to run async coroutines in plain pytest tests."""
    return asyncio.run(coro)


class _RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def _patch_fetcher(monkeypatch, handler, sleep=None, **config) -> Fetcher:
    fetcher = Fetcher(
        config=ProbeConfig(**config),
        transport=httpx.MockTransport(handler),
        sleep=sleep or _RecordingSleep(),
    )
    monkeypatch.setattr(tasks, "_make_fetcher", lambda: fetcher)
    return fetcher


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "TOOLJET_PROBE_MOCK_MODE",
        "TOOLJET_PROBE_OUTPUT_DIR",
        "TOOLJET_PROBE_SAMPLE_SIZE",
        "TOOLJET_PROBE_SNIPPET_LENGTH",
    ):
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# probe_api (mock mode)
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_probe_api_mock_orders_success(monkeypatch):
    monkeypatch.setenv("TOOLJET_PROBE_MOCK_MODE", "1")

    out = await tasks.probe_api(
        url="http://localhost:3001/orders?page=1&limit=10",
        headers={"Authorization": "Bearer demo"},
    )

    assert out["ok"] is True
    assert out["status"] == 200
    assert out["samplePath"] == "$.orders"
    assert [f["name"] for f in out["fields"]] == ["id", "customer", "amount", "status", "date"]
    assert [f["type"] for f in out["fields"]] == ["integer", "string", "number", "string", "string"]
    assert out["pagination"]["type"] == "page"
    assert out["pagination"]["metaPaths"]["perPage"] == "meta.per_page"
    assert out["headers"] == {"Authorization": "<masked>"}
    assert len(out["sample"]) <= tasks.SAMPLE_SNIPPET_LENGTH + 3


@pytest.mark.asyncio
async def test_probe_api_mock_requires_auth(monkeypatch):
    monkeypatch.setenv("TOOLJET_PROBE_MOCK_MODE", "1")

    out = await tasks.probe_api(url="http://localhost:3001/orders", headers={})

    assert out["ok"] is False
    assert out["status"] == 401
    assert "401" in out["message"]
    assert "auth" in out["hints"].lower()
    assert out["errorType"] == "HTTP_ERROR"
    assert "Unauthorized" in out["rawSnippet"]


@pytest.mark.asyncio
async def test_probe_api_non_json_suggests_pasting_sample(monkeypatch):
    monkeypatch.setenv("TOOLJET_PROBE_MOCK_MODE", "1")

    out = await tasks.probe_api(
        url="http://localhost:3001/html",
        headers={"Authorization": "Bearer demo"},
    )

    assert out["ok"] is False
    assert out["errorType"] == "PARSE_ERROR"
    assert re.search(r"non-json", out["message"], re.IGNORECASE)
    assert re.search(r"paste.*sample", out["hints"], re.IGNORECASE)
    assert out["contentType"].startswith("text/html")
    assert "<h1>" in out["rawSnippet"]


# ---------------------------------------------------------------------------
# probe_api (patched fetcher)
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_probe_api_unreachable_host_retries_then_reports(monkeypatch):
    sleep = _RecordingSleep()

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Name or service not known", request=request)

    _patch_fetcher(monkeypatch, handler, sleep=sleep, max_retries=2, initial_delay_ms=500)

    out = await tasks.probe_api(url="http://unreachable.invalid/orders")

    assert sleep.delays == [0.5, 1.0]
    assert out["ok"] is False
    assert out["status"] == 0
    assert out["errorType"] == "NETWORK_ERROR"
    assert re.search(r"network", out["message"], re.IGNORECASE)
    assert "connect" in out["hints"].lower()


@pytest.mark.asyncio
async def test_probe_api_empty_array_cannot_infer(monkeypatch):
    _patch_fetcher(monkeypatch, lambda request: httpx.Response(200, json=[]))

    out = await tasks.probe_api(url="https://api.example.com/empty")

    assert out["ok"] is False
    assert out["status"] == 200
    assert out["errorType"] == "SCHEMA_INFERENCE_FAILED"
    assert "could not infer schema" in out["message"].lower()


@pytest.mark.asyncio
async def test_probe_api_json_string_cannot_infer(monkeypatch):
    _patch_fetcher(monkeypatch, lambda request: httpx.Response(200, json="hello"))

    out = await tasks.probe_api(url="https://api.example.com/greeting")

    assert out["ok"] is False
    assert out["errorType"] == "SCHEMA_INFERENCE_FAILED"


@pytest.mark.asyncio
async def test_probe_api_json_with_bom_is_inferred(monkeypatch):
    _patch_fetcher(
        monkeypatch,
        lambda request: httpx.Response(200, content=b'\xef\xbb\xbf[{"id": 1}]'),
    )

    out = await tasks.probe_api(url="https://api.example.com/users")

    assert out["ok"] is True
    assert out["samplePath"] == "$"
    assert out["fields"] == [{"name": "id", "type": "integer", "sample": 1}]


@pytest.mark.asyncio
async def test_probe_api_unreadable_body_reports_received_status(monkeypatch):
    calls = []
    sleep = _RecordingSleep()

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(
            200,
            headers={"Content-Encoding": "gzip"},
            stream=httpx.ByteStream(b"definitely not gzip"),
        )

    _patch_fetcher(monkeypatch, handler, sleep=sleep, max_retries=2)

    out = await tasks.probe_api(url="https://api.example.com/orders")

    assert len(calls) == 1
    assert sleep.delays == []
    assert out["ok"] is False
    assert out["status"] == 200
    assert out["errorType"] == "NETWORK_ERROR"


@pytest.mark.asyncio
async def test_probe_api_server_error_not_retried(monkeypatch):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, text="boom")

    _patch_fetcher(monkeypatch, handler)

    out = await tasks.probe_api(url="https://api.example.com/orders")

    assert len(calls) == 1
    assert out["status"] == 500
    assert out["message"] == "HTTP 500: Internal Server Error"
    assert "server error" in out["hints"].lower()
    assert out["rawSnippet"] == "boom"


@pytest.mark.asyncio
async def test_probe_api_forwards_query_params(monkeypatch):
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"items": [{"id": 1}], "paging": {"offset": 0, "limit": 1}})

    _patch_fetcher(monkeypatch, handler)

    out = await tasks.probe_api(
        url="https://api.example.com/items",
        headers={"X-Api-Key": "k", "Accept": "application/json"},
        query_params={"limit": "1"},
    )

    assert seen[0].url.params["limit"] == "1"
    assert out["ok"] is True
    assert out["pagination"]["type"] == "offset"
    assert out["queryParams"] == {"limit": "1"}
    assert out["headers"] == {"X-Api-Key": "<masked>", "Accept": "application/json"}


@pytest.mark.parametrize(
    "url, message",
    [
        (None, "URL is required"),
        ("", "URL is required"),
        ("not a url", "Invalid URL format"),
        ("ftp://example.com/file", "Invalid URL format"),
        ("http://[::1", "Invalid URL format"),
        ("http://example.com:99999/", "Invalid URL format"),
    ],
)
def test_probe_api_validates_url(url, message):
    out = _run(tasks.probe_api(url=url))

    assert out["ok"] is False
    assert out["message"] == message
    assert out["errorType"] == "VALIDATION_ERROR"


def test_probe_api_unexpected_error_is_reported(monkeypatch):
    class _Broken:
        async def fetch_with_retry(self, *args, **kwargs):
            raise KeyError("boom")

    monkeypatch.setattr(tasks, "_make_fetcher", lambda: _Broken())

    out = _run(tasks.probe_api(url="https://api.example.com/"))

    assert out["ok"] is False
    assert out["errorType"] == "INTERNAL_ERROR"
    assert out["message"].startswith("Unexpected error:")


# ---------------------------------------------------------------------------
# probe_sample
# ---------------------------------------------------------------------------


def test_probe_sample_success():
    out = _run(tasks.probe_sample('[{"id":1,"name":"A"},{"id":2,"name":"B"}]'))

    assert out["ok"] is True
    assert out["source"] == "pasted-sample"
    assert out["samplePath"] == "$"
    assert [(f["name"], f["type"]) for f in out["fields"]] == [("id", "integer"), ("name", "string")]
    assert out["pagination"] is None


def test_probe_sample_invalid_json():
    out = _run(tasks.probe_sample("{oops"))

    assert out["ok"] is False
    assert out["errorType"] == "PARSE_ERROR"
    assert "Invalid JSON" in out["message"]


def test_probe_sample_empty():
    out = _run(tasks.probe_sample("   "))

    assert out["ok"] is False
    assert out["errorType"] == "VALIDATION_ERROR"
    assert out["message"] == "Sample JSON is required"


def test_probe_sample_without_records():
    out = _run(tasks.probe_sample('{"status": "ok"}'))

    assert out["ok"] is False
    assert out["errorType"] == "SCHEMA_INFERENCE_FAILED"
    assert "array of objects" in out["hints"]


# ---------------------------------------------------------------------------
# generate_config
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_generate_full_config_from_probe_result(monkeypatch, tmp_path):
    monkeypatch.setenv("TOOLJET_PROBE_MOCK_MODE", "1")

    probed = await tasks.probe_api(
        url="http://localhost:3001/orders?page=1&limit=10",
        headers={"Authorization": "Bearer demo"},
    )
    out = await tasks.generate_config(schema=probed, output_dir=str(tmp_path))

    assert out["ok"] is True
    assert out["format"] == "full"
    assert re.fullmatch(
        r"tooljet-localhost-3001-orders-page-1-limit-10-\d{4}-\d{2}-\d{2}\.json",
        out["filename"],
    )

    config = out["config"]
    assert config["version"] == "1.0.0"
    assert config["datasource"]["url"] == "http://localhost:3001/orders?page=1&limit=10"
    assert config["datasource"]["headers"] == {"Authorization": "<masked>"}
    assert config["components"]["table"]["dataBinding"] == "{{datasource.data.orders}}"
    assert config["components"]["pagination"]["type"] == "page"
    assert config["metadata"]["fieldCount"] == 5

    written = tmp_path / out["filename"]
    assert out["path"] == str(written)
    assert json.loads(written.read_text(encoding="utf-8")) == config


def test_generate_datasource_format_with_custom_filename():
    schema = {
        "url": "https://api.example.com/users",
        "samplePath": "$",
        "fields": [{"name": "id", "type": "integer", "sample": 1}],
        "headers": {"Authorization": "Bearer xyz"},
    }

    out = _run(tasks.generate_config(schema=schema, format="datasource", filename="users.json"))

    assert out["ok"] is True
    assert out["filename"] == "users.json"
    assert "path" not in out
    assert out["config"]["datasource"]["headers"]["Authorization"] == "<masked>"
    assert out["config"]["samplePath"] == "$"
    assert out["config"]["pagination"] is None


def test_generate_uses_output_dir_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("TOOLJET_PROBE_OUTPUT_DIR", str(tmp_path / "exports"))
    schema = {"url": "https://x.test/a", "fields": []}

    out = _run(tasks.generate_config(schema=schema, filename="../escape.json"))

    assert out["ok"] is True
    assert out["path"] == str(tmp_path / "exports" / "escape.json")
    assert (tmp_path / "exports" / "escape.json").exists()


@pytest.mark.parametrize(
    "schema, fmt, message",
    [
        (None, "full", "Schema is required"),
        ({"samplePath": "$"}, "full", "Schema must include fields array"),
        ({"fields": "id"}, "full", "Schema must include fields array"),
        ({"fields": []}, "yaml", "Unsupported format"),
    ],
)
def test_generate_validation(schema, fmt, message):
    out = _run(tasks.generate_config(schema=schema, format=fmt))

    assert out["ok"] is False
    assert out["errorType"] == "VALIDATION_ERROR"
    assert out["message"].startswith(message)


# ---------------------------------------------------------------------------
# Misc tasks and registration
# ---------------------------------------------------------------------------


def test_ping_and_config_info(monkeypatch):
    monkeypatch.setenv("TOOLJET_PROBE_MOCK_MODE", "yes")
    monkeypatch.setenv("TOOLJET_PROBE_MAX_RETRIES", "4")

    assert _run(tasks.ping()) == {"ok": True, "mock_mode": True}

    info = _run(tasks.get_config_info())
    assert info["mock_mode"] is True
    assert info["fetch"]["max_retries"] == 4
    assert info["inference"]["sample_size"] == 5


class DummyServer:
    def __init__(self) -> None:
        self.tools = {}

    def tool(self, *args, **kwargs):
        def decorator(fn):
            self.tools[kwargs["name"]] = fn
            return fn

        return decorator


def test_register_tools_exposes_all_tasks():
    server = DummyServer()
    tasks.register_tools(server)

    assert set(server.tools) == {
        "tooljet_probe_ping",
        "tooljet_probe_api",
        "tooljet_probe_sample",
        "tooljet_probe_generate",
        "tooljet_probe_get_config",
    }


def test_registered_sample_tool_delegates():
    server = DummyServer()
    tasks.register_tools(server)

    out = _run(server.tools["tooljet_probe_sample"](sample='{"data": [{"id": 1.5}]}'))

    assert out["ok"] is True
    assert out["samplePath"] == "$.data"
    assert out["fields"][0]["type"] == "number"
