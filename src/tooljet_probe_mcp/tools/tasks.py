# ToolJet API Probe MCP Server
# File: tools/tasks.py
# Version: v1
#
# NOTE: This module is the single place where we define "business logic"
# that is exposed as MCP tools.  The MCP transport simply calls
# `register_tools(server)` to wire these up.

from __future__ import annotations

import json
import logging
import math
import time
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

from ..config import ProbeConfig
from ..errors import (
    INTERNAL_ERROR,
    HTTPError,
    NetworkError,
    ParseError,
    ProbeError,
    SchemaInferenceError,
    ValidationError,
)
from ..fetcher import Fetcher, generate_hints, is_json_response, truncate
from ..generator import (
    generate_datasource_json,
    generate_filename,
    generate_import_wrapper,
    mask_sensitive_headers,
)
from ..models import FetchResult, Schema
from ..schema import infer_schema, parse_sample

logger = logging.getLogger(__name__)

SAMPLE_SNIPPET_LENGTH = 1000

MANUAL_SAMPLE_HINT = (
    "The API returned non-JSON data. "
    "Try pasting a sample JSON response manually to continue."
)

GENERATE_FORMATS = ("full", "datasource")


# ---------------------------------------------------------------------------
# Internal helpers (errors, mock fetcher, validation)
# ---------------------------------------------------------------------------


def _make_error(
    code: str,
    message: str,
    hints: Optional[str] = None,
) -> Dict[str, Any]:
    """Small, LLM-friendly "not ok" shape for unexpected failures."""
    err: Dict[str, Any] = {"ok": False, "message": message}
    if hints:
        err["hints"] = hints
    err["errorType"] = code
    return err


_MOCK_CUSTOMERS = [
    "John Doe",
    "Jane Smith",
    "Bob Johnson",
    "Alice Williams",
    "Charlie Brown",
]
_MOCK_STATUSES = ["completed", "pending", "shipped"]


class MockFetcher:
    """Small in-memory stand-in for Fetcher.

    Activated when TOOLJET_PROBE_MOCK_MODE is truthy. Serves:

    - ``/orders`` – paginated orders (``page`` / ``limit`` query params),
      requires a ``Bearer`` Authorization header, else 401
    - ``/html`` – an HTML page, for exercising the non-JSON path
    - anything else – 404
    """

    def __init__(self, config: Optional[ProbeConfig] = None) -> None:
        self._config = config
        self._orders: List[Dict[str, Any]] = [
            {
                "id": i,
                "customer": _MOCK_CUSTOMERS[(i - 1) % len(_MOCK_CUSTOMERS)],
                "amount": round(95.25 + i * 13.5, 2),
                "status": _MOCK_STATUSES[(i - 1) % len(_MOCK_STATUSES)],
                "date": f"2025-01-{i:02d}",
            }
            for i in range(1, 26)
        ]

    async def fetch_with_retry(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        query_params: Optional[Dict[str, str]] = None,
        max_retries: Optional[int] = None,
        initial_delay_ms: Optional[int] = None,
        timeout_ms: Optional[int] = None,
    ) -> FetchResult:
        parsed = urlparse(url)
        params: Dict[str, str] = {k: v[0] for k, v in parse_qs(parsed.query).items()}
        params.update({k: str(v) for k, v in (query_params or {}).items()})

        auth = ""
        for name, value in (headers or {}).items():
            if name.lower() == "authorization":
                auth = str(value)

        path = parsed.path.rstrip("/")
        json_headers = {"content-type": "application/json"}

        if path not in {"/orders", "/html"}:
            return FetchResult(
                success=False,
                status=404,
                status_text="Not Found",
                headers=json_headers,
                body={"error": "Not found"},
                is_json=True,
            )

        if not auth.startswith("Bearer "):
            return FetchResult(
                success=False,
                status=401,
                status_text="Unauthorized",
                headers=json_headers,
                body={"error": "Unauthorized"},
                is_json=True,
            )

        if path == "/html":
            return FetchResult(
                success=True,
                status=200,
                status_text="OK",
                headers={"content-type": "text/html; charset=utf-8"},
                body="<!DOCTYPE html><html><body><h1>This is HTML, not JSON</h1></body></html>",
            )

        page = _positive_int(params.get("page"), 1)
        limit = _positive_int(params.get("limit"), 10)
        start = (page - 1) * limit

        return FetchResult(
            success=True,
            status=200,
            status_text="OK",
            headers=json_headers,
            body={
                "orders": self._orders[start:start + limit],
                "meta": {
                    "page": page,
                    "per_page": limit,
                    "total": len(self._orders),
                    "total_pages": math.ceil(len(self._orders) / limit),
                },
            },
            is_json=True,
        )


def _positive_int(raw: Optional[str], default: int) -> int:
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        value = default
    return value if value > 0 else default


def _make_fetcher(cfg: Optional[ProbeConfig] = None) -> Fetcher:
    """Create a Fetcher from environment variables.

    If TOOLJET_PROBE_MOCK_MODE is truthy, an in-process mock fetcher is
    returned instead of a real HTTP one.

    Note: Callers should prefer invoking this with *no arguments* to keep
    unit tests monkeypatch-friendly.
    """
    cfg = cfg or ProbeConfig.from_env()

    if cfg.mock_mode:
        return MockFetcher(config=cfg)  # type: ignore[return-value]

    return Fetcher(config=cfg)


def _validate_url(url: Optional[str]) -> str:
    if not url or not str(url).strip():
        raise ValidationError("URL is required")

    url = str(url).strip()
    try:
        parsed = urlparse(url)
        parsed.port  # a bad port only raises on access
    except ValueError:
        raise ValidationError("Invalid URL format") from None

    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValidationError("Invalid URL format")

    return url


def _schema_result(schema: Schema, payload: Any) -> Dict[str, Any]:
    out: Dict[str, Any] = {"ok": True}
    out.update(schema.to_dict())
    out["sample"] = truncate(
        json.dumps(payload, ensure_ascii=False, default=str),
        SAMPLE_SNIPPET_LENGTH,
    )
    return out


# ---------------------------------------------------------------------------
# Core async tasks (library-style)
# ---------------------------------------------------------------------------


async def ping() -> Dict[str, Any]:
    cfg = ProbeConfig.from_env()
    return {"ok": True, "mock_mode": bool(cfg.mock_mode)}


async def probe_api(
    url: Optional[str],
    headers: Optional[Dict[str, str]] = None,
    query_params: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Probe ``url`` and infer a schema from its JSON response.

    Every failure comes back as ``{"ok": False, ...}`` with a message, a
    hint and an ``errorType``.
    """
    cfg = ProbeConfig.from_env()
    headers = dict(headers or {})
    query_params = dict(query_params or {})

    try:
        url = _validate_url(url)
        fetcher = _make_fetcher()

        started = time.time()
        result = await fetcher.fetch_with_retry(
            url,
            headers=headers,
            query_params=query_params,
        )
        elapsed_ms = int((time.time() - started) * 1000)

        if result.error:
            raise NetworkError(
                f"Network error: {result.error}",
                hints=generate_hints(result.status, result.error_type),
                status=result.status,
                error_type=result.error_type,
            )

        snippet = truncate(result.body, cfg.snippet_length)

        if not result.success:
            reason = result.status_text or "Request failed"
            out = HTTPError(
                f"HTTP {result.status}: {reason}",
                hints=generate_hints(result.status),
                status=result.status,
            ).to_result()
            out["rawSnippet"] = snippet
            return out

        if not is_json_response(result):
            out = ParseError(
                "Non-JSON response received",
                hints=MANUAL_SAMPLE_HINT,
                status=result.status,
            ).to_result()
            out["contentType"] = result.headers.get("content-type")
            out["rawSnippet"] = snippet
            return out

        schema = infer_schema(result.body, result.headers, sample_size=cfg.sample_size)
        if schema is None:
            out = SchemaInferenceError(
                "Could not infer schema from response",
                hints="The response may be empty or not contain array data.",
                status=result.status,
            ).to_result()
            out["rawSnippet"] = snippet
            return out

        out = _schema_result(schema, result.body)
        out["status"] = result.status
        out["responseTimeMs"] = elapsed_ms
        out["url"] = url
        out["headers"] = mask_sensitive_headers(headers)
        out["queryParams"] = query_params
        return out

    except ProbeError as exc:
        return exc.to_result()
    except Exception as exc:
        logger.exception("Unexpected error while testing %s", url)
        return _make_error(
            INTERNAL_ERROR,
            f"Unexpected error: {exc}",
            hints="An unexpected error occurred while testing the API.",
        )


async def probe_sample(sample: Optional[str]) -> Dict[str, Any]:
    """Infer a schema from a pasted JSON sample (the manual fallback path)."""
    cfg = ProbeConfig.from_env()

    try:
        payload = parse_sample(sample)

        schema = infer_schema(payload, {}, sample_size=cfg.sample_size)
        if schema is None:
            raise SchemaInferenceError(
                "Could not infer schema from sample",
                hints=(
                    "The sample data may be empty or not contain array data. "
                    "Please provide a sample with an array of objects."
                ),
            )

        out = _schema_result(schema, payload)
        out["source"] = "pasted-sample"
        return out

    except ProbeError as exc:
        return exc.to_result()
    except Exception as exc:
        logger.exception("Unexpected error while processing a pasted sample")
        return _make_error(
            INTERNAL_ERROR,
            f"Unexpected error: {exc}",
            hints="An unexpected error occurred while processing the sample.",
        )


async def generate_config(
    schema: Optional[Dict[str, Any]],
    format: str = "full",
    filename: Optional[str] = None,
    output_dir: Optional[str] = None,
) -> Dict[str, Any]:
    """Generate ToolJet JSON from a schema and optionally write it to disk.

    ``format="full"`` yields the import wrapper, ``format="datasource"`` only
    the datasource block. The file is written when ``output_dir`` (or
    TOOLJET_PROBE_OUTPUT_DIR) is set.
    """
    cfg = ProbeConfig.from_env()

    try:
        if not isinstance(schema, dict):
            raise ValidationError("Schema is required")
        if not isinstance(schema.get("fields"), list):
            raise ValidationError("Schema must include fields array")
        if format not in GENERATE_FORMATS:
            raise ValidationError(
                f"Unsupported format '{format}'. Use one of: {', '.join(GENERATE_FORMATS)}."
            )

        parsed = Schema.from_dict(schema)

        if format == "datasource":
            config = generate_datasource_json(parsed)
        else:
            config = generate_import_wrapper(parsed)

        download_name = filename or generate_filename(parsed)
        out: Dict[str, Any] = {
            "ok": True,
            "filename": download_name,
            "format": format,
            "config": config,
        }

        target_dir = output_dir or cfg.output_dir
        if target_dir:
            path = Path(target_dir)
            path.mkdir(parents=True, exist_ok=True)
            # Only the base name is honoured so callers cannot escape target_dir.
            target = path / Path(download_name).name
            target.write_text(json.dumps(config, indent=2, ensure_ascii=False), encoding="utf-8")
            logger.info("Wrote ToolJet config to %s", target)
            out["path"] = str(target)

        return out

    except ProbeError as exc:
        return exc.to_result()
    except Exception as exc:
        logger.exception("Failed to generate ToolJet config")
        return _make_error(INTERNAL_ERROR, f"Failed to generate datasource: {exc}")


async def get_config_info() -> Dict[str, Any]:
    """Snapshot of the effective configuration (no secrets live here)."""
    cfg = ProbeConfig.from_env()
    return {
        "mock_mode": bool(cfg.mock_mode),
        "verify_tls": bool(cfg.verify_tls),
        "output_dir": cfg.output_dir,
        "fetch": {
            "max_retries": cfg.max_retries,
            "initial_delay_ms": cfg.initial_delay_ms,
            "timeout_ms": cfg.timeout_ms,
        },
        "inference": {
            "sample_size": cfg.sample_size,
            "snippet_length": cfg.snippet_length,
        },
    }


# ---------------------------------------------------------------------------
# MCP registration
# ---------------------------------------------------------------------------


def register_tools(server: Any) -> None:
    """Register all ToolJet probe tools on the given FastMCP server."""

    @server.tool(name="tooljet_probe_ping", description="Basic health check for the ToolJet API probe server.")
    async def mcp_ping() -> Dict[str, Any]:
        return await ping()

    @server.tool(
        name="tooljet_probe_api",
        description="Call a JSON API (GET) and infer its record schema and pagination style.",
    )
    async def mcp_probe_api(
        url: str,
        headers: Optional[Dict[str, str]] = None,
        query_params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        return await probe_api(url=url, headers=headers, query_params=query_params)

    @server.tool(
        name="tooljet_probe_sample",
        description="Infer a record schema from a pasted JSON sample instead of calling the API.",
    )
    async def mcp_probe_sample(sample: str) -> Dict[str, Any]:
        return await probe_sample(sample=sample)

    @server.tool(
        name="tooljet_probe_generate",
        description="Generate a ToolJet import (format='full') or datasource (format='datasource') JSON from a schema.",
    )
    async def mcp_generate(
        schema: Dict[str, Any],
        format: str = "full",
        filename: Optional[str] = None,
        output_dir: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await generate_config(
            schema=schema,
            format=format,
            filename=filename,
            output_dir=output_dir,
        )

    @server.tool(
        name="tooljet_probe_get_config",
        description="Return the effective probe configuration (retries, timeouts, sample size).",
    )
    async def mcp_get_config() -> Dict[str, Any]:
        return await get_config_info()
