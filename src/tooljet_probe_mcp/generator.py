# ToolJet API Probe MCP Server
# File: generator.py
# Version: v1

"""Generate ToolJet datasource / import JSON from an inferred Schema."""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Dict, Mapping, Optional

from .models import Schema

IMPORT_VERSION = "1.0.0"
DEFAULT_DATASOURCE_NAME = "API Datasource"

MASKED_VALUE = "<masked>"

# Matched as case-insensitive substrings of the header *name*.
SENSITIVE_HEADERS = (
    "authorization",
    "api-key",
    "api_key",
    "apikey",
    "x-api-key",
    "x-auth-token",
    "token",
    "secret",
    "password",
    "bearer",
)

_FIELD_TYPE_MAP = {
    "integer": "number",
    "number": "number",
    "string": "text",
    "boolean": "boolean",
    "object": "text",
    "array": "text",
    "null": "text",
}

_PROTOCOL_RE = re.compile(r"https?://")
_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")


def mask_sensitive_headers(headers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Replace values of sensitive-looking headers with ``<masked>``.

    The decision is driven by the header name only, so masking twice gives
    the same result.
    """
    if not headers or not isinstance(headers, Mapping):
        return {}

    masked: Dict[str, Any] = {}
    for name, value in headers.items():
        lower_name = str(name).lower()
        is_sensitive = any(s in lower_name for s in SENSITIVE_HEADERS)
        masked[name] = MASKED_VALUE if is_sensitive else value

    return masked


def generate_datasource_json(schema: Schema, name: Optional[str] = None) -> Dict[str, Any]:
    """Build the ``restapi`` datasource block plus the schema it was made from."""
    datasource = {
        "name": name or DEFAULT_DATASOURCE_NAME,
        "type": "restapi",
        "url": schema.url,
        "method": "GET",
        "headers": mask_sensitive_headers(schema.headers),
        "queryParams": dict(schema.query_params or {}),
    }

    return {
        "datasource": datasource,
        "fields": [f.to_dict() for f in schema.fields],
        "samplePath": schema.sample_path or "$",
        "pagination": schema.pagination.to_dict() if schema.pagination else None,
    }


def map_field_type(type_tag: Optional[str]) -> str:
    """Map an inferred type tag to a ToolJet table column type.

    Union tags (``integer|string``) have no single column type and become
    ``text``.
    """
    if type_tag and "|" in type_tag:
        return "text"
    return _FIELD_TYPE_MAP.get(type_tag or "", "text")


def generate_import_wrapper(schema: Schema, name: Optional[str] = None) -> Dict[str, Any]:
    """Build a complete ToolJet import bundle (datasource + table + pagination)."""
    sample_path = schema.sample_path or "$"
    pagination = schema.pagination

    datasource_config = generate_datasource_json(schema, name=name)

    columns = [
        {
            "name": f.name,
            "key": f.name,
            "type": map_field_type(f.type),
            "selector": f"{sample_path}[].{f.name}",
        }
        for f in schema.fields
    ]

    components: Dict[str, Any] = {
        "table": {
            "component": "Table",
            "dataBinding": "{{datasource.data" + sample_path.replace("$", "", 1) + "}}",
            "columns": columns,
        }
    }

    if pagination is not None:
        components["pagination"] = {
            "component": "Pagination",
            "type": pagination.type,
            "pageParam": pagination.page_param or "page",
            "limitParam": pagination.limit_param or "limit",
            "metaPaths": dict(pagination.meta_paths or {}),
        }

    return {
        "version": IMPORT_VERSION,
        "datasource": datasource_config["datasource"],
        "components": components,
        "metadata": {
            "samplePath": sample_path,
            "fieldCount": len(schema.fields),
            "hasPagination": pagination is not None,
        },
    }


def generate_filename(schema: Schema, today: Optional[date] = None) -> str:
    """Return ``tooljet-<url-slug>-<YYYY-MM-DD>.json`` for a download."""
    if today is None:
        today = datetime.now(timezone.utc).date()

    slug = _PROTOCOL_RE.sub("", schema.url or "datasource", count=1)
    slug = _NON_ALNUM_RE.sub("-", slug)[:50]

    return f"tooljet-{slug}-{today.isoformat()}.json"
