# ToolJet API Probe MCP Server
# File: schema.py
# Version: v1

"""Schema inference for API responses.

Given an already-decoded JSON payload, locate the record array, infer a
type tag per field from a small sample of records and detect common
pagination conventions. Everything here is pure: no HTTP, no I/O.

Type tags are ``null``, ``boolean``, ``integer``, ``number``, ``string``,
``object`` and ``array``. A field seen with several tags gets a union tag:
the distinct tags sorted and joined with ``|`` (``boolean|number|string``).
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional

from .errors import ParseError, ValidationError
from .models import Field, Pagination, Schema

DEFAULT_SAMPLE_SIZE = 5

PAGE_KEYS = ("page", "current_page", "currentPage")
PER_PAGE_KEYS = ("per_page", "page_size", "perPage", "pageSize")
TOTAL_KEYS = ("total", "total_count", "totalCount")


def _first_present(container: Mapping[str, Any], keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        if key in container:
            return key
    return None


def find_array_path(data: Any) -> Optional[str]:
    """Return the first key of ``data`` holding a non-empty list.

    Returns None for a top-level list (the records are the root, ``$``),
    for scalars and for objects without any array-valued key.
    """
    if not isinstance(data, dict):
        return None

    for key, value in data.items():
        if isinstance(value, list) and value:
            return key

    return None


def infer_type(value: Any) -> str:
    """Return the type tag of a single JSON value."""
    if value is None:
        return "null"

    # bool is a subclass of int, so it must be tested first.
    if isinstance(value, bool):
        return "boolean"

    if isinstance(value, list):
        return "array"

    if isinstance(value, dict):
        return "object"

    if isinstance(value, int):
        return "integer"

    if isinstance(value, float):
        return "integer" if value.is_integer() else "number"

    return "string"


def infer_fields(record: Any) -> List[Field]:
    """Tag every key of one sample record. Non-object records give no fields."""
    if not isinstance(record, dict):
        return []

    return [
        Field(name=str(key), type=infer_type(value), sample=value)
        for key, value in record.items()
    ]


def merge_field_types(samples: List[Any]) -> List[Field]:
    """Merge per-record fields into a unique, first-seen-ordered list.

    The carried ``sample`` is the value from the first record containing the
    field.
    """
    if not samples:
        return []

    merged: Dict[str, Dict[str, Any]] = {}

    for sample in samples:
        for f in infer_fields(sample):
            entry = merged.get(f.name)
            if entry is None:
                merged[f.name] = {"types": {f.type}, "sample": f.sample}
            else:
                entry["types"].add(f.type)

    fields: List[Field] = []
    for name, entry in merged.items():
        types = sorted(entry["types"])
        fields.append(
            Field(
                name=name,
                type=types[0] if len(types) == 1 else "|".join(types),
                sample=entry["sample"],
            )
        )

    return fields


def detect_pagination(
    data: Any,
    headers: Optional[Mapping[str, str]] = None,  # noqa: ARG001
) -> Optional[Pagination]:
    """Detect page- or offset-based pagination metadata.

    Scans the payload's object-valued properties in order; the first one
    carrying a page signature (page key plus per-page or total key) or an
    offset signature (``offset`` plus ``limit``) wins. Page-based is tested
    first within each container.
    """
    if not isinstance(data, dict):
        return None

    for key, value in data.items():
        if not isinstance(value, dict):
            continue

        page_key = _first_present(value, PAGE_KEYS)
        per_page_key = _first_present(value, PER_PAGE_KEYS)
        total_key = _first_present(value, TOTAL_KEYS)

        if page_key and (per_page_key or total_key):
            # Missing synonyms fall back to the last spelling in each set.
            per_page_key = per_page_key or PER_PAGE_KEYS[-1]
            total_key = total_key or TOTAL_KEYS[-1]
            return Pagination(
                type="page",
                page_param="page",
                limit_param="limit",
                meta_paths={
                    "currentPage": f"{key}.{page_key}",
                    "perPage": f"{key}.{per_page_key}",
                    "total": f"{key}.{total_key}",
                },
            )

        if "offset" in value and "limit" in value:
            return Pagination(
                type="offset",
                offset_param="offset",
                limit_param="limit",
                meta_paths={
                    "offset": f"{key}.offset",
                    "limit": f"{key}.limit",
                    "total": f"{key}.total",
                },
            )

    return None


def infer_schema(
    data: Any,
    headers: Optional[Mapping[str, str]] = None,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> Optional[Schema]:
    """Infer a Schema from a decoded payload, or None if no records exist."""
    if data is None:
        return None

    if isinstance(data, list):
        if not data:
            return None
        sample_path = "$"
        samples = data[:sample_size]
    elif isinstance(data, dict):
        array_key = find_array_path(data)
        if array_key is None:
            return None
        sample_path = f"$.{array_key}"
        samples = data[array_key][:sample_size]
    else:
        return None

    fields = merge_field_types(samples)

    # Top-level arrays carry no room for pagination metadata.
    pagination = None if isinstance(data, list) else detect_pagination(data, headers)

    return Schema(sample_path=sample_path, fields=fields, pagination=pagination)


def parse_sample(text: Optional[str]) -> Any:
    """Decode a pasted sample payload.

    Raises ValidationError for an empty sample and ParseError for text that
    is not valid JSON.
    """
    if text is None or not str(text).strip():
        raise ValidationError("Sample JSON is required")

    try:
        return json.loads(text)
    except ValueError as exc:
        raise ParseError(
            "Invalid JSON: Could not parse the sample data",
            hints="Please ensure the pasted data is valid JSON format.",
        ) from exc
