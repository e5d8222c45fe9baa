# ToolJet API Probe MCP Server
# File: models.py
# Version: v1

"""Domain models used by the ToolJet API Probe MCP server.

``to_dict()`` emits the camelCase shape that downstream consumers (and the
ToolJet import format) expect.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class FetchResult:
    """Uniform outcome of one logical fetch (including all retries)."""

    success: bool
    # 0 means no response was ever received.
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    # Whether ``body`` came out of JSON decoding (a JSON string is still JSON).
    is_json: bool = False
    status_text: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def network_error(self) -> bool:
        return self.status == 0


@dataclass
class Field:
    """One inferred record field."""

    name: str
    type: str
    sample: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type, "sample": self.sample}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Field":
        return cls(
            name=str(raw.get("name", "")),
            type=str(raw.get("type") or "string"),
            sample=raw.get("sample"),
        )


@dataclass
class Pagination:
    """Detected pagination convention.

    ``meta_paths`` point into the original response using the key names that
    were actually found (``meta.per_page``), not the canonical param names.
    """

    type: str
    limit_param: Optional[str] = "limit"
    page_param: Optional[str] = None
    offset_param: Optional[str] = None
    meta_paths: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type}
        if self.page_param is not None:
            out["pageParam"] = self.page_param
        if self.offset_param is not None:
            out["offsetParam"] = self.offset_param
        if self.limit_param is not None:
            out["limitParam"] = self.limit_param
        out["metaPaths"] = dict(self.meta_paths)
        return out

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Pagination":
        return cls(
            type=str(raw.get("type") or "page"),
            limit_param=raw.get("limitParam", raw.get("limit_param")),
            page_param=raw.get("pageParam", raw.get("page_param")),
            offset_param=raw.get("offsetParam", raw.get("offset_param")),
            meta_paths=dict(raw.get("metaPaths", raw.get("meta_paths")) or {}),
        )


@dataclass
class Schema:
    """Inferred structure of an API response.

    The request context (url / headers / query params) is optional and only
    used when generating a ToolJet datasource from the schema.
    """

    sample_path: str
    fields: List[Field] = field(default_factory=list)
    pagination: Optional[Pagination] = None

    url: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "samplePath": self.sample_path,
            "fields": [f.to_dict() for f in self.fields],
            "pagination": self.pagination.to_dict() if self.pagination else None,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Schema":
        """Rebuild a schema from a JSON object (camelCase or snake_case keys)."""
        raw_fields = raw.get("fields") or []
        raw_pagination = raw.get("pagination")
        sample_path = raw.get("samplePath", raw.get("sample_path"))

        return cls(
            sample_path=str(sample_path or "$"),
            fields=[Field.from_dict(f) for f in raw_fields if isinstance(f, dict)],
            pagination=(
                Pagination.from_dict(raw_pagination)
                if isinstance(raw_pagination, dict)
                else None
            ),
            url=raw.get("url"),
            headers=dict(raw.get("headers") or {}),
            query_params=dict(raw.get("queryParams", raw.get("query_params")) or {}),
        )
