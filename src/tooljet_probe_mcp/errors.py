# ToolJet API Probe MCP Server
# File: errors.py
# Version: v1

"""Error taxonomy shared by the fetcher, the schema parser and the tools.

Every error maps onto a small "not ok" result dict via ``to_result()`` so
MCP tools never surface raw exceptions to the agent.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


VALIDATION_ERROR = "VALIDATION_ERROR"
NETWORK_ERROR = "NETWORK_ERROR"
TIMEOUT = "TIMEOUT"
HTTP_ERROR = "HTTP_ERROR"
PARSE_ERROR = "PARSE_ERROR"
SCHEMA_INFERENCE_FAILED = "SCHEMA_INFERENCE_FAILED"
INTERNAL_ERROR = "INTERNAL_ERROR"


class ProbeError(RuntimeError):
    """Base class for expected, reportable failures."""

    error_type = INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        hints: Optional[str] = None,
        status: Optional[int] = None,
        error_type: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.hints = hints
        self.status = status
        if error_type:
            self.error_type = error_type

    def to_result(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"ok": False, "message": self.message}
        if self.status is not None:
            out["status"] = self.status
        if self.hints:
            out["hints"] = self.hints
        out["errorType"] = self.error_type
        return out


class ValidationError(ProbeError):
    """Caller input is missing or malformed (URL, sample text, schema)."""

    error_type = VALIDATION_ERROR


class NetworkError(ProbeError):
    """No response was ever received from the target API."""

    error_type = NETWORK_ERROR


class HTTPError(ProbeError):
    """The target API answered with a non-2xx status."""

    error_type = HTTP_ERROR


class ParseError(ProbeError):
    """A response or pasted sample is not valid JSON."""

    error_type = PARSE_ERROR


class SchemaInferenceError(ProbeError):
    """Valid JSON, but no record array could be located."""

    error_type = SCHEMA_INFERENCE_FAILED
