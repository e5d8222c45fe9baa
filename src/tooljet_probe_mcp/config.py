# ToolJet API Probe MCP Server
# File: config.py
# Version: v1

"""Configuration loading for the ToolJet API Probe MCP Server."""

from __future__ import annotations

from dataclasses import dataclass
import os


def _parse_bool_env(name: str, default: bool = False) -> bool:
    """Parse a boolean-like environment variable.

    Accepts 1/0, true/false, yes/no, on/off (case-insensitive).
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def _parse_int_env(
    name: str,
    default: int,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    """Parse an int environment variable with clamping and safe fallback."""
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        value = int(default)
    else:
        try:
            value = int(str(raw).strip())
        except ValueError:
            value = int(default)

    if min_value is not None and value < min_value:
        value = min_value
    if max_value is not None and value > max_value:
        value = max_value

    return value


@dataclass
class ProbeConfig:
    """Tunables for probing APIs and generating ToolJet configs.

    Retry / timeout values are the defaults used by the fetcher when a caller
    does not pass its own.
    """

    max_retries: int = 2
    initial_delay_ms: int = 500
    timeout_ms: int = 10000

    sample_size: int = 5
    snippet_length: int = 500

    verify_tls: bool = True
    mock_mode: bool = False

    # Where generated configs are written; None keeps them in-memory only.
    output_dir: str | None = None

    @classmethod
    def from_env(cls) -> "ProbeConfig":
        """Create configuration from environment variables."""
        max_retries = _parse_int_env(
            "TOOLJET_PROBE_MAX_RETRIES", default=2, min_value=0, max_value=10
        )
        initial_delay_ms = _parse_int_env(
            "TOOLJET_PROBE_INITIAL_DELAY_MS", default=500, min_value=0, max_value=60000
        )
        timeout_ms = _parse_int_env(
            "TOOLJET_PROBE_TIMEOUT_MS", default=10000, min_value=100, max_value=120000
        )
        sample_size = _parse_int_env(
            "TOOLJET_PROBE_SAMPLE_SIZE", default=5, min_value=1, max_value=100
        )
        snippet_length = _parse_int_env(
            "TOOLJET_PROBE_SNIPPET_LENGTH", default=500, min_value=50, max_value=10000
        )

        verify_tls = _parse_bool_env("TOOLJET_PROBE_VERIFY_TLS", default=True)
        mock_mode = _parse_bool_env("TOOLJET_PROBE_MOCK_MODE", default=False)

        output_dir = (os.getenv("TOOLJET_PROBE_OUTPUT_DIR") or "").strip() or None

        return cls(
            max_retries=max_retries,
            initial_delay_ms=initial_delay_ms,
            timeout_ms=timeout_ms,
            sample_size=sample_size,
            snippet_length=snippet_length,
            verify_tls=verify_tls,
            mock_mode=mock_mode,
            output_dir=output_dir,
        )
