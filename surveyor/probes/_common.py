"""Helpers shared by the built-in probes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from surveyor.models.errors import ProbeFailure

if TYPE_CHECKING:
    from surveyor.models.scan import ScanConfig


def section(config: ScanConfig, path: str) -> dict[str, Any]:
    """Return a mapping from the scan config or fail the probe on a bad shape."""
    value = config.lookup(path)
    if not isinstance(value, dict):
        msg = f"{path} must be a mapping, got {type(value).__name__}"
        raise ProbeFailure(msg)
    return value


def text_of(value: Any) -> str:
    return "" if value is None else str(value).strip()
