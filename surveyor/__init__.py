"""Surveyor — tenant system scanning and onboarding action planning."""

from __future__ import annotations

__version__ = "1.0.0"

from surveyor.core.scanner import SystemScanner  # noqa: E402
from surveyor.engine.generator import ActionGenerator  # noqa: E402
from surveyor.models import (  # noqa: E402
    Action,
    ActionPlan,
    ConfigError,
    Feature,
    FeatureSet,
    RuleSetError,
    ScanConfig,
    ScanResult,
)

__all__ = [
    "Action",
    "ActionGenerator",
    "ActionPlan",
    "ConfigError",
    "Feature",
    "FeatureSet",
    "RuleSetError",
    "ScanConfig",
    "ScanResult",
    "SystemScanner",
    "__version__",
]
