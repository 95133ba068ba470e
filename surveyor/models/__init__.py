"""Data models for scans, features and action plans."""

from __future__ import annotations

from surveyor.models.action import Action, ActionPlan, ActionTemplate, DroppedAction
from surveyor.models.errors import (
    ConfigError,
    ProbeFailure,
    RuleSetError,
    SurveyorError,
    TimeoutExceeded,
)
from surveyor.models.feature import Feature, FeatureCategory, FeatureSet, ProbeDiagnostic
from surveyor.models.scan import CHANNELS, INTEGRATIONS, Industry, ScanConfig, ScanResult

__all__ = [
    "CHANNELS",
    "INTEGRATIONS",
    "Action",
    "ActionPlan",
    "ActionTemplate",
    "ConfigError",
    "DroppedAction",
    "Feature",
    "FeatureCategory",
    "FeatureSet",
    "Industry",
    "ProbeDiagnostic",
    "ProbeFailure",
    "RuleSetError",
    "ScanConfig",
    "ScanResult",
    "SurveyorError",
    "TimeoutExceeded",
]
