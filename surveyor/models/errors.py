"""Error taxonomy for scanning and action planning."""

from __future__ import annotations


class SurveyorError(Exception):
    """Base class for all surveyor errors."""

    kind = "surveyor_error"


class ConfigError(SurveyorError):
    """Malformed or incomplete scan configuration, raised before any probe runs."""

    kind = "config_error"

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or [message]


class ProbeFailure(SurveyorError):
    """A single probe's internal fault. Always contained by the probe boundary."""

    kind = "probe_failure"


class RuleSetError(SurveyorError):
    """Structural defect in a rule set (unknown reference, cycle, duplicate id)."""

    kind = "ruleset_error"


class TimeoutExceeded(SurveyorError):
    """Scan-level or probe-level timeout. Recorded as a diagnostic, never raised past the scanner."""

    kind = "timeout"
