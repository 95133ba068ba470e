"""Framework-free request handlers for the scan and generate-actions endpoints.

Each handler takes a decoded JSON payload and returns ``(status, body)`` so
any web framework can mount it. Configuration problems map to 400, everything
else to 500 with a machine-readable ``kind``.
"""

from __future__ import annotations

import logging
from typing import Any

from surveyor.config import Settings
from surveyor.core.scanner import SystemScanner
from surveyor.engine.generator import ActionGenerator
from surveyor.models.errors import ConfigError, RuleSetError
from surveyor.models.feature import FeatureSet

logger = logging.getLogger(__name__)

Response = tuple[int, dict[str, Any]]


def _error(status: int, kind: str, message: str, **extra: Any) -> Response:
    return status, {"error": message, "kind": kind, **extra}


async def handle_scan(payload: Any, scanner: SystemScanner | None = None) -> Response:
    scanner = scanner or SystemScanner()
    try:
        result = await scanner.scan(payload)
    except ConfigError as e:
        return _error(400, e.kind, str(e), errors=e.errors)
    except Exception as e:
        logger.exception("Scan failed")
        return _error(500, "internal_error", str(e) or "Scan failed")
    return 200, result.to_payload()


def handle_generate_actions(
    payload: Any,
    generator: ActionGenerator | None = None,
    settings: Settings | None = None,
) -> Response:
    if not isinstance(payload, dict) or "features" not in payload:
        return _error(400, "invalid_features", "request body must contain 'features'")
    try:
        features = FeatureSet.from_payload(payload["features"])
    except (TypeError, ValueError) as e:
        return _error(400, "invalid_features", str(e))

    try:
        generator = generator or ActionGenerator.from_settings(settings or Settings())
        plan = generator.generate_actions(features)
    except RuleSetError as e:
        logger.error("Rule set error: %s", e)
        return _error(500, e.kind, str(e))
    except Exception as e:
        logger.exception("Action generation failed")
        return _error(500, "internal_error", str(e) or "Failed to generate actions")
    return 200, plan.to_payload()
