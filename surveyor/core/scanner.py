"""SystemScanner — the facade external callers use to scan a tenant."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from surveyor.config import Settings
from surveyor.core.aggregator import SCAN_TIMEOUT_ERROR, FeatureAggregator
from surveyor.core.probe import BaseProbe, ProbeContext
from surveyor.core.registry import ProbeRegistry, default_registry
from surveyor.models.scan import ScanConfig, ScanResult
from surveyor.utils.http import AsyncHttpClient

logger = logging.getLogger(__name__)


class SystemScanner:
    """Validates a scan config, selects probes, and drives the aggregator.

    Holds no per-scan state: concurrent ``scan`` calls for different tenants
    need no coordination.
    """

    def __init__(
        self,
        registry: ProbeRegistry | None = None,
        settings: Settings | None = None,
        http: AsyncHttpClient | None = None,
    ):
        self.registry = registry if registry is not None else default_registry()
        self.settings = settings or Settings()
        self._http = http

    def select_probes(self, config: ScanConfig) -> list[BaseProbe]:
        return self.registry.applicable(config)

    async def scan(self, config: ScanConfig | Mapping[str, Any]) -> ScanResult:
        """Scan one tenant. Raises ConfigError before any probe runs on bad input."""
        cfg = ScanConfig.parse(config)
        probes = self.select_probes(cfg)
        timeout = cfg.timeout or self.settings.scan.timeout

        logger.info(
            "Scanning tenant %s (%s): %d probe(s), channels=%s, timeout=%.1fs",
            cfg.tenant_id, cfg.industry, len(probes), ",".join(cfg.channels), timeout,
        )

        started_at = datetime.now(UTC)
        start = time.monotonic()

        http = self._http
        owns_http = False
        if http is None and any(p.meta.requires_http for p in probes):
            http = AsyncHttpClient.from_settings(self.settings.http)
            owns_http = True

        def _context(probe: BaseProbe) -> ProbeContext:
            return ProbeContext(
                settings=self.settings,
                http=http if probe.meta.requires_http else None,
                params=cfg.params_for(probe.meta.name),
                log=logging.getLogger(f"surveyor.probes.{probe.meta.name}"),
            )

        aggregator = FeatureAggregator(max_concurrency=self.settings.scan.max_concurrency)
        try:
            features = await aggregator.aggregate(probes, cfg, _context, timeout)
        finally:
            if owns_http and http is not None:
                await http.close()

        result = ScanResult(
            tenant_id=cfg.tenant_id,
            industry=cfg.industry,
            features=features,
            duration_ms=(time.monotonic() - start) * 1000,
            timed_out=any(d.error == SCAN_TIMEOUT_ERROR for d in features.diagnostics),
            started_at=started_at,
        )
        logger.info(
            "Scan of %s finished: %d feature(s), %d failed, %d skipped in %.0fms%s",
            cfg.tenant_id, result.total_features, len(result.failed),
            len(result.skipped), result.duration_ms,
            " (timed out)" if result.timed_out else "",
        )
        return result

    def scan_sync(self, config: ScanConfig | Mapping[str, Any]) -> ScanResult:
        """Blocking wrapper for callers without an event loop."""
        return asyncio.run(self.scan(config))
