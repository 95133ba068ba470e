"""Feature aggregator — runs probes concurrently and merges what they detect."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from surveyor.core.probe import BaseProbe, ProbeContext, ProbeOutcome
from surveyor.models.feature import Feature, FeatureSet, ProbeDiagnostic

if TYPE_CHECKING:
    from surveyor.models.scan import ScanConfig

logger = logging.getLogger(__name__)

SCAN_TIMEOUT_ERROR = "scan timeout exceeded"


class FeatureAggregator:
    """Join point of a scan.

    Every probe gets its own task and its own result slot. Slots are merged in
    probe registration order once all tasks have finished or been abandoned,
    so the merged set does not depend on scheduling.
    """

    def __init__(self, max_concurrency: int = 16, cancel_grace: float = 0.5):
        self.max_concurrency = max_concurrency
        self.cancel_grace = cancel_grace

    async def aggregate(
        self,
        probes: Sequence[BaseProbe],
        config: ScanConfig,
        ctx_factory: Callable[[BaseProbe], ProbeContext],
        timeout: float,
    ) -> FeatureSet:
        if not probes:
            return FeatureSet()

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _run(probe: BaseProbe) -> ProbeOutcome:
            async with semaphore:
                remaining = max(0.0, deadline - loop.time())
                return await probe.run(config, ctx_factory(probe), timeout=remaining)

        tasks = [
            asyncio.create_task(_run(p), name=f"probe:{p.meta.name}") for p in probes
        ]
        _done, pending = await asyncio.wait(tasks, timeout=timeout)

        if pending:
            logger.warning(
                "Scan timeout (%.1fs) reached, abandoning %d probe(s): %s",
                timeout, len(pending),
                ", ".join(t.get_name().removeprefix("probe:") for t in pending),
            )
            for task in pending:
                task.cancel()
            # Give cancelled probes a moment to unwind; results are discarded either way
            await asyncio.wait(pending, timeout=self.cancel_grace)

        slots: list[ProbeOutcome] = []
        for probe, task in zip(probes, tasks, strict=True):
            slots.append(self._collect(probe, task, abandoned=task in pending, timeout=timeout))

        detections: list[Feature] = []
        diagnostics: list[ProbeDiagnostic] = []
        for outcome in slots:
            detections.extend(outcome.features)
            diagnostics.append(outcome.diagnostic)
            logger.debug(
                "Probe %s: %s (%d features, %.0fms)",
                outcome.diagnostic.probe_id, outcome.diagnostic.status,
                len(outcome.features), outcome.diagnostic.duration_ms,
            )

        return FeatureSet.merge(detections, diagnostics)

    @staticmethod
    def _collect(
        probe: BaseProbe,
        task: asyncio.Task[ProbeOutcome],
        *,
        abandoned: bool,
        timeout: float,
    ) -> ProbeOutcome:
        name = probe.meta.name
        if abandoned or task.cancelled():
            return ProbeOutcome(
                [], ProbeDiagnostic.failed(name, SCAN_TIMEOUT_ERROR, timeout * 1000),
            )
        exc = task.exception()
        if exc is not None:
            # BaseProbe.run contains its own faults; this only covers overridden run()s
            logger.error("Probe %s escaped its boundary: %s", name, exc)
            return ProbeOutcome([], ProbeDiagnostic.failed(name, f"{type(exc).__name__}: {exc}"))
        return task.result()
