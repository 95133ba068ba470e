"""Tests for concurrent probe aggregation, timeouts and partial results."""

import asyncio
import logging
from typing import ClassVar

from conftest import FailingProbe, SlowProbe, SmsOnlyProbe, StaticProbe

from surveyor.core.aggregator import SCAN_TIMEOUT_ERROR, FeatureAggregator
from surveyor.core.probe import BaseProbe, ProbeContext, ProbeMeta
from surveyor.models.feature import FeatureCategory
from surveyor.models.scan import ScanConfig


class DelayedProbe(BaseProbe):
    """Reports channel.sms at a fixed confidence after a delay."""

    delay: float = 0.0
    confidence: float = 0.5

    meta: ClassVar[ProbeMeta] = ProbeMeta(
        name="delayed", display_name="Delayed",
        category=FeatureCategory.CHANNEL, timeout=5.0,
    )

    async def detect(self, config, ctx):
        await asyncio.sleep(self.delay)
        return [self.feature("channel.sms", self.confidence)]


def _delayed(name, delay, confidence):
    cls = type(name, (DelayedProbe,), {
        "delay": delay,
        "confidence": confidence,
        "meta": DelayedProbe.meta.model_copy(update={"name": name}),
    })
    return cls()


def _ctx_factory(settings):
    return lambda probe: ProbeContext(settings=settings, log=logging.getLogger("test"))


class TestFeatureAggregator:
    async def test_no_probes(self, sms_config, settings):
        fs = await FeatureAggregator().aggregate([], sms_config, _ctx_factory(settings), 1.0)
        assert len(fs) == 0
        assert fs.diagnostics == []

    async def test_partial_failure(self, settings):
        cfg = ScanConfig(
            tenant_id="t", industry="banking", channels=["sms"],
            environment={"static": {"channel.ivr": 0.7, "integration.crm": 0.9}},
        )
        probes = [StaticProbe(), FailingProbe(), SmsOnlyProbe()]
        fs = await FeatureAggregator().aggregate(probes, cfg, _ctx_factory(settings), 5.0)
        assert fs.ids == ["channel.ivr", "channel.sms", "integration.crm"]
        failed = [d for d in fs.diagnostics if d.status == "failed"]
        assert len(failed) == 1
        assert failed[0].probe_id == "failing"

    async def test_diagnostics_in_registration_order(self, sms_config, settings):
        probes = [_delayed("first", 0.05, 0.5), _delayed("second", 0.0, 0.5)]
        fs = await FeatureAggregator().aggregate(probes, sms_config, _ctx_factory(settings), 5.0)
        assert [d.probe_id for d in fs.diagnostics] == ["first", "second"]

    async def test_tie_prefers_registration_not_completion(self, sms_config, settings):
        # "late" registers first but finishes last: it still wins the tie
        probes = [_delayed("late", 0.05, 0.8), _delayed("early", 0.0, 0.8)]
        fs = await FeatureAggregator().aggregate(probes, sms_config, _ctx_factory(settings), 5.0)
        assert fs.get("channel.sms").source_probe == "late"

    async def test_higher_confidence_wins(self, sms_config, settings):
        probes = [_delayed("weak", 0.0, 0.3), _delayed("strong", 0.02, 0.9)]
        fs = await FeatureAggregator().aggregate(probes, sms_config, _ctx_factory(settings), 5.0)
        assert fs.get("channel.sms").confidence == 0.9

    async def test_probe_timeout_does_not_block_others(self, sms_config, settings):
        probes = [SlowProbe(), SmsOnlyProbe()]
        fs = await FeatureAggregator().aggregate(probes, sms_config, _ctx_factory(settings), 5.0)
        assert "channel.sms" in fs
        slow = next(d for d in fs.diagnostics if d.probe_id == "slow")
        assert slow.status == "failed"

    async def test_global_timeout_abandons_pending(self, sms_config, settings):
        stuck = _delayed("stuck", 10.0, 0.9)
        probes = [stuck, SmsOnlyProbe()]
        loop = asyncio.get_running_loop()
        started = loop.time()
        fs = await FeatureAggregator(cancel_grace=0.05).aggregate(
            probes, sms_config, _ctx_factory(settings), 0.2,
        )
        assert loop.time() - started < 2.0
        diag = {d.probe_id: d for d in fs.diagnostics}
        assert diag["stuck"].status == "failed"
        assert diag["sms_only"].status == "ok"
        assert fs.get("channel.sms").source_probe == "sms_only"

    async def test_scan_timeout_marks_pending_probes(self, sms_config, settings):
        class Stubborn(BaseProbe):
            meta: ClassVar[ProbeMeta] = ProbeMeta(
                name="stubborn", display_name="Stubborn",
                category=FeatureCategory.CHANNEL, timeout=60.0,
            )

            async def run(self, config, ctx, timeout=None):
                # Ignores the per-probe budget entirely
                await asyncio.sleep(10)

            async def detect(self, config, ctx):
                return []

        fs = await FeatureAggregator(cancel_grace=0.05).aggregate(
            [Stubborn()], sms_config, _ctx_factory(settings), 0.1,
        )
        assert fs.diagnostics[0].error == SCAN_TIMEOUT_ERROR

    async def test_repeat_aggregation_is_identical(self, sms_config, settings):
        probes = [_delayed("a", 0.01, 0.6), _delayed("b", 0.0, 0.6), SmsOnlyProbe()]
        first = await FeatureAggregator().aggregate(probes, sms_config, _ctx_factory(settings), 5.0)
        second = await FeatureAggregator().aggregate(probes, sms_config, _ctx_factory(settings), 5.0)
        assert first.features == second.features
