"""Shared test fixtures."""

import asyncio
import logging
from typing import ClassVar

import pytest

from surveyor.config import Settings
from surveyor.core.probe import BaseProbe, ProbeContext, ProbeMeta
from surveyor.core.registry import ProbeRegistry
from surveyor.models.errors import ProbeFailure
from surveyor.models.feature import Feature, FeatureCategory, FeatureSet
from surveyor.models.scan import ScanConfig


class StaticProbe(BaseProbe):
    """Reports whatever features are configured in ``environment.static``."""

    meta: ClassVar[ProbeMeta] = ProbeMeta(
        name="static", display_name="Static",
        category=FeatureCategory.CHANNEL, timeout=5.0,
    )

    async def detect(self, config, ctx):
        return [
            self.feature(fid, conf)
            for fid, conf in config.environment.get("static", {}).items()
        ]


class SmsOnlyProbe(BaseProbe):
    meta: ClassVar[ProbeMeta] = ProbeMeta(
        name="sms_only", display_name="SMS Only",
        category=FeatureCategory.CHANNEL, channels=frozenset({"sms"}), timeout=5.0,
    )

    async def detect(self, config, ctx):
        return [self.feature("channel.sms", 0.9, provider="test")]


class IvrOnlyProbe(BaseProbe):
    meta: ClassVar[ProbeMeta] = ProbeMeta(
        name="ivr_only", display_name="IVR Only",
        category=FeatureCategory.CHANNEL, channels=frozenset({"ivr"}), timeout=5.0,
    )

    async def detect(self, config, ctx):
        return [self.feature("channel.ivr", 0.8)]


class FailingProbe(BaseProbe):
    meta: ClassVar[ProbeMeta] = ProbeMeta(
        name="failing", display_name="Failing",
        category=FeatureCategory.CHANNEL, channels=frozenset({"sms"}), timeout=5.0,
    )

    async def detect(self, config, ctx):
        msg = "Intentional error"
        raise RuntimeError(msg)


class RejectingProbe(BaseProbe):
    meta: ClassVar[ProbeMeta] = ProbeMeta(
        name="rejecting", display_name="Rejecting",
        category=FeatureCategory.CHANNEL, channels=frozenset({"sms"}), timeout=5.0,
    )

    async def detect(self, config, ctx):
        msg = "unexpected response shape"
        raise ProbeFailure(msg)


class SlowProbe(BaseProbe):
    meta: ClassVar[ProbeMeta] = ProbeMeta(
        name="slow", display_name="Slow",
        category=FeatureCategory.CHANNEL, channels=frozenset({"sms"}), timeout=0.1,
    )

    async def detect(self, config, ctx):
        await asyncio.sleep(5)
        return [self.feature("channel.slow", 1.0)]


class NeedsBaseUrlProbe(BaseProbe):
    meta: ClassVar[ProbeMeta] = ProbeMeta(
        name="needs_base_url", display_name="Needs base_url",
        category=FeatureCategory.PORTAL, requires=["base_url"], timeout=5.0,
    )

    async def detect(self, config, ctx):
        return [self.feature("portal.login", 0.9)]


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def sms_config():
    return ScanConfig(tenant_id="acme-bank", industry="banking", channels=["sms"])


@pytest.fixture
def ctx(settings):
    return ProbeContext(settings=settings, log=logging.getLogger("test"))


@pytest.fixture
def make_registry():
    def _make(*probe_classes):
        registry = ProbeRegistry()
        for cls in probe_classes:
            registry.register(cls)
        return registry
    return _make


@pytest.fixture
def banking_features():
    return FeatureSet.merge([
        Feature(id="channel.sms", category="channel", confidence=0.9),
        Feature(id="channel.ivr", category="channel", confidence=0.8),
        Feature(id="integration.crm", category="integration", confidence=0.9),
        Feature(id="data.products", category="data", confidence=0.8),
    ])
