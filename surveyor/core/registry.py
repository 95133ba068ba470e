"""Probe registry — auto-discovery, registration order, tag lookup."""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
from functools import lru_cache
from typing import TYPE_CHECKING

from surveyor.core.probe import BaseProbe

if TYPE_CHECKING:
    from surveyor.models.scan import ScanConfig

logger = logging.getLogger(__name__)


class ProbeRegistry:
    """Static table of probe classes.

    Registration order is significant: it is the tie-break when two probes
    report the same feature with equal confidence.
    """

    def __init__(self) -> None:
        self._probes: dict[str, type[BaseProbe]] = {}
        self._frozen = False

    def register(self, probe_cls: type[BaseProbe]) -> None:
        if self._frozen:
            msg = f"Registry is frozen, cannot register {probe_cls.meta.name}"
            raise RuntimeError(msg)
        name = probe_cls.meta.name
        if name in self._probes and self._probes[name] is not probe_cls:
            msg = f"Duplicate probe name: {name}"
            raise ValueError(msg)
        self._probes[name] = probe_cls

    def freeze(self) -> ProbeRegistry:
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> type[BaseProbe] | None:
        return self._probes.get(name)

    def all(self) -> list[type[BaseProbe]]:
        return list(self._probes.values())

    @property
    def names(self) -> list[str]:
        return list(self._probes.keys())

    def index_of(self, name: str) -> int:
        return self.names.index(name)

    def by_channel(self, channel: str) -> list[type[BaseProbe]]:
        return [p for p in self._probes.values() if channel in p.meta.channels]

    def by_integration(self, integration: str) -> list[type[BaseProbe]]:
        return [p for p in self._probes.values() if integration in p.meta.integrations]

    def discover(self, package_name: str = "surveyor.probes") -> int:
        """Auto-discover all probes under a package. Returns count found."""
        count = 0
        package = importlib.import_module(package_name)

        for _importer, modname, ispkg in pkgutil.walk_packages(
            package.__path__, prefix=package.__name__ + "."
        ):
            if ispkg:
                continue
            module = importlib.import_module(modname)

            for _name, obj in inspect.getmembers(module, inspect.isclass):
                if (
                    issubclass(obj, BaseProbe)
                    and obj is not BaseProbe
                    and not inspect.isabstract(obj)
                    and obj.__module__ == module.__name__
                    and "meta" in vars(obj)
                ):
                    self.register(obj)
                    count += 1
        logger.debug("Discovered %d probes under %s", count, package_name)
        return count

    def applicable(self, config: ScanConfig) -> list[BaseProbe]:
        """Instantiate the probes whose declared scope intersects the config, in registration order."""
        selected: list[BaseProbe] = []
        for probe_cls in self._probes.values():
            probe = probe_cls()
            if probe.applies_to(config):
                selected.append(probe)
        return selected

    def __len__(self) -> int:
        return len(self._probes)

    def __contains__(self, name: object) -> bool:
        return name in self._probes


@lru_cache(maxsize=1)
def default_registry() -> ProbeRegistry:
    """Process-wide registry of the built-in probes, built once and frozen."""
    registry = ProbeRegistry()
    registry.discover()
    return registry.freeze()
