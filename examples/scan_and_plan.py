"""Example: scan a tenant config and print the onboarding plan.

Usage:
    python examples/scan_and_plan.py [examples/tenant.yaml]
"""

import asyncio
import logging
import sys
from pathlib import Path

import yaml

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

from surveyor import ActionGenerator, SystemScanner


async def main():
    path = Path(sys.argv[1] if len(sys.argv) > 1 else Path(__file__).parent / "tenant.yaml")
    config = yaml.safe_load(path.read_text(encoding="utf-8"))

    result = await SystemScanner().scan(config)
    print(f"\nScanned {result.tenant_id} in {result.duration_ms:.0f}ms")
    print("=" * 60)
    for feature in result.features.values():
        print(f"  {feature.id:<32} {feature.confidence:.2f}  ({feature.source_probe})")
    for diag in result.failed + result.skipped:
        print(f"  ! {diag.probe_id}: {diag.status} ({diag.error})")

    plan = ActionGenerator().generate_actions(result.features)
    print(f"\nPlan: {plan.count} actions")
    print("=" * 60)
    for i, action in enumerate(plan.actions, 1):
        deps = ", ".join(sorted(action.depends_on_action_ids))
        after = f"  after {deps}" if deps else ""
        print(f"  {i:>2}. {action.name} [{action.type}]{after}")
    for dropped in plan.dropped:
        print(f"   -  {dropped.action_id}: {dropped.reason}")


if __name__ == "__main__":
    asyncio.run(main())
