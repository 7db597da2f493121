#!/usr/bin/env python3
"""
Push sample alerts through the correlation pipeline.

Sends the same alert twice (NEW then MORE), offers its attributes to the
dedup gate twice (admitted then duplicate), records one inspection result
and prints the compiled report.

Run against the configured backend:
    STORE_BACKEND=redis python scripts/push_sample_alert.py

Options:
    --backend       Override STORE_BACKEND (postgres, redis, memory)
    --alert-key     Alert key to correlate on (default: host-7)
"""

import argparse
import asyncio
import sys
from datetime import UTC, datetime
from pathlib import Path

# Add parent directory to path for correlator imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from correlator.core.config import Settings
from correlator.core.logging import setup_logging
from correlator.schemas.alert import Alert, Attribute, AttributeType
from correlator.schemas.report import ReportSection
from correlator.services.pipeline import build_pipeline

TEST_IP = "192.0.2.1"  # TEST-NET-1 (reserved for documentation)


def create_test_alert(alert_key: str) -> Alert:
    return Alert(
        detector="sample-detector",
        rule_name="outbound-to-rare-host",
        rule_id="sample-001",
        alert_key=alert_key,
        description="Sample alert pushed by scripts/push_sample_alert.py",
        timestamp=datetime.now(UTC),
        attributes=[
            Attribute(key="remote ip", type=AttributeType.IPV4, value=TEST_IP, context=["remote"]),
            Attribute(key="user", type=AttributeType.USERNAME, value="sample_user"),
        ],
        body={"process": {"name": "curl", "pid": 1234}},
    )


async def main(backend: str | None, alert_key: str) -> int:
    overrides = {"STORE_BACKEND": backend} if backend else {}
    config = Settings(**overrides)
    pipeline = build_pipeline(config)

    try:
        alert = create_test_alert(alert_key)
        first = await pipeline.receive_alert(alert)
        second = await pipeline.receive_alert(alert)
        print(f"alert 1 -> report {first.id} ({first.status.value})")
        print(f"alert 2 -> report {second.id} ({second.status.value})")

        admitted = await pipeline.offer_attributes(first.id, alert.attributes)
        repeated = await pipeline.offer_attributes(first.id, alert.attributes)
        print(f"admitted {len(admitted)} attribute(s), then {len(repeated)} on repeat")

        for attr in admitted:
            await pipeline.record_section(
                ReportSection(
                    report_id=first.id,
                    attribute=attr,
                    author="sample-inspector",
                    type="host" if attr.type == AttributeType.IPV4.value else "user",
                    content={"note": "sample result"},
                )
            )

        compiled = await pipeline.compile_report(first.id)
        print(compiled.model_dump_json(indent=2))
    finally:
        await pipeline.close()

    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--backend", choices=["postgres", "redis", "memory"])
    parser.add_argument("--alert-key", default="host-7")
    args = parser.parse_args()

    setup_logging()
    sys.exit(asyncio.run(main(args.backend, args.alert_key)))
