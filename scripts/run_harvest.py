"""
Run one listing or detail harvest from the CLI.

Ctrl-C asks the loop to stop; whatever was loaded so far is still written.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import sys
from pathlib import Path

from harvester.config import get_browser_settings
from harvester.domain.harvest import HarvestResult
from harvester.scraping.cancellation import CancellationChannel
from harvester.scraping.config import (
    HARVEST_KINDS,
    SCROLL_SPEED_PRESETS,
    SORT_ORDERS,
    get_harvest_settings,
    get_locator_config_path,
    load_locator_overrides,
)
from harvester.scraping.drivers.playwright_driver import open_playwright_driver
from harvester.scraping.errors import PageDriverError
from harvester.scraping.registry import HarvesterRegistry
from harvester.scraping.storage import CsvRecordStorage


def _summary(result: HarvestResult, output_path: Path | None) -> dict[str, object]:
    return {
        "kind": result.kind,
        "status": result.status.value,
        "records": result.record_count,
        "measurement": result.measurement,
        "steps": result.steps,
        "subject_name": result.subject_name,
        "warnings": [{"code": warning.code, "message": warning.message} for warning in result.warnings],
        "error_code": result.error_code,
        "error_message": result.error_message,
        "output_path": str(output_path) if output_path else None,
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Harvest an infinite-scroll feed into CSV.")
    parser.add_argument("kind", choices=HARVEST_KINDS, help="listing or detail")
    parser.add_argument("url", help="Page to open before harvesting.")
    parser.add_argument("--cap", type=int, default=None, help="Maximum records to collect.")
    parser.add_argument("--speed", choices=sorted(SCROLL_SPEED_PRESETS), default=None)
    parser.add_argument("--sort-order", dest="sort_order", choices=SORT_ORDERS, default=None)
    parser.add_argument("--output-dir", dest="output_dir", default=".", help="Directory for the CSV file.")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    try:
        settings = get_harvest_settings(args.kind)
        if args.speed:
            settings = settings.with_speed(args.speed)
        settings = settings.with_overrides(cap=args.cap, sort_order=args.sort_order)
        overrides = load_locator_overrides(config_path=get_locator_config_path())
    except (ValueError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    cancellation = CancellationChannel()
    signal.signal(signal.SIGINT, lambda signum, frame: cancellation.signal_stop())

    try:
        with open_playwright_driver(args.url, settings=get_browser_settings()) as driver:
            harvester = HarvesterRegistry().create_harvester(
                settings=settings,
                driver=driver,
                overrides=overrides.get(settings.kind),
                cancellation=cancellation,
            )
            result = harvester.harvest()
    except PageDriverError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    output_path = None
    if result.records:
        storage = CsvRecordStorage(output_dir=args.output_dir)
        storage.store(result)
        output_path = storage.last_path

    print(json.dumps(_summary(result, output_path), indent=2, ensure_ascii=False))
    return 1 if result.error_code else 0


if __name__ == "__main__":
    raise SystemExit(main())
