"""
Harvester registry and factory.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping, Sequence

from harvester.scraping.cancellation import CancellationChannel
from harvester.scraping.config.models import HarvestSettings
from harvester.scraping.drivers.base import PageDriver
from harvester.scraping.harvesters import DetailHarvester, HarvesterBase, ListingHarvester
from harvester.scraping.parsing import ListingSchema, ReviewSchema
from harvester.scraping.parsing.base import ExtractionSchema
from harvester.scraping.progress import ProgressSink

HARVESTERS: dict[str, tuple[type[HarvesterBase], type[ExtractionSchema]]] = {
    "listing": (ListingHarvester, ListingSchema),
    "detail": (DetailHarvester, ReviewSchema),
}


class HarvesterRegistry:
    """
    Maps a harvest kind to its harvester and extraction schema.
    """

    @property
    def kinds(self) -> list[str]:
        return sorted(HARVESTERS)

    def create_harvester(
        self,
        *,
        settings: HarvestSettings,
        driver: PageDriver,
        overrides: Mapping[str, Sequence[object]] | None = None,
        cancellation: CancellationChannel | None = None,
        progress: ProgressSink | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> HarvesterBase:
        harvester_class, schema_class = self._resolve(settings.kind)
        return harvester_class(
            settings=settings,
            schema=schema_class(overrides=overrides),
            driver=driver,
            cancellation=cancellation,
            progress=progress,
            sleep=sleep,
        )

    def _resolve(self, kind: str) -> tuple[type[HarvesterBase], type[ExtractionSchema]]:
        resolved = HARVESTERS.get(kind.strip().lower())
        if resolved is None:
            allowed = ", ".join(self.kinds)
            raise ValueError(f"Unknown harvest kind '{kind}'. Allowed kinds: {allowed}.")
        return resolved
