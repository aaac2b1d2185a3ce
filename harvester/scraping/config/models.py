"""
Harvest configuration models.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from harvester.domain.harvest import HarvestSession

# Scroll delay presets offered by the original settings form.
SCROLL_SPEED_PRESETS: dict[str, int] = {
    "fast": 600,
    "normal": 800,
    "slow": 1200,
}

SORT_ORDERS = ("most-relevant", "newest", "highest-rating", "lowest-rating")
DEFAULT_SORT_ORDER = "most-relevant"


@dataclass(frozen=True)
class HarvestSettings:
    """
    Immutable thresholds for one harvester kind.

    A fresh HarvestSession is built from these for every run, so no loop
    state survives between sessions.
    """

    kind: str
    cap: int
    scroll_delay_ms: int
    stabilize_delay_ms: int
    no_change_limit: int
    max_steps: int
    sort_order: str | None = None

    def new_session(self) -> HarvestSession:
        return HarvestSession(
            kind=self.kind,
            cap=self.cap,
            scroll_delay_ms=self.scroll_delay_ms,
            stabilize_delay_ms=self.stabilize_delay_ms,
            no_change_limit=self.no_change_limit,
            max_steps=self.max_steps,
        )

    def with_speed(self, speed: str) -> "HarvestSettings":
        normalized = speed.strip().lower()
        if normalized not in SCROLL_SPEED_PRESETS:
            allowed = ", ".join(SCROLL_SPEED_PRESETS)
            raise ValueError(f"Unknown scroll speed '{speed}'. Allowed: {allowed}.")
        return replace(self, scroll_delay_ms=SCROLL_SPEED_PRESETS[normalized])

    def with_overrides(
        self,
        *,
        cap: int | None = None,
        scroll_delay_ms: int | None = None,
        stabilize_delay_ms: int | None = None,
        no_change_limit: int | None = None,
        max_steps: int | None = None,
        sort_order: str | None = None,
    ) -> "HarvestSettings":
        if sort_order is not None and sort_order not in SORT_ORDERS:
            allowed = ", ".join(SORT_ORDERS)
            raise ValueError(f"Unknown sort order '{sort_order}'. Allowed: {allowed}.")

        updated = replace(
            self,
            cap=self.cap if cap is None else cap,
            scroll_delay_ms=self.scroll_delay_ms if scroll_delay_ms is None else scroll_delay_ms,
            stabilize_delay_ms=(
                self.stabilize_delay_ms if stabilize_delay_ms is None else stabilize_delay_ms
            ),
            no_change_limit=self.no_change_limit if no_change_limit is None else no_change_limit,
            max_steps=self.max_steps if max_steps is None else max_steps,
            sort_order=self.sort_order if sort_order is None else sort_order,
        )
        # Surface invalid thresholds now rather than at session start.
        updated.new_session()
        return updated
