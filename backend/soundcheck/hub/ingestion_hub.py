from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from soundcheck.services.event_upsert import EventUpsertService

from .collector_registry import CollectorRegistry

logger = logging.getLogger(__name__)


class RunPhase(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    EXTRACTING = "extracting"
    RESOLVING = "resolving"
    UPSERTING = "upserting"
    DONE = "done"


class IngestionHub:
    """Drives every registered collector in turn and feeds the store.

    A collector that raises is recorded in ``errors`` and the run moves on;
    ``DONE`` is always the last phase.
    """

    def __init__(
        self,
        registry: CollectorRegistry,
        store: EventUpsertService,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._registry = registry
        self._store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.phase = RunPhase.IDLE
        self.history: List[Tuple[RunPhase, Optional[str]]] = [(RunPhase.IDLE, None)]
        self.errors: list[tuple[str, Exception]] = []
        self.provider_stats: list[dict] = []

    def run(
        self,
        *,
        providers: Optional[Sequence[str]] = None,
        deactivate_expired: bool = False,
    ) -> dict:
        self.errors = []
        self.provider_stats = []
        self.phase = RunPhase.IDLE
        self.history = [(RunPhase.IDLE, None)]
        names = list(providers) if providers else self._registry.list()
        totals = {"inserted": 0, "updated": 0, "failed": 0}
        deactivated = 0

        for name in names:
            summary = self._empty_summary(name)
            try:
                self._ingest_provider(name, summary)
            except Exception as exc:
                logger.error("Provider %s failed: %s", name, exc)
                self.errors.append((name, exc))
                summary["error"] = str(exc)
            for key in totals:
                totals[key] += summary[key]
            self.provider_stats.append(summary)

        if deactivate_expired:
            try:
                deactivated = self._store.deactivate_expired(self._clock())
            except Exception as exc:
                logger.error("Deactivation sweep failed: %s", exc)
                self.errors.append(("deactivate_expired", exc))

        self._enter(RunPhase.DONE)
        return {
            "providers": names,
            **totals,
            "deactivated": deactivated,
            "errors": list(self.errors),
            "provider_stats": list(self.provider_stats),
        }

    def _ingest_provider(self, name: str, summary: dict) -> None:
        collector = self._registry.get(name)
        result = collector.collect(
            clock=self._clock,
            on_phase=lambda phase: self._enter(RunPhase(phase), name),
        )
        summary["discovered"] = result.discovered
        summary["fetch_failures"] = result.fetch_failures
        summary["aborted"] = result.aborted
        summary["collected"] = len(result.candidates)
        summary["skipped_past"] = result.skipped_past
        summary["skipped_degraded"] = result.skipped_degraded

        self._enter(RunPhase.UPSERTING, name)
        stats = self._store.upsert_many(result.candidates)
        summary.update(stats)
        logger.info(
            "[%s] inserted=%d updated=%d failed=%d",
            name,
            stats["inserted"],
            stats["updated"],
            stats["failed"],
        )

    def _enter(self, phase: RunPhase, provider: Optional[str] = None) -> None:
        self.phase = phase
        self.history.append((phase, provider))

    @staticmethod
    def _empty_summary(name: str) -> dict:
        return {
            "provider": name,
            "discovered": 0,
            "collected": 0,
            "skipped_past": 0,
            "skipped_degraded": 0,
            "fetch_failures": 0,
            "aborted": False,
            "inserted": 0,
            "updated": 0,
            "failed": 0,
        }
