from __future__ import annotations

from typing import Dict, List

from soundcheck.providers.events.base import BaseCollector


class CollectorRegistry:
    """Ticketing-site collectors for one ingestion run.

    Names are the ``source`` keys stored on canonical events; the hub visits
    them in the order they were registered. The registry owns the collectors'
    HTTP clients and releases them in ``close_all``.
    """

    def __init__(self) -> None:
        self._collectors: Dict[str, BaseCollector] = {}

    def register(self, source: str, collector: BaseCollector) -> None:
        if source in self._collectors:
            raise ValueError(f"A collector for source '{source}' is already registered for this run")
        self._collectors[source] = collector

    def get(self, source: str) -> BaseCollector:
        if source not in self._collectors:
            known = ", ".join(self._collectors) or "none"
            raise KeyError(f"No collector for source '{source}' (registered: {known})")
        return self._collectors[source]

    def list(self) -> List[str]:
        return list(self._collectors)

    def close_all(self) -> None:
        for collector in self._collectors.values():
            collector.close()
