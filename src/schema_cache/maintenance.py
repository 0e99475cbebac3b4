"""Explicit eviction of cache entries.

Entries never expire on their own. This module removes them on request:
by idleness (``prune_stale``) and by count (``enforce_max_entries``). The
application may run both periodically with ``run_forever``.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta

from schema_cache.config import Settings, get_settings
from schema_cache.entities import utcnow
from schema_cache.protocols import ArtifactStore

logger = logging.getLogger(__name__)


@dataclass
class MaintenanceReport:
    """Entries removed by one maintenance pass."""

    pruned: int = 0
    evicted: int = 0

    @property
    def total(self) -> int:
        return self.pruned + self.evicted


class CacheMaintenance:
    """Age- and size-based eviction over an ArtifactStore."""

    def __init__(
        self,
        repository: ArtifactStore,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._repository = repository
        self._max_age_days = settings.cache_max_age_days
        self._max_entries = settings.cache_max_entries
        self._interval = settings.cache_maintenance_interval

    def _delete(self, entry_ids: list[str]) -> int:
        return sum(1 for entry_id in entry_ids if self._repository.delete(entry_id))

    def prune_stale(self, max_age_days: int | None = None) -> int:
        """Delete entries not used for more than ``max_age_days``.

        An entry's last use is its latest hit, or its creation if it was
        never hit.

        Returns:
            Number of entries deleted
        """
        days = self._max_age_days if max_age_days is None else max_age_days
        if days < 0:
            raise ValueError(f"max_age_days must be non-negative, got {days}")

        cutoff = utcnow() - timedelta(days=days)
        stale = [e.id for e in self._repository.scan() if e.last_used_at < cutoff]
        deleted = self._delete(stale)

        if deleted:
            logger.info("Pruned %d cache entries idle for more than %d days", deleted, days)
        return deleted

    def enforce_max_entries(self, max_entries: int | None = None) -> int:
        """Keep at most ``max_entries`` entries, evicting least recently used.

        Returns:
            Number of entries deleted
        """
        limit = self._max_entries if max_entries is None else max_entries
        if limit < 0:
            raise ValueError(f"max_entries must be non-negative, got {limit}")

        entries = list(self._repository.scan())
        if len(entries) <= limit:
            return 0

        # Newest use first; ties keep the newer entry
        entries.sort(key=lambda e: (e.last_used_at, e.created_at, e.id), reverse=True)
        deleted = self._delete([e.id for e in entries[limit:]])

        if deleted:
            logger.info("Evicted %d cache entries over the limit of %d", deleted, limit)
        return deleted

    def run_once(self) -> MaintenanceReport:
        """Prune stale entries, then trim to the size limit."""
        return MaintenanceReport(
            pruned=self.prune_stale(),
            evicted=self.enforce_max_entries(),
        )

    async def run_forever(
        self,
        interval: float | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        """Run maintenance every ``interval`` seconds until ``stop_event`` is set.

        Store calls are blocking, so each pass runs in a worker thread.
        A failed pass is logged and retried at the next interval.
        """
        interval = self._interval if interval is None else interval
        stop_event = stop_event or asyncio.Event()

        while not stop_event.is_set():
            try:
                report = await asyncio.to_thread(self.run_once)
                logger.debug("Maintenance pass removed %d entries", report.total)
            except Exception:
                logger.exception("Cache maintenance pass failed")

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
