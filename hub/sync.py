"""
Periodic device-integration sync.

Asks a :class:`MetricFetcher` for the latest value of every stale
integration and republishes changed values to the device.  One failing
integration is logged and skipped; the batch always runs to the end.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

from hub.actions import PublishToDevice
from hub.storage import DeviceIntegrationStore
from shared.schemas import DeviceIntegration

logger = logging.getLogger(__name__)


class MetricFetcher(Protocol):
    def fetch(self, integration: DeviceIntegration) -> Optional[str]:
        """Return the current metric value, or None if the provider has nothing."""


@dataclass
class SyncReport:
    checked: int = 0
    published: int = 0
    unchanged: int = 0
    failed: list[int] = field(default_factory=list)


class SyncDeviceIntegrations:

    def __init__(
        self,
        integrations: DeviceIntegrationStore,
        fetcher: MetricFetcher,
        publisher: PublishToDevice,
        stale_after: timedelta = timedelta(minutes=5),
    ) -> None:
        self._integrations = integrations
        self._fetcher = fetcher
        self._publisher = publisher
        self._stale_after = stale_after

    def run(self, now: datetime | None = None) -> SyncReport:
        now = now or datetime.now(timezone.utc)
        pending = self._integrations.pending_sync(now, self._stale_after)
        logger.info("Syncing %d device integrations", len(pending))

        report = SyncReport()
        for integration in pending:
            report.checked += 1
            try:
                if self._sync_one(integration, now):
                    report.published += 1
                else:
                    report.unchanged += 1
            except Exception as exc:
                report.failed.append(integration.id)
                logger.error(
                    "Failed to sync device integration %d: %s", integration.id, exc,
                    exc_info=True,
                )
        return report

    def _sync_one(self, integration: DeviceIntegration, now: datetime) -> bool:
        value = self._fetcher.fetch(integration)
        if value is None:
            return False

        changed = value != integration.last_value
        self._integrations.record_value(integration.id, value, now)

        if changed:
            self._publisher.execute(
                integration.device_uuid,
                {
                    "type": integration.metric_type,
                    "value": value,
                    "label": integration.label or integration.metric_type,
                    "color": integration.color,
                    "timestamp": now.isoformat(),
                },
            )
            logger.debug("Metric updated for integration %d: %s", integration.id, value)
        return changed


class NullMetricFetcher:
    """Fetcher used when no provider client is configured: reports nothing."""

    def fetch(self, integration: DeviceIntegration) -> Optional[str]:
        return None
