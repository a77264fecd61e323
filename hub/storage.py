"""
In-memory repositories for device keys, devices and device integrations.

Each store exposes only the operations the hub needs; updates are always
addressed by identifier.  Stores hand out copies, so a record can only
change through a store method.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

from shared.schemas import Device, DeviceIntegration, DeviceKey, DeviceStatus

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeviceKeyStore:
    """Registry of provisioned device identities."""

    def __init__(self) -> None:
        self._keys: dict[str, DeviceKey] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def provision(
        self,
        device_uuid: str,
        public_key: str,
        is_simulated: bool = False,
    ) -> DeviceKey:
        """Register a device identity.  Re-provisioning an existing UUID is a no-op."""
        with self._lock:
            existing = self._keys.get(device_uuid)
            if existing is not None:
                return existing.model_copy()
            key = DeviceKey(
                device_uuid=device_uuid,
                public_key=public_key,
                is_simulated=is_simulated,
            )
            self._keys[device_uuid] = key
        logger.info("Provisioned device key %s", device_uuid)
        return key.model_copy()

    def mark_activated(self, device_uuid: str) -> DeviceKey:
        """Stamp ``activated_at`` on first activation; later calls keep the original."""
        with self._lock:
            key = self._keys[device_uuid]
            if key.activated_at is None:
                key = key.model_copy(update={"activated_at": _utcnow()})
                self._keys[device_uuid] = key
                logger.info("Device key %s activated", device_uuid)
            return key.model_copy()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def find_by_uuid(self, device_uuid: str) -> DeviceKey | None:
        with self._lock:
            key = self._keys.get(device_uuid)
            return key.model_copy() if key is not None else None

    def all_keys(self) -> list[DeviceKey]:
        with self._lock:
            return [k.model_copy() for k in self._keys.values()]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load_file(self, path: str | Path) -> int:
        """Load keys written by the provisioning script.  Returns the count loaded."""
        path = Path(path)
        if not path.exists():
            logger.warning("Device key file %s not found – registry is empty", path)
            return 0
        doc = json.loads(path.read_text())
        loaded = 0
        with self._lock:
            for raw in doc.get("device_keys", []):
                key = DeviceKey.model_validate(raw)
                self._keys[key.device_uuid] = key
                loaded += 1
        logger.info("Loaded %d device keys from %s", loaded, path)
        return loaded

    def save_file(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        doc = {"device_keys": [k.model_dump(mode="json") for k in self.all_keys()]}
        path.write_text(json.dumps(doc, indent=2))
        return path


class DeviceStore:
    """Device records keyed by UUID."""

    def __init__(self) -> None:
        self._devices: dict[str, Device] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def upsert(
        self,
        device_uuid: str,
        mac_address: str | None = None,
        ip_address: str | None = None,
        firmware_version: str | None = None,
    ) -> Device:
        """
        Create the device, or merge the supplied network metadata into the
        existing record.  Either way the device ends up in ``pairing``;
        the owner of an existing device is kept.
        """
        changes = {
            field: value
            for field, value in (
                ("mac_address", mac_address),
                ("ip_address", ip_address),
                ("firmware_version", firmware_version),
            )
            if value is not None
        }
        changes["status"] = DeviceStatus.PAIRING
        with self._lock:
            existing = self._devices.get(device_uuid)
            if existing is not None:
                device = existing.model_copy(update=changes)
                created = False
            else:
                device = Device(id=self._next_id, uuid=device_uuid, **changes)
                self._next_id += 1
                created = True
            self._devices[device_uuid] = device
        if created:
            logger.info("Created device %s (id=%d)", device_uuid, device.id)
        return device.model_copy()

    def assign_owner(self, device_uuid: str, user_id: str) -> Device:
        """Hand the device to *user_id* and mark it online."""
        with self._lock:
            device = self._devices[device_uuid].model_copy(
                update={
                    "owning_user_id": user_id,
                    "status": DeviceStatus.ONLINE,
                    "last_seen_at": _utcnow(),
                }
            )
            self._devices[device_uuid] = device
        logger.info("Device %s now owned by user %s", device_uuid, user_id)
        return device.model_copy()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def find_by_uuid(self, device_uuid: str) -> Device | None:
        with self._lock:
            device = self._devices.get(device_uuid)
            return device.model_copy() if device is not None else None

    def get(self, device_id: int) -> Device | None:
        with self._lock:
            for device in self._devices.values():
                if device.id == device_id:
                    return device.model_copy()
        return None

    def devices_for_user(self, user_id: str) -> list[Device]:
        with self._lock:
            owned = [d.model_copy() for d in self._devices.values() if d.owning_user_id == user_id]
        return sorted(owned, key=lambda d: d.created_at, reverse=True)


class DeviceIntegrationStore:
    """Metric sources linked to devices."""

    def __init__(self) -> None:
        self._integrations: dict[int, DeviceIntegration] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def link(
        self,
        device_uuid: str,
        provider: str,
        metric_type: str,
        label: str | None = None,
        color: str | None = None,
    ) -> DeviceIntegration:
        with self._lock:
            integration = DeviceIntegration(
                id=self._next_id,
                device_uuid=device_uuid,
                provider=provider,
                metric_type=metric_type,
                label=label,
                color=color,
            )
            self._next_id += 1
            self._integrations[integration.id] = integration
        logger.info(
            "Linked %s/%s to device %s (id=%d)",
            provider, metric_type, device_uuid, integration.id,
        )
        return integration.model_copy()

    def unlink(self, integration_id: int) -> bool:
        with self._lock:
            removed = self._integrations.pop(integration_id, None)
        if removed is not None:
            logger.info("Unlinked integration %d from device %s", integration_id, removed.device_uuid)
            return True
        return False

    def record_value(self, integration_id: int, value: str, synced_at: datetime) -> DeviceIntegration:
        with self._lock:
            integration = self._integrations[integration_id].model_copy(
                update={"last_value": value, "last_synced_at": synced_at}
            )
            self._integrations[integration_id] = integration
        return integration.model_copy()

    def get(self, integration_id: int) -> DeviceIntegration | None:
        with self._lock:
            integration = self._integrations.get(integration_id)
            return integration.model_copy() if integration is not None else None

    def for_device(self, device_uuid: str) -> list[DeviceIntegration]:
        with self._lock:
            return [
                i.model_copy() for i in self._integrations.values()
                if i.device_uuid == device_uuid
            ]

    def pending_sync(self, now: datetime, stale_after: timedelta) -> list[DeviceIntegration]:
        """Active integrations never synced, or last synced at least *stale_after* ago."""
        with self._lock:
            return [
                i.model_copy() for i in self._integrations.values()
                if i.is_active and (i.last_synced_at is None or now - i.last_synced_at >= stale_after)
            ]
