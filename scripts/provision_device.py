#!/usr/bin/env python3
"""
Provision device identities into the hub's key registry file.

Stands in for the manufacturing line: for each device it generates a
P-256 keypair, writes the PEM files to ``keys/<uuid>/`` (what gets
flashed to the device) and records the public key in the registry file
the hub loads on startup.

Run:
    python scripts/provision_device.py                # one new device
    python scripts/provision_device.py --count 3
    python scripts/provision_device.py --simulated    # dev boards, no keys
"""

from __future__ import annotations

import argparse
import sys
import uuid
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from hub.storage import DeviceKeyStore  # noqa: E402
from shared.crypto import generate_keypair, public_key_to_pem, save_keypair  # noqa: E402

# Fixed UUIDs for simulated dev boards
SIMULATED_DEVICES = [
    "550e8400-e29b-41d4-a716-446655440001",
    "550e8400-e29b-41d4-a716-446655440002",
    "550e8400-e29b-41d4-a716-446655440003",
]


def placeholder_key(device_uuid: str) -> str:
    # Simulated signatures never read the public key.
    return (
        "-----BEGIN PUBLIC KEY-----\n"
        f"PLACEHOLDER_FOR_DEV_DEVICE_{device_uuid}\n"
        "-----END PUBLIC KEY-----"
    )


def provision(store: DeviceKeyStore, key_dir: Path, device_uuid: str) -> Path:
    priv, pub = generate_keypair()
    directory = save_keypair(key_dir / device_uuid, priv)
    store.provision(device_uuid, public_key_to_pem(pub))
    return directory


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.split("\n\n")[0])
    parser.add_argument("--registry", default="device_keys.json", help="hub key registry file")
    parser.add_argument("--key-dir", default="keys", help="where device private keys are written")
    parser.add_argument("--count", type=int, default=1)
    parser.add_argument("--uuid", action="append", default=[], help="provision this UUID")
    parser.add_argument("--simulated", action="store_true", help="add the dev-board UUIDs")
    args = parser.parse_args(argv)

    registry = Path(args.registry)
    store = DeviceKeyStore()
    store.load_file(registry)

    if args.simulated:
        for device_uuid in SIMULATED_DEVICES:
            store.provision(device_uuid, placeholder_key(device_uuid), is_simulated=True)
            print(f"  ✅ {device_uuid} (simulated)")
    else:
        uuids = args.uuid or [str(uuid.uuid4()) for _ in range(args.count)]
        for device_uuid in uuids:
            if store.find_by_uuid(device_uuid) is not None:
                print(f"  ⏭  {device_uuid} already provisioned, skipping")
                continue
            directory = provision(store, Path(args.key_dir), device_uuid)
            print(f"  ✅ {device_uuid} → {directory}")

    store.save_file(registry)
    print(f"\nRegistry: {registry} ({len(store.all_keys())} devices)")


if __name__ == "__main__":
    main()
