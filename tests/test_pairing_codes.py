"""Tests for hub.pairing_codes – issuance, uniqueness, redemption."""

import itertools
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor

from hub.cache import TTLCache
from hub.pairing_codes import PairingCodeRegistry, random_code
from hub.storage import DeviceStore
from shared.schemas import DeviceStatus


def _registry(clock, code_factory=random_code, ttl=600):
    """Helper: registry plus its device store."""
    devices = DeviceStore()
    registry = PairingCodeRegistry(TTLCache(clock=clock), devices, ttl=ttl, code_factory=code_factory)
    return registry, devices


def _new_device(devices):
    device_uuid = str(uuid.uuid4())
    devices.upsert(device_uuid)
    return device_uuid


def test_random_code_format():
    for _ in range(200):
        code = random_code()
        assert len(code) == 6
        assert code.isdigit()


def test_issue_records_both_directions(clock):
    registry, devices = _registry(clock)
    device_uuid = _new_device(devices)
    code = registry.issue(device_uuid)
    assert registry.resolve(code) == device_uuid
    assert registry.code_for(device_uuid) == code


def test_zero_padded_codes(clock):
    registry, devices = _registry(clock, code_factory=lambda: f"{7:06d}")
    code = registry.issue(_new_device(devices))
    assert code == "000007"


def test_reissue_invalidates_previous_code(clock):
    codes = iter(["111111", "222222"])
    registry, devices = _registry(clock, code_factory=lambda: next(codes))
    device_uuid = _new_device(devices)
    first = registry.issue(device_uuid)
    second = registry.issue(device_uuid)
    assert first != second
    assert registry.resolve(first) is None
    assert registry.resolve(second) == device_uuid
    assert registry.code_for(device_uuid) == second


def test_collision_retries_until_free(clock):
    codes = iter(["123456", "123456", "123456", "654321"])
    registry, devices = _registry(clock, code_factory=lambda: next(codes))
    a = _new_device(devices)
    b = _new_device(devices)
    assert registry.issue(a) == "123456"
    assert registry.issue(b) == "654321"
    assert registry.resolve("123456") == a


def test_expired_code_can_be_reused(clock):
    registry, devices = _registry(clock, code_factory=lambda: "424242", ttl=600)
    a = _new_device(devices)
    b = _new_device(devices)
    registry.issue(a)
    clock.advance(600)
    assert registry.resolve("424242") is None
    assert registry.issue(b) == "424242"
    assert registry.resolve("424242") == b


def test_code_expires_after_ten_minutes(clock):
    registry, devices = _registry(clock)
    device_uuid = _new_device(devices)
    code = registry.issue(device_uuid)
    clock.advance(599)
    assert registry.resolve(code) == device_uuid
    clock.advance(1)
    assert registry.resolve(code) is None
    assert registry.code_for(device_uuid) is None


def test_invalidate(clock):
    registry, devices = _registry(clock)
    device_uuid = _new_device(devices)
    code = registry.issue(device_uuid)
    registry.invalidate(code, device_uuid)
    assert registry.resolve(code) is None
    assert registry.code_for(device_uuid) is None


def test_redeem_assigns_owner_and_consumes_code(clock):
    registry, devices = _registry(clock)
    device_uuid = _new_device(devices)
    code = registry.issue(device_uuid)

    device = registry.redeem(code, "u_1")
    assert device.uuid == device_uuid
    assert device.owning_user_id == "u_1"
    assert device.status == DeviceStatus.ONLINE

    assert registry.redeem(code, "u_2") is None
    assert devices.find_by_uuid(device_uuid).owning_user_id == "u_1"
    assert registry.code_for(device_uuid) is None


def test_redeem_unknown_or_expired(clock):
    registry, devices = _registry(clock)
    assert registry.redeem("000000", "u_1") is None

    code = registry.issue(_new_device(devices))
    clock.advance(600)
    assert registry.redeem(code, "u_1") is None


def test_concurrent_issuance_yields_unique_codes():
    n = 200
    registry, devices = _registry(time.monotonic)
    uuids = [_new_device(devices) for _ in range(n)]

    with ThreadPoolExecutor(max_workers=32) as pool:
        codes = list(pool.map(registry.issue, uuids))

    assert len(set(codes)) == n
    for device_uuid, code in zip(uuids, codes):
        assert registry.resolve(code) == device_uuid


def test_concurrent_issuance_in_tiny_code_space():
    """Force heavy collisions: every issuer draws from the same few codes."""
    n = 20
    counter = itertools.count()
    lock = threading.Lock()

    def factory():
        with lock:
            return f"{next(counter) % n:06d}"

    registry, devices = _registry(time.monotonic, code_factory=factory)
    uuids = [_new_device(devices) for _ in range(n)]

    with ThreadPoolExecutor(max_workers=n) as pool:
        codes = list(pool.map(registry.issue, uuids))

    assert len(set(codes)) == n
