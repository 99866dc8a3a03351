"""Rate limits and locks that keep concurrent Tower operations from colliding."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Union

from capelf import config
from capelf.hostsets import GPUVMInfos
from capelf.models import GPUDeviceInfo
from capelf.util import get_available_count_from_gpu_vm_info

Clock = Callable[[], float]
Duration = Union[timedelta, float, int]

VM_CREATION_TIMEOUT = timedelta(minutes=6)
VM_OPERATION_RATE_LIMIT = timedelta(seconds=6)
VM_SILENCE_TIME = timedelta(minutes=5)
# A duplicate placement group name means the ELF API is slow; Tower usually
# syncs the group within a minute or two, so retry creation after five minutes.
PLACEMENT_GROUP_SILENCE_TIME = timedelta(minutes=5)
LABEL_GC_INTERVAL = timedelta(hours=24)
GPU_LOCK_TIMEOUT = timedelta(minutes=8)


def _seconds(duration: Duration) -> float:
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    return float(duration)


class ExpiringCache:
    """A thread-safe key/value store whose entries may expire."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or time.monotonic
        self._items: dict[str, tuple[Any, float | None]] = {}
        self._lock = threading.Lock()

    def _purge(self) -> None:
        now = self._clock()
        expired = [
            key
            for key, (_, expires_at) in self._items.items()
            if expires_at is not None and now >= expires_at
        ]
        for key in expired:
            del self._items[key]

    def set(self, key: str, value: Any = None, ttl: Duration | None = None) -> None:
        """Store a value; a ttl of None means it never expires."""
        expires_at = None if ttl is None else self._clock() + _seconds(ttl)
        with self._lock:
            self._items[key] = (value, expires_at)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under the key, or the default."""
        with self._lock:
            self._purge()
            entry = self._items.get(key)
        return default if entry is None else entry[0]

    def __contains__(self, key: object) -> bool:
        with self._lock:
            self._purge()
            return key in self._items

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            self._purge()
            return len(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


def _key_vm(name: str) -> str:
    return "vm:" + name


def _key_vm_duplicate(name: str) -> str:
    return "vm:duplicate:" + name


def _key_placement_group(name: str) -> str:
    return "pg:" + name


def _key_placement_group_duplicate(name: str) -> str:
    return "pg:duplicate:" + name


def _key_gc_label(tower: str) -> str:
    return "label:gc:" + tower


def _key_gc_label_time(tower: str) -> str:
    return "label:gc:time:" + tower


class OperationLimiter:
    """Decides whether VM, placement group and label operations may proceed now."""

    def __init__(
        self,
        max_concurrent_vm_creations: int = config.MAX_CONCURRENT_VM_CREATIONS,
        clock: Clock | None = None,
    ) -> None:
        self.max_concurrent_vm_creations = max_concurrent_vm_creations
        self._clock = clock or time.monotonic
        self.cache = ExpiringCache(self._clock)
        self.creating_vms = ExpiringCache(self._clock)
        self._vm_lock = threading.Lock()
        self._placement_group_lock = threading.Lock()
        self._label_lock = threading.Lock()

    def acquire_ticket_for_create_vm(
        self, vm_name: str, is_control_plane_vm: bool
    ) -> tuple[bool, str]:
        """Return whether the VM may be created now, and the reason if not.

        Only worker VMs count against the concurrent creation limit.
        """
        with self._vm_lock:
            if _key_vm_duplicate(vm_name) in self.cache:
                return False, "Duplicate virtual machine detected"

            if is_control_plane_vm:
                return True, ""

            if len(self.creating_vms) >= self.max_concurrent_vm_creations:
                return (
                    False,
                    "The number of concurrently created VMs has reached the limit "
                    f"{self.max_concurrent_vm_creations}",
                )

            self.creating_vms.set(_key_vm(vm_name), None, VM_CREATION_TIMEOUT)
            return True, ""

    def release_ticket_for_create_vm(self, vm_name: str) -> None:
        self.creating_vms.delete(_key_vm(vm_name))

    def acquire_ticket_for_updating_vm(self, vm_name: str) -> bool:
        """Allow at most one update of the same VM per rate-limit window."""
        key = _key_vm(vm_name)
        if key in self.cache:
            return False
        self.cache.set(key, None, VM_OPERATION_RATE_LIMIT)
        return True

    def set_vm_duplicate(self, vm_name: str) -> None:
        """Hold off creating the VM for a while after a duplicate was seen."""
        self.cache.set(_key_vm_duplicate(vm_name), None, VM_SILENCE_TIME)

    def acquire_ticket_for_placement_group_operation(self, group_name: str) -> bool:
        with self._placement_group_lock:
            key = _key_placement_group(group_name)
            if key in self.cache:
                return False
            self.cache.set(key, None, None)
            return True

    def release_ticket_for_placement_group_operation(self, group_name: str) -> None:
        self.cache.delete(_key_placement_group(group_name))

    def set_placement_group_duplicate(self, group_name: str) -> None:
        self.cache.set(
            _key_placement_group_duplicate(group_name), None, PLACEMENT_GROUP_SILENCE_TIME
        )

    def can_create_placement_group(self, group_name: str) -> bool:
        return _key_placement_group_duplicate(group_name) not in self.cache

    def acquire_lock_for_gc_tower_labels(self, tower: str) -> bool:
        """Allow one label cleanup per Tower at a time and at most once a day."""
        with self._label_lock:
            if _key_gc_label(tower) in self.cache:
                return False

            time_key = _key_gc_label_time(tower)
            if time_key in self.cache:
                last_gc = self.cache.get(time_key)
                if isinstance(last_gc, (int, float)) and not isinstance(last_gc, bool):
                    if self._clock() < last_gc + _seconds(LABEL_GC_INTERVAL):
                        return False
                else:
                    self.cache.delete(time_key)

            self.cache.set(_key_gc_label(tower), None, None)
            return True

    def release_lock_for_gc_tower_labels(self, tower: str) -> None:
        with self._label_lock:
            self.cache.delete(_key_gc_label(tower))

    def record_gc_time_for_tower_labels(self, tower: str) -> None:
        with self._label_lock:
            self.cache.set(_key_gc_label_time(tower), self._clock(), None)


@dataclass
class LockedGPUDevice:
    """A GPU device and how many of its units are locked."""

    id: str
    count: int


@dataclass
class LockedVMGPUs:
    """The GPU devices locked for one VM."""

    host_id: str
    gpu_devices: list[LockedGPUDevice] = field(default_factory=list)
    locked_at: float = 0.0

    def gpu_ids(self) -> list[str]:
        return [device.id for device in self.gpu_devices]

    def gpu_device_infos(self) -> list[GPUDeviceInfo]:
        return [
            GPUDeviceInfo(id=device.id, allocated_count=device.count)
            for device in self.gpu_devices
        ]

    def _copy(self) -> LockedVMGPUs:
        return LockedVMGPUs(
            host_id=self.host_id,
            gpu_devices=[LockedGPUDevice(d.id, d.count) for d in self.gpu_devices],
            locked_at=self.locked_at,
        )


class GPULocker:
    """Locks GPU devices for VMs being created or started.

    Locks are released when the operation ends or after a timeout, so that
    two VMs are never given the same GPU at once.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._clusters: dict[str, dict[str, LockedVMGPUs]] = {}

    def _cluster_locks(self, cluster_id: str) -> dict[str, LockedVMGPUs]:
        locks = self._clusters.get(cluster_id)
        if locks is None:
            return {}
        deadline = self._clock() - _seconds(GPU_LOCK_TIMEOUT)
        for vm_name in [n for n, g in locks.items() if g.locked_at <= deadline]:
            del locks[vm_name]
        return locks

    @staticmethod
    def _locked_counts(locks: dict[str, LockedVMGPUs]) -> dict[str, int]:
        counts: dict[str, int] = {}
        for vm_gpus in locks.values():
            for device in vm_gpus.gpu_devices:
                counts[device.id] = counts.get(device.id, 0) + device.count
        return counts

    def lock_gpu_devices_for_vm(
        self,
        cluster_id: str,
        vm_name: str,
        host_id: str,
        gpu_device_infos: Iterable[GPUDeviceInfo],
    ) -> bool:
        """Lock the GPUs for the VM; False if others already hold too many of them."""
        infos = list(gpu_device_infos)
        with self._lock:
            available = {
                info.id: info.available_count - info.allocated_count for info in infos
            }
            locked_gpus = LockedVMGPUs(
                host_id=host_id,
                gpu_devices=[LockedGPUDevice(info.id, info.allocated_count) for info in infos],
                locked_at=self._clock(),
            )

            locks = self._cluster_locks(cluster_id)
            locked_counts = self._locked_counts(locks)
            for gpu_id, count in available.items():
                if gpu_id in locked_counts and locked_counts[gpu_id] > count:
                    return False

            locks[vm_name] = locked_gpus
            self._clusters[cluster_id] = locks
            return True

    def filter_gpu_vm_infos(self, cluster_id: str, gpu_vm_infos: GPUVMInfos) -> GPUVMInfos:
        """Drop the GPUs whose available units are all locked."""
        with self._lock:
            locked_counts = self._locked_counts(self._cluster_locks(cluster_id))

        def unlocked(info) -> bool:
            locked = locked_counts.get(info.id)
            return locked is None or locked < get_available_count_from_gpu_vm_info(info)

        return gpu_vm_infos.filter(unlocked)

    def get_gpu_devices_locked_by_vm(self, cluster_id: str, vm_name: str) -> LockedVMGPUs | None:
        with self._lock:
            vm_gpus = self._cluster_locks(cluster_id).get(vm_name)
            return None if vm_gpus is None else vm_gpus._copy()

    def unlock_gpu_devices_locked_by_vm(self, cluster_id: str, vm_name: str) -> None:
        with self._lock:
            locks = self._cluster_locks(cluster_id)
            locks.pop(vm_name, None)
            if locks:
                self._clusters[cluster_id] = locks
            else:
                self._clusters.pop(cluster_id, None)

    def locked_vms(self, cluster_id: str) -> dict[str, LockedVMGPUs]:
        """Return the unexpired GPU locks of the cluster, keyed by VM name."""
        with self._lock:
            return {
                name: vm_gpus._copy()
                for name, vm_gpus in self._cluster_locks(cluster_id).items()
            }