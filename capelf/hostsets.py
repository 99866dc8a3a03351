"""Collections of Tower hosts and GPU devices keyed by their IDs."""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable, Iterator

from capelf.models import GpuVMInfo, Host
from capelf.util import get_available_count_from_gpu_vm_info, is_available_host

HostFilter = Callable[[Host], bool]
GPUVMInfoFilter = Callable[[GpuVMInfo], bool]


class Hosts:
    """A set of hosts keyed by host ID."""

    def __init__(self, hosts: Iterable[Host | None] | None = None) -> None:
        self._hosts: dict[str, Host] = {}
        if hosts is not None:
            self.insert(*hosts)

    def insert(self, *args: Host | None) -> None:
        """Add hosts, replacing any with the same ID; None entries are ignored."""
        for host in args:
            if host is not None:
                self._hosts[host.id] = host

    def __contains__(self, host_id: object) -> bool:
        return host_id in self._hosts

    def __len__(self) -> int:
        return len(self._hosts)

    def __iter__(self) -> Iterator[Host]:
        return iter(list(self._hosts.values()))

    def __repr__(self) -> str:
        return f"Hosts({list(self._hosts.values())!r})"

    def __str__(self) -> str:
        parts = []
        for host in self._hosts.values():
            state = str(host.state) if host.state is not None else ""
            status = str(host.status) if host.status is not None else ""
            parts.append(
                f"{{id: {host.id or ''},name: {host.name or ''},"
                f"memory: {host.allocatable_memory_bytes or 0},"
                f"status: {status},state: {state}}},"
            )
        return f"[{''.join(parts)}]"

    def is_empty(self) -> bool:
        return not self._hosts

    def get(self, host_id: str) -> Host | None:
        """Return the host with the given ID, or None."""
        return self._hosts.get(host_id)

    def find(self, target_ids: Collection[str]) -> Hosts:
        """Return the hosts whose IDs are among the given IDs."""
        return self.filter(lambda host: host.id in target_ids)

    def difference(self, other: Hosts) -> Hosts:
        """Return the hosts not present in the other collection."""
        return self.filter(lambda host: host.id not in other)

    def filter(self, *args: HostFilter) -> Hosts:
        """Return the hosts that match all of the given filters."""
        return Hosts(host for host in self if all(f(host) for f in args))

    def filter_available_hosts_with_enough_memory(self, memory: int) -> Hosts:
        """Return the available hosts with at least the given allocatable memory."""
        return self.filter(lambda host: is_available_host(host, memory)[0])

    def filter_unavailable_hosts_or_without_enough_memory(self, memory: int) -> Hosts:
        """Return the hosts that are unavailable or lack the given memory."""
        return self.filter(lambda host: not is_available_host(host, memory)[0])

    def ids(self) -> list[str]:
        return list(self._hosts)


class GPUVMInfos:
    """A set of GPU devices, with their VMs and allocation details, keyed by GPU ID."""

    def __init__(self, gpu_vm_infos: Iterable[GpuVMInfo | None] | None = None) -> None:
        self._infos: dict[str, GpuVMInfo] = {}
        if gpu_vm_infos is not None:
            self.insert(*gpu_vm_infos)

    def insert(self, *args: GpuVMInfo | None) -> None:
        """Add GPU devices, replacing any with the same ID; None entries are ignored."""
        for info in args:
            if info is not None:
                self._infos[info.id] = info

    def __contains__(self, gpu_id: object) -> bool:
        return gpu_id in self._infos

    def __len__(self) -> int:
        return len(self._infos)

    def __iter__(self) -> Iterator[GpuVMInfo]:
        return iter(list(self._infos.values()))

    def __repr__(self) -> str:
        return f"GPUVMInfos({list(self._infos.values())!r})"

    def get(self, gpu_id: str) -> GpuVMInfo | None:
        """Return the GPU device with the given ID, or None."""
        return self._infos.get(gpu_id)

    def filter(self, *args: GPUVMInfoFilter) -> GPUVMInfos:
        """Return the GPU devices that match all of the given filters."""
        return GPUVMInfos(info for info in self if all(f(info) for f in args))

    def filter_available_gpu_vm_infos(self) -> GPUVMInfos:
        """Return the GPU devices that can still be allocated to a VM."""
        return self.filter(lambda info: get_available_count_from_gpu_vm_info(info) > 0)