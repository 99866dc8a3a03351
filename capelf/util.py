"""Helpers for sizing, host availability, GPU allocation and Tower task inspection."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Union

from capelf import config
from capelf.models import (
    VM,
    ElfMachine,
    GpuDeviceUsage,
    GpuVMDetail,
    GpuVMInfo,
    Host,
    HostStatus,
    MaintenanceMode,
    Task,
    VMDisk,
    VMPlacementGroup,
    VMStatus,
    Zone,
)

# Description given to VM placement groups created by the controller.
VM_PLACEMENT_GROUP_DESCRIPTION = (
    "This is VM placement group created by CAPE, don't delete it!"
)

# Label used to find the virtual machine template.
SKS_VM_TEMPLATE_UID_LABEL = "system.cloudtower/sks-template-uid"

# Owner source used when searching for the owner of a virtual machine.
VM_OWNER_SEARCH_FOR_USERNAME = "username"

KIB = 1024
MIB = KIB * 1024
GIB = MIB * 1024

_UNAVAILABLE_STATUSES = frozenset(
    {HostStatus.CONNECTED_ERROR, HostStatus.SESSION_EXPIRED, HostStatus.INITIALIZING}
)
_MAINTENANCE_STATES = frozenset(
    {MaintenanceMode.MAINTENANCE_MODE, MaintenanceMode.ENTERING_MAINTENANCE_MODE}
)

_UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

GPUVMInfoCollection = Union[Mapping[str, GpuVMInfo], Iterable[GpuVMInfo]]


def _trunc_div(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def _gpu_values(gpu_vm_infos: GPUVMInfoCollection) -> list[GpuVMInfo]:
    values = getattr(gpu_vm_infos, "values", None)
    if callable(values):
        return list(values())
    return list(gpu_vm_infos)


def get_updated_vm_restricted_fields(vm: VM, elf_machine: ElfMachine) -> dict[str, str]:
    """Return the restricted CPU fields of the VM that exceed the ElfMachine spec."""
    vcpu = tower_vcpu(elf_machine.spec.num_cpus)
    socket_cores = tower_cpu_socket_cores(elf_machine.spec.num_cores_per_socket, vcpu)
    sockets = tower_cpu_sockets(vcpu, socket_cores)

    actual_vcpu = vm.vcpu or 0
    actual_cores = (vm.cpu.cores if vm.cpu else None) or 0
    actual_sockets = (vm.cpu.sockets if vm.cpu else None) or 0

    fields: dict[str, str] = {}
    if actual_vcpu > vcpu:
        fields["vcpu"] = f"actual: {actual_vcpu}, expected: {vcpu}"
    if actual_cores > socket_cores:
        fields["cpuCores"] = f"actual: {actual_cores}, expected: {socket_cores}"
    if actual_sockets > sockets:
        fields["cpuSockets"] = f"actual: {actual_sockets}, expected: {sockets}"
    return fields


def is_available_host(host: Host | None, memory: int) -> tuple[bool, str]:
    """Return whether the host can take a VM, and why not if it cannot.

    A memory of 0 skips the memory check.
    """
    if host is None or host.status is None:
        return False, ""

    if host.status in _UNAVAILABLE_STATUSES:
        return False, f"host is in {str(host.status)} status"

    if host.state is not None and host.state in _MAINTENANCE_STATES:
        return False, f"host is in {str(host.state)} state"

    allocatable = host.allocatable_memory_bytes or 0
    if memory > 0 and memory > allocatable:
        return (
            False,
            f"host has insufficient memory, excepted: {memory}, actual: {allocatable}",
        )

    return True, ""


def get_vms_in_placement_group(placement_group: VMPlacementGroup) -> set[str]:
    """Return the IDs of the virtual machines in the placement group."""
    return set(placement_group.vm_ids)


def tower_memory(memory_mib: int) -> int:
    """Memory in bytes, using the default size when none is given."""
    memory = memory_mib if memory_mib > 0 else config.VM_MEMORY_MIB
    return memory * MIB


def tower_disk(disk_gib: int) -> int:
    """Disk size in bytes."""
    return disk_gib * GIB


def tower_vcpu(vcpu: int) -> int:
    """Virtual CPU count, using the default when none is given."""
    return vcpu if vcpu > 0 else config.VM_NUM_CPUS


def tower_cpu_socket_cores(cpu_socket_cores: int, vcpu: int) -> int:
    """Cores per socket; all vCPUs on one socket when none is given."""
    return cpu_socket_cores if cpu_socket_cores > 0 else vcpu


def tower_cpu_sockets(vcpu: int, cpu_socket_cores: int) -> int:
    """Number of sockets for the given vCPU count and cores per socket."""
    return _trunc_div(vcpu, cpu_socket_cores)


def byte_to_gib(num_bytes: int) -> int:
    return _trunc_div(num_bytes, GIB)


def byte_to_mib(num_bytes: int) -> int:
    return _trunc_div(num_bytes, MIB)


def is_vm_in_recycle_bin(vm: VM) -> bool:
    return bool(vm.in_recycle_bin)


def _description(task: Task) -> str:
    return task.description or ""


def is_clone_vm_task(task: Task) -> bool:
    return "Create a VM" in _description(task)


def is_power_on_vm_task(task: Task) -> bool:
    return "Start VM" in _description(task)


def is_update_vm_task(task: Task) -> bool:
    return "Edit VM" in _description(task)


def is_update_vm_disk_task(task: Task, vm_name: str) -> bool:
    description = _description(task)
    return (
        description == f"Edit VM {vm_name} disk"
        or "Update virtual volume" in description
    )


def is_vm_cold_migration_task(task: Task) -> bool:
    return "performing a cold migration" in _description(task)


def is_vm_migration_task(task: Task) -> bool:
    return "performing a live migration" in _description(task)


def is_placement_group_task(task: Task) -> bool:
    return "VM placement group" in _description(task)


def is_tower_resource_performing_an_operation(entity_async_status: str | None) -> bool:
    """Whether a Tower resource is currently being operated on."""
    return entity_async_status is not None


def has_gpus_can_not_be_used_for_vm(
    gpu_vm_infos: GPUVMInfoCollection, elf_machine: ElfMachine
) -> bool:
    """Whether any of the given GPUs cannot be used by the machine's VM."""
    infos = _gpu_values(gpu_vm_infos)

    if elf_machine.requires_pass_through_gpu_devices():
        for info in infos:
            vms = get_vms_occupying_gpu(info.vms)
            if len(vms) > 1 or (len(vms) == 1 and vms[0].name != elf_machine.name):
                return True
        return False

    if not infos:
        return False

    available: dict[str | None, int] = {}
    for info in infos:
        type_name = info.user_vgpu_type_name
        available[type_name] = available.get(type_name, 0) + get_available_count_from_gpu_vm_info(info)

    return any(
        device.type not in available or device.count > available[device.type]
        for device in elf_machine.spec.vgpu_devices
    )


def get_available_count_from_gpu_vm_info(gpu_vm_info: GpuVMInfo) -> int:
    """Return how many GPUs of the device can still be allocated."""
    if gpu_vm_info.user_usage == GpuDeviceUsage.PASS_THROUGH:
        return 0 if get_vms_occupying_gpu(gpu_vm_info.vms) else 1
    return gpu_vm_info.available_vgpus_num or 0


def get_vms_occupying_gpu(gpu_vms: Iterable[GpuVMDetail]) -> list[GpuVMDetail]:
    """Return the VMs that actually occupy the GPU device."""
    return [
        vm
        for vm in gpu_vms
        if not vm.in_recycle_bin and vm.status != VMStatus.STOPPED
    ]


def is_uuid(value: str) -> bool:
    """Whether the value is a UUID in canonical hyphenated form."""
    return bool(_UUID_RE.match(value))


def parse_owner_from_created_by_annotation(created_by: str) -> str:
    """Turn a ``username@auth_config_id`` annotation into a Tower owner.

    The last ``@`` becomes ``_`` when what follows it is a UUID; otherwise
    the annotation is returned unchanged.
    """
    last_index = created_by.rfind("@")
    if len(created_by) <= 1 or last_index <= 0:
        return created_by

    username = created_by[:last_index]
    auth_config_id = created_by[last_index + 1 :]
    if not is_uuid(auth_config_id):
        return created_by

    return f"{username}_{auth_config_id}"


def get_vm_system_disk(disks: Iterable[VMDisk] | None) -> VMDisk | None:
    """Return the disk with the smallest boot value; the first one wins ties."""
    disks = list(disks or [])
    if not disks:
        return None
    return min(disks, key=lambda disk: disk.boot or 0)


def get_host_zone(zones: Iterable[Zone], host_id: str) -> Zone | None:
    """Return the zone holding the host, or None."""
    return next((zone for zone in zones if host_id in zone.host_ids), None)