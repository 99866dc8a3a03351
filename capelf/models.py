"""Data types for Tower resources and ElfMachine specifications."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class _StrEnum(str, Enum):
    def __str__(self) -> str:
        return self.value


class HostStatus(_StrEnum):
    CONNECTED_ERROR = "CONNECTED_ERROR"
    CONNECTED_HEALTHY = "CONNECTED_HEALTHY"
    CONNECTED_WARNING = "CONNECTED_WARNING"
    CONNECTING = "CONNECTING"
    INITIALIZING = "INITIALIZING"
    SESSION_EXPIRED = "SESSION_EXPIRED"


class MaintenanceMode(_StrEnum):
    ENTERING_MAINTENANCE_MODE = "ENTERING_MAINTENANCE_MODE"
    IN_USE = "IN_USE"
    MAINTENANCE_MODE = "MAINTENANCE_MODE"


class VMStatus(_StrEnum):
    DELETED = "DELETED"
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"
    SUSPENDED = "SUSPENDED"
    UNKNOWN = "UNKNOWN"


class GpuDeviceUsage(_StrEnum):
    PASS_THROUGH = "PASS_THROUGH"
    VGPU = "VGPU"


class TaskStatus(_StrEnum):
    EXECUTING = "EXECUTING"
    FAILED = "FAILED"
    PAUSED = "PAUSED"
    PENDING = "PENDING"
    SUCCESSED = "SUCCESSED"


class VMVMPolicy(_StrEnum):
    MUST_DIFFERENT = "MUST_DIFFERENT"
    MUST_SAME = "MUST_SAME"
    PREFER_DIFFERENT = "PREFER_DIFFERENT"
    PREFER_SAME = "PREFER_SAME"


@dataclass
class Host:
    """A Tower host."""

    id: str | None = None
    name: str | None = None
    local_id: str | None = None
    status: HostStatus | None = None
    state: MaintenanceMode | None = None
    allocatable_memory_bytes: int | None = None


@dataclass
class GpuVMDetail:
    """A VM attached to a GPU device."""

    name: str | None = None
    status: VMStatus | None = None
    in_recycle_bin: bool | None = None


@dataclass
class GpuVMInfo:
    """A GPU device together with the VMs using it and its allocation details."""

    id: str | None = None
    local_id: str | None = None
    name: str | None = None
    model: str | None = None
    user_usage: GpuDeviceUsage | None = None
    user_vgpu_type_name: str | None = None
    vgpu_instance_num: int | None = None
    available_vgpus_num: int | None = None
    assigned_vgpus_num: int | None = None
    vms: list[GpuVMDetail] = field(default_factory=list)


@dataclass
class VMDisk:
    """A disk mounted on a VM."""

    id: str | None = None
    boot: int | None = None
    vm_volume_id: str | None = None


@dataclass
class Zone:
    """An availability zone of a stretched cluster."""

    id: str | None = None
    local_id: str | None = None
    is_preferred: bool | None = None
    host_ids: list[str] = field(default_factory=list)


@dataclass
class VMCpu:
    """CPU topology of a VM."""

    cores: int | None = None
    sockets: int | None = None


@dataclass
class VM:
    """A Tower virtual machine."""

    id: str | None = None
    local_id: str | None = None
    name: str | None = None
    status: VMStatus | None = None
    vcpu: int | None = None
    cpu: VMCpu | None = None
    memory: int | None = None
    ha: bool | None = None
    in_recycle_bin: bool | None = None
    entity_async_status: str | None = None


@dataclass
class Task:
    """A Tower task."""

    id: str | None = None
    status: TaskStatus | None = None
    description: str | None = None


@dataclass
class VMPlacementGroup:
    """A Tower VM placement group."""

    id: str | None = None
    name: str | None = None
    local_id: str | None = None
    vm_ids: list[str] = field(default_factory=list)


@dataclass
class GPUDeviceInfo:
    """A GPU device allocation request or record."""

    id: str = ""
    host_id: str = ""
    allocated_count: int = 0
    available_count: int = 0

    def __str__(self) -> str:
        return (
            f"{{id:{self.id}, hostId:{self.host_id}, "
            f"allocatedCount:{self.allocated_count}, "
            f"availableCount:{self.available_count}}}"
        )


@dataclass
class GPUPassthroughDeviceSpec:
    """A passthrough GPU requested by a machine."""

    model: str = ""
    count: int = 0


@dataclass
class VGPUDeviceSpec:
    """A vGPU requested by a machine."""

    type: str = ""
    count: int = 0


@dataclass
class MachineSpec:
    """The desired configuration of an ElfMachine."""

    num_cpus: int = 0
    num_cores_per_socket: int = 0
    memory_mib: int = 0
    disk_gib: int = 0
    ha: bool = False
    gpu_devices: list[GPUPassthroughDeviceSpec] = field(default_factory=list)
    vgpu_devices: list[VGPUDeviceSpec] = field(default_factory=list)


@dataclass
class ElfMachine:
    """A machine to be backed by a Tower VM."""

    name: str = ""
    namespace: str = ""
    spec: MachineSpec = field(default_factory=MachineSpec)

    def requires_pass_through_gpu_devices(self) -> bool:
        """Whether the machine asks for passthrough GPUs."""
        return len(self.spec.gpu_devices) > 0

    def requires_vgpu_devices(self) -> bool:
        """Whether the machine asks for vGPUs."""
        return len(self.spec.vgpu_devices) > 0