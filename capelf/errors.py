"""Tower error codes and helpers that classify Tower error messages."""

from __future__ import annotations

from enum import Enum

CLUSTER_NOT_FOUND = "CLUSTER_NOT_FOUND"
HOST_NOT_FOUND = "HOST_NOT_FOUND"
VM_TEMPLATE_NOT_FOUND = "VM_TEMPLATE_NOT_FOUND"
VM_NOT_FOUND = "VM_NOT_FOUND"
VM_VOLUME_NOT_FOUND = "VM_VOLUME_NOT_FOUND"
VM_GPU_INFO_NOT_FOUND = "VM_GPU_INFO_NOT_FOUND"
VM_DUPLICATE = "VM_DUPLICATE"
TASK_NOT_FOUND = "TASK_NOT_FOUND"
VLAN_NOT_FOUND = "VLAN_NOT_FOUND"
VM_PLACEMENT_GROUP_NOT_FOUND = "VM_PLACEMENT_GROUP_NOT_FOUND"
VM_PLACEMENT_GROUP_DUPLICATE = "PLACEMENT_GROUP_DUPLICATE_NAME"
LABEL_CREATE_FAILED = "LABEL_CREATE_FAILED"
LABEL_ADD_FAILED = "LABEL_ADD_FAILED"
CLOUD_INIT_ERROR = "VM_CLOUD_INIT_CONFIG_ERROR"
MEMORY_INSUFFICIENT_ERROR = "HostAvailableMemoryFilter"
STORAGE_INSUFFICIENT_ERROR = "EAllocSpace"
PLACEMENT_GROUP_ERROR = "PlacementGroupFilter"  # SMTX OS <= 5.0.4
PLACEMENT_GROUP_MUST_ERROR = "PlacementGroupMustFilter"
PLACEMENT_GROUP_PRIOR_ERROR = "PlacementGroupPriorFilter"
VM_DUPLICATE_ERROR = "VM_DUPLICATED_NAME"
GPU_ASSIGN_FAILED = "GPU_ASSIGN_FAILED"
VGPU_INSUFFICIENT_ERROR = "PRECHECK_REQUEST_VGPU_COUNT_MORE_THAN_AVAILABLE"

_SHUTDOWN_TIMEOUT = "JOB_VM_SHUTDOWN_TIMEOUT"


class TowerError(Exception):
    """An error reported by Tower, identified by its error code."""

    def __init__(self, code: str, detail: str = "") -> None:
        self.code = code
        self.detail = detail
        super().__init__(f"{code}: {detail}" if detail else code)


class MachineStatusError(str, Enum):
    """Failure reasons recorded on a machine's status."""

    CLOUD_INIT_CONFIG_ERROR = "CloudInitConfigError"
    REMOVED_FROM_INFRASTRUCTURE = "RemovedFromInfrastructure"
    MOVED_TO_RECYCLE_BIN = "MovedToRecycleBin"

    def __str__(self) -> str:
        return self.value


def _text(message: str | BaseException) -> str:
    return message if isinstance(message, str) else str(message)


def is_vm_not_found(message: str | BaseException) -> bool:
    return VM_NOT_FOUND in _text(message)


def is_vm_duplicate(message: str | BaseException) -> bool:
    return VM_DUPLICATE in _text(message)


def is_vm_duplicate_error(message: str | BaseException) -> bool:
    return VM_DUPLICATE_ERROR in _text(message)


def is_shut_down_timeout(message: str | BaseException) -> bool:
    return _SHUTDOWN_TIMEOUT in _text(message)


def is_vm_volume_not_found(message: str | BaseException) -> bool:
    return VM_VOLUME_NOT_FOUND in _text(message)


def is_gpu_assign_failed(message: str | BaseException) -> bool:
    return GPU_ASSIGN_FAILED in _text(message)


def is_vgpu_insufficient_error(message: str | BaseException) -> bool:
    return VGPU_INSUFFICIENT_ERROR in _text(message)


def is_task_not_found(message: str | BaseException) -> bool:
    return TASK_NOT_FOUND in _text(message)


def is_vm_placement_group_not_found(message: str | BaseException) -> bool:
    return VM_PLACEMENT_GROUP_NOT_FOUND in _text(message)


def is_vm_placement_group_duplicate(message: str | BaseException) -> bool:
    return VM_PLACEMENT_GROUP_DUPLICATE in _text(message)


def is_cloud_init_config_error(message: str | BaseException) -> bool:
    return CLOUD_INIT_ERROR in _text(message)


def format_cloud_init_error(message: str) -> str:
    """Extract the useful part of a Tower cloud-init error message.

    Example result: ``The gateway [192.168.31.215] is unreachable.``
    """
    index = message.rfind(f"[{CLOUD_INIT_ERROR}]")
    if index == -1:
        return message

    msg = message[index + len(CLOUD_INIT_ERROR) + 2 :]
    msg = msg.rstrip("}").rstrip('"').rstrip("\\")
    return msg.strip()


def parse_gpu_assign_failed(message: str) -> str:
    """Return the message from the last GPU assignment failure code onward."""
    index = message.rfind(GPU_ASSIGN_FAILED)
    if index == -1:
        return message
    return message[index:]


def is_storage_insufficient_error(message: str | BaseException) -> bool:
    return STORAGE_INSUFFICIENT_ERROR in _text(message)


def is_memory_insufficient_error(message: str | BaseException) -> bool:
    return MEMORY_INSUFFICIENT_ERROR in _text(message)


def is_placement_group_error(message: str | BaseException) -> bool:
    text = _text(message)
    return (
        PLACEMENT_GROUP_ERROR in text
        or is_placement_group_must_error(text)
        or is_placement_group_prior_error(text)
    )


def is_placement_group_must_error(message: str | BaseException) -> bool:
    return PLACEMENT_GROUP_MUST_ERROR in _text(message)


def is_placement_group_prior_error(message: str | BaseException) -> bool:
    return PLACEMENT_GROUP_PRIOR_ERROR in _text(message)