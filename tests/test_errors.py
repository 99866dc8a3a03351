import pytest

from capelf import errors
from capelf.errors import MachineStatusError, TowerError


def test_tower_error_carries_code():
    err = TowerError(errors.VM_NOT_FOUND)
    assert err.code == errors.VM_NOT_FOUND
    assert str(err) == errors.VM_NOT_FOUND
    with pytest.raises(TowerError) as info:
        raise TowerError(errors.TASK_NOT_FOUND, "task-1")
    assert info.value.code == errors.TASK_NOT_FOUND
    assert errors.TASK_NOT_FOUND in str(info.value)
    assert "task-1" in str(info.value)


def test_machine_status_error_values():
    assert MachineStatusError("CloudInitConfigError") is MachineStatusError.CLOUD_INIT_CONFIG_ERROR
    assert (
        MachineStatusError("RemovedFromInfrastructure")
        is MachineStatusError.REMOVED_FROM_INFRASTRUCTURE
    )
    assert MachineStatusError("MovedToRecycleBin") is MachineStatusError.MOVED_TO_RECYCLE_BIN
    assert str(MachineStatusError("MovedToRecycleBin")) == "MovedToRecycleBin"
    with pytest.raises(ValueError):
        MachineStatusError("NotAStatus")


@pytest.mark.parametrize(
    "predicate, code",
    [
        (errors.is_vm_not_found, errors.VM_NOT_FOUND),
        (errors.is_vm_duplicate, errors.VM_DUPLICATE),
        (errors.is_vm_duplicate_error, errors.VM_DUPLICATE_ERROR),
        (errors.is_shut_down_timeout, "JOB_VM_SHUTDOWN_TIMEOUT"),
        (errors.is_vm_volume_not_found, errors.VM_VOLUME_NOT_FOUND),
        (errors.is_gpu_assign_failed, errors.GPU_ASSIGN_FAILED),
        (errors.is_vgpu_insufficient_error, errors.VGPU_INSUFFICIENT_ERROR),
        (errors.is_task_not_found, errors.TASK_NOT_FOUND),
        (errors.is_vm_placement_group_not_found, errors.VM_PLACEMENT_GROUP_NOT_FOUND),
        (errors.is_vm_placement_group_duplicate, errors.VM_PLACEMENT_GROUP_DUPLICATE),
        (errors.is_cloud_init_config_error, errors.CLOUD_INIT_ERROR),
        (errors.is_storage_insufficient_error, errors.STORAGE_INSUFFICIENT_ERROR),
        (errors.is_memory_insufficient_error, errors.MEMORY_INSUFFICIENT_ERROR),
        (errors.is_placement_group_must_error, errors.PLACEMENT_GROUP_MUST_ERROR),
        (errors.is_placement_group_prior_error, errors.PLACEMENT_GROUP_PRIOR_ERROR),
    ],
)
def test_predicates_match_code_in_message(predicate, code):
    assert predicate(f"request failed: {code} occurred") is True
    assert predicate("request failed: nothing relevant") is False
    assert predicate(TowerError(code)) is True


@pytest.mark.parametrize(
    "code",
    [
        errors.PLACEMENT_GROUP_ERROR,
        errors.PLACEMENT_GROUP_MUST_ERROR,
        errors.PLACEMENT_GROUP_PRIOR_ERROR,
    ],
)
def test_is_placement_group_error(code):
    assert errors.is_placement_group_error(f"schedule failed by {code}") is True


def test_is_placement_group_error_negative():
    assert errors.is_placement_group_error(errors.MEMORY_INSUFFICIENT_ERROR) is False


def test_vm_duplicate_codes_differ():
    assert errors.is_vm_duplicate(errors.VM_DUPLICATE_ERROR) is True
    assert errors.is_vm_duplicate_error(errors.VM_DUPLICATE) is False


def test_format_cloud_init_error_worked_example():
    message = (
        'task failed: {"message": "[VM_CLOUD_INIT_CONFIG_ERROR] '
        'The gateway [192.168.31.215] is unreachable.\\"}'
    )
    assert errors.format_cloud_init_error(message) == "The gateway [192.168.31.215] is unreachable."


def test_format_cloud_init_error_uses_last_occurrence():
    message = (
        "[VM_CLOUD_INIT_CONFIG_ERROR] first [VM_CLOUD_INIT_CONFIG_ERROR] second}}"
    )
    assert errors.format_cloud_init_error(message) == "second"


def test_format_cloud_init_error_without_code_is_unchanged():
    message = "The gateway is unreachable."
    assert errors.format_cloud_init_error(message) == message


def test_parse_gpu_assign_failed():
    message = f"task error: {errors.GPU_ASSIGN_FAILED}: gpu busy"
    assert errors.parse_gpu_assign_failed(message) == f"{errors.GPU_ASSIGN_FAILED}: gpu busy"
    assert errors.parse_gpu_assign_failed("other failure") == "other failure"


def test_parse_gpu_assign_failed_uses_last_occurrence():
    message = f"{errors.GPU_ASSIGN_FAILED} a; {errors.GPU_ASSIGN_FAILED} b"
    assert errors.parse_gpu_assign_failed(message) == f"{errors.GPU_ASSIGN_FAILED} b"