"""Names of the host agent jobs run on machines."""

from __future__ import annotations

from datetime import timedelta
from enum import Enum

from capelf.models import ElfMachine

# Namespace in which host agent jobs are created.
JOB_NAMESPACE = "default"

# Default timeout of a host agent job.
DEFAULT_TIMEOUT = timedelta(minutes=1)


class HostAgentJobType(str, Enum):
    """Kinds of host agent jobs."""

    EXPAND_ROOT_PARTITION = "expand-root-partition"
    RESTART_KUBELET = "restart-kubelet"

    def __str__(self) -> str:
        return self.value


def get_expand_root_partition_job_name(elf_machine: ElfMachine) -> str:
    """Name of the job expanding the root partition.

    The same disk size yields the same name, so repeated expansions share a job.
    """
    return f"cape-expand-root-partition-{elf_machine.name}-{elf_machine.spec.disk_gib}"


def get_restart_kubelet_job_name(elf_machine: ElfMachine) -> str:
    """Name of the job restarting the kubelet for the machine's CPU and memory."""
    spec = elf_machine.spec
    return (
        f"cape-restart-kubelet-{elf_machine.name}-{spec.num_cpus}-"
        f"{spec.num_cores_per_socket}-{spec.memory_mib}"
    )


def get_job_name(elf_machine: ElfMachine, job_type: HostAgentJobType | str) -> str:
    """Name of the job of the given type, or an empty string for unknown types."""
    try:
        kind = HostAgentJobType(job_type)
    except ValueError:
        return ""
    if kind is HostAgentJobType.EXPAND_ROOT_PARTITION:
        return get_expand_root_partition_job_name(elf_machine)
    return get_restart_kubelet_job_name(elf_machine)