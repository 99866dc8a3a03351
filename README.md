# capelf

Building blocks for a controller that provisions Kubernetes nodes as virtual
machines on an ELF cluster managed by a Tower server. The package holds the
decisions such a controller makes before it calls the server: how to size a VM,
which hosts and GPUs can take it, how to name its resources, and whether an
operation may go ahead right now.

## Modules

- `capelf.config`: default timeouts (`WAIT_TASK_TIMEOUT`,
  `DEFAULT_REQUEUE_TIMEOUT`, ...), VM sizing defaults (`VM_NUM_CPUS`,
  `VM_MEMORY_MIB`), `MAX_CONCURRENT_VM_CREATIONS` and default manager names
  such as `DEFAULT_POD_NAME` and `DEFAULT_LEADER_ELECTION_ID`.
- `capelf.models`: dataclasses and enums for Tower hosts, VMs, tasks, disks,
  zones, placement groups and GPU devices (`Host`, `VM`, `Task`, `GpuVMInfo`,
  `GPUDeviceInfo`, `HostStatus`, `VMStatus`, ...), and the `ElfMachine` with
  its `MachineSpec`.
- `capelf.errors`: Tower error codes, the `TowerError` exception, the
  `MachineStatusError` enum and predicates that classify Tower error messages
  or exceptions, such as `is_vm_not_found` and `is_placement_group_error`.
  `format_cloud_init_error` and `parse_gpu_assign_failed` extract the useful
  part of a message.
- `capelf.util`: conversions from a machine spec to Tower values
  (`tower_memory`, `tower_disk`, `tower_vcpu`, `tower_cpu_socket_cores`,
  `tower_cpu_sockets`) and back (`byte_to_gib`, `byte_to_mib`);
  `get_updated_vm_restricted_fields`; `is_available_host`; task classifiers
  such as `is_clone_vm_task`; GPU availability
  (`get_available_count_from_gpu_vm_info`, `get_vms_occupying_gpu`,
  `has_gpus_can_not_be_used_for_vm`); `parse_owner_from_created_by_annotation`;
  `get_vm_system_disk` and `get_host_zone`.
- `capelf.hostsets`: the `Hosts` and `GPUVMInfos` collections, keyed by ID,
  with `get`, `find`, `difference`, `filter` and availability filters.
- `capelf.resources`: the resource prefix, VM label names, placement group
  name prefix and policy, and the host agent API group. These read the
  `TOWER_RESOURCE_PREFIX`, `ALLOW_CUSTOM_VM_CONFIG` and
  `HOST_CONFIG_AGENT_API_GROUP` environment variables.
- `capelf.hostagent`: `HostAgentJobType` and the names of host agent jobs
  (`get_expand_root_partition_job_name`, `get_restart_kubelet_job_name`,
  `get_job_name`).
- `capelf.limiter`: `OperationLimiter` limits concurrent worker VM creations,
  rate-limits updates of the same VM, serialises placement group operations and
  allows label garbage collection at most once a day per Tower. `GPULocker`
  reserves GPU devices for a VM for up to eight minutes so that two VMs are not
  given the same device. Both are built on `ExpiringCache` and take a clock
  function, so time can be controlled in tests.

## Example

```python
from capelf.limiter import GPULocker, OperationLimiter
from capelf.models import GPUDeviceInfo

limiter = OperationLimiter(max_concurrent_vm_creations=20)
ok, reason = limiter.acquire_ticket_for_create_vm("worker-0", False)
if not ok:
    print(reason)

locker = GPULocker()
gpus = [GPUDeviceInfo(id="gpu-1", allocated_count=1, available_count=1)]
if locker.lock_gpu_devices_for_vm("cluster-1", "worker-0", "host-1", gpus):
    ...
locker.unlock_gpu_devices_locked_by_vm("cluster-1", "worker-0")
limiter.release_ticket_for_create_vm("worker-0")
```

## What it does not do

The package is a library with no command. It has no Tower client: it does not
clone, start, stop or delete VMs, query hosts or wait for tasks. It does not
run a Kubernetes controller manager or webhooks, and it only names host agent
jobs; it does not build or submit them. All state kept by `OperationLimiter`
and `GPULocker` lives in memory in the current process.

## Development

```
pip install -e ".[test]"
pytest
```