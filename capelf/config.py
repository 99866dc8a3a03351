"""Operational defaults shared by the controllers and the Tower service layer."""

from datetime import timedelta

PROVIDER_NAME_SHORT = "cape"

# How long to wait before requeueing an operation.
DEFAULT_REQUEUE_TIMEOUT = timedelta(seconds=10)

# Interval between task status polls.
WAIT_TASK_INTERVAL = timedelta(seconds=1)

# Default timeout when waiting for a task to complete.
WAIT_TASK_TIMEOUT = timedelta(seconds=3)

# Timeout when waiting for placement group create/update/delete tasks.
WAIT_TASK_TIMEOUT_FOR_PLACEMENT_GROUP_OPERATION = timedelta(seconds=10)

# How long to check whether a VM is powered off after the Machine's
# NodeHealthy condition becomes Unknown.
VM_POWER_STATUS_CHECKING_DURATION = timedelta(minutes=2)

# Default description of a VM; formatted with the Tower server address.
VM_DESCRIPTION = "Automatically created Kubernetes node by server %s."

# Default number of virtual processors in a VM.
VM_NUM_CPUS = 2

# Default memory of a VM in MiB.
VM_MEMORY_MIB = 2048

# Default disk name of a VM.
VM_DISK_NAME = "disk"

# Default maximum number of concurrent VM creations.
MAX_CONCURRENT_VM_CREATIONS = 20

_DEFAULT_PREFIX = "cape-"

# Default minimum interval at which watched resources are reconciled.
DEFAULT_SYNC_PERIOD = timedelta(minutes=10)

DEFAULT_POD_NAME = _DEFAULT_PREFIX + "controller-manager"

DEFAULT_POD_NAMESPACE = _DEFAULT_PREFIX + "system"

DEFAULT_LEADER_ELECTION_ID = DEFAULT_POD_NAME + "-runtime"

DEFAULT_WEBHOOK_SERVICE_CONTAINER_PORT = 0