"""Names, labels and policies of the Tower resources managed by the controller."""

from __future__ import annotations

import os

from capelf.models import VMVMPolicy

# Environment variable holding the prefix of Tower resource names.
TOWER_RESOURCE_PREFIX = "TOWER_RESOURCE_PREFIX"

# Environment variable controlling whether VM configuration may be changed
# directly in Tower.
ALLOW_CUSTOM_VM_CONFIG = "ALLOW_CUSTOM_VM_CONFIG"

# Environment variable overriding the host config agent API group.
HOST_CONFIG_AGENT_API_GROUP = "HOST_CONFIG_AGENT_API_GROUP"

_DEFAULT_RESOURCE_PREFIX = "cape"

VM_LABEL_MANAGED = "managed"
VM_LABEL_NAMESPACE = "namespace"
VM_LABEL_CLUSTER_NAME = "cluster-name"
VM_LABEL_VIP = "vip"


def _get_env(key: str, default: str) -> str:
    return os.environ.get(key) or default


def get_resource_prefix() -> str:
    """The prefix used for Tower resources created by the controller."""
    return _get_env(TOWER_RESOURCE_PREFIX, _DEFAULT_RESOURCE_PREFIX)


def is_allow_custom_vm_config() -> bool:
    """True only when the environment variable is set to ``false``."""
    return _get_env(ALLOW_CUSTOM_VM_CONFIG, "true") == "false"


def _label(name: str) -> str:
    return f"{get_resource_prefix()}-{name}"


def get_vm_label_managed() -> str:
    return _label(VM_LABEL_MANAGED)


def get_vm_label_namespace() -> str:
    return _label(VM_LABEL_NAMESPACE)


def get_vm_label_cluster_name() -> str:
    return _label(VM_LABEL_CLUSTER_NAME)


def get_vm_label_vip() -> str:
    return _label(VM_LABEL_VIP)


def get_vm_placement_group_name_prefix(cluster_uid: str, cluster_namespace: str) -> str:
    """The name prefix shared by all placement groups of a cluster."""
    return f"{get_resource_prefix()}-managed-{cluster_uid}-{cluster_namespace}"


def get_vm_placement_group_policy(is_control_plane: bool) -> VMVMPolicy:
    """Control plane VMs must be spread; worker VMs preferably so."""
    if is_control_plane:
        return VMVMPolicy.MUST_DIFFERENT
    return VMVMPolicy.PREFER_DIFFERENT


def host_agent_api_group(default_group: str) -> str:
    """The host config agent API group, overridable through the environment."""
    return _get_env(HOST_CONFIG_AGENT_API_GROUP, default_group)