from capelf.hostsets import GPUVMInfos, Hosts
from capelf.models import (
    GpuDeviceUsage,
    GpuVMDetail,
    GpuVMInfo,
    Host,
    HostStatus,
    VMStatus,
)


def _plain_hosts():
    return Host(id="1", name="host1"), Host(id="2", name="host2")


def _healthy_hosts():
    host1 = Host(
        id="1",
        name="host1",
        allocatable_memory_bytes=1,
        status=HostStatus.CONNECTED_HEALTHY,
    )
    host2 = Host(
        id="2",
        name="host2",
        allocatable_memory_bytes=2,
        status=HostStatus.CONNECTED_HEALTHY,
    )
    return host1, host2


def test_find_in_empty_hosts():
    assert len(Hosts().find({"1"})) == 0


def test_find_and_get():
    host1, host2 = _plain_hosts()
    hosts = Hosts([host1, host2])
    assert hosts.get("1") is host1
    assert hosts.get("404") is None
    assert "1" in hosts.find({"1"})
    assert len(hosts.find({"1"})) == 1
    assert sorted(hosts.ids()) == ["1", "2"]


def test_insert_ignores_none_and_replaces_same_id():
    host1, _ = _plain_hosts()
    hosts = Hosts([None])
    assert hosts.is_empty()
    hosts.insert(host1, None)
    replacement = Host(id="1", name="other")
    hosts.insert(replacement)
    assert len(hosts) == 1
    assert hosts.get("1") is replacement


def test_iteration_yields_hosts():
    host1, host2 = _plain_hosts()
    names = sorted(h.name for h in Hosts([host1, host2]))
    assert names == ["host1", "host2"]


def test_available_hosts():
    host1, host2 = _healthy_hosts()
    assert len(Hosts().filter_available_hosts_with_enough_memory(0)) == 0

    available = Hosts([host1, host2]).filter_available_hosts_with_enough_memory(2)
    assert len(available) == 1
    assert "2" in available


def test_unavailable_hosts_empty():
    unavailable = Hosts().filter_unavailable_hosts_or_without_enough_memory(0)
    assert unavailable.is_empty()
    assert len(unavailable) == 0
    assert str(unavailable) == "[]"


def test_unavailable_hosts():
    host1, host2 = _healthy_hosts()
    unavailable = Hosts([host1, host2]).filter_unavailable_hosts_or_without_enough_memory(2)
    assert len(unavailable) == 1
    assert "1" in unavailable
    assert str(unavailable) == (
        "[{id: 1,name: host1,memory: 1,status: CONNECTED_HEALTHY,state: },]"
    )


def test_difference():
    host1, host2 = _plain_hosts()
    assert len(Hosts().difference(Hosts())) == 0
    assert len(Hosts().difference(Hosts([host1]))) == 0
    assert len(Hosts([host1]).difference(Hosts([host1]))) == 0
    assert "1" in Hosts([host1]).difference(Hosts())
    assert "1" in Hosts([host1]).difference(Hosts([host2]))
    diff = Hosts([host1, host2]).difference(Hosts([host2]))
    assert "1" in diff
    assert "2" not in diff


def test_filter_without_filters_keeps_all():
    host1, host2 = _plain_hosts()
    assert sorted(Hosts([host1, host2]).filter().ids()) == ["1", "2"]


def test_gpu_vm_infos_find():
    info1 = GpuVMInfo(id="gpu1")
    info2 = GpuVMInfo(id="gpu2")

    infos = GPUVMInfos()
    assert infos.get("404") is None
    assert len(infos) == 0

    infos.insert(info1)
    assert "gpu1" in infos
    assert infos.get("gpu1") is info1
    assert list(infos) == [info1]

    count = 0
    gpu_id = None
    for info in infos:
        count += 1
        gpu_id = info.id
    assert count == 1
    assert gpu_id == "gpu1"

    infos = GPUVMInfos([info1, info2])
    filtered = infos.filter(lambda g: g is not info1)
    assert len(filtered) == 1
    assert "gpu2" in filtered


def test_gpu_vm_infos_filter_available_passthrough():
    info = GpuVMInfo(id="gpu1", user_usage=GpuDeviceUsage.PASS_THROUGH)
    assert len(GPUVMInfos([info]).filter_available_gpu_vm_infos()) == 1
    info.vms = [GpuVMDetail(status=VMStatus.STOPPED)]
    assert len(GPUVMInfos([info]).filter_available_gpu_vm_infos()) == 1
    info.vms = [GpuVMDetail(status=VMStatus.RUNNING)]
    assert len(GPUVMInfos([info]).filter_available_gpu_vm_infos()) == 0


def test_gpu_vm_infos_filter_available_vgpu():
    info = GpuVMInfo(id="gpu2", user_usage=GpuDeviceUsage.VGPU, available_vgpus_num=1)
    assert len(GPUVMInfos([info]).filter_available_gpu_vm_infos()) == 1
    info.available_vgpus_num = 0
    assert len(GPUVMInfos([info]).filter_available_gpu_vm_infos()) == 0