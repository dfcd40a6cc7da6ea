"""
Shared test fixtures and configuration for vmbuilder tests
"""

import pytest
from unittest.mock import Mock, patch
from vmbuilder.config import ConnectConfig, CloneConfig
from vmbuilder.infrastructure.vsphere.client import VSphereClient
from vmbuilder.infrastructure.vsphere.inventory import InventoryResolver
from vmbuilder.infrastructure.vsphere.vm_manager import VMManager


class FakeClock:
    """Deterministic replacement for time.time()/sleep()"""

    def __init__(self, start: float = 1000.0):
        self.start = start
        self.now = start
        self.sleeps = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    @property
    def elapsed(self) -> float:
        return self.now - self.start


@pytest.fixture
def connect_config():
    """Connection settings for a lab vCenter"""
    return ConnectConfig(
        vcenter_server="vcenter.example.com",
        username="administrator@vsphere.local",
        password="password",
        insecure_connection=True
    )


@pytest.fixture
def clone_config():
    """Full clone of tpl1 into the default folder and pool"""
    return CloneConfig(template="tpl1", vm_name="vm1")


@pytest.fixture
def mock_vsphere_service_instance():
    """Single datacenter inventory with one cluster, datastore and template"""
    from tests.mocks.vsphere import create_single_datacenter_inventory
    return create_single_datacenter_inventory()


@pytest.fixture
def patch_vsphere_connect(mock_vsphere_service_instance):
    """Patch vSphere connect to hand out the mock service instance"""
    with patch('pyVim.connect.SmartConnect', return_value=mock_vsphere_service_instance) as mock_connect, \
            patch('pyVim.connect.Disconnect') as mock_disconnect, \
            patch('atexit.register'):
        yield mock_connect, mock_disconnect


@pytest.fixture
def vsphere_client(connect_config, patch_vsphere_connect):
    """VSphereClient connected to the mock inventory"""
    client = VSphereClient(connect_config, task_poll_interval=0)
    client.connect()
    yield client
    client.disconnect()


@pytest.fixture
def resolver(vsphere_client):
    return InventoryResolver(vsphere_client)


@pytest.fixture
def vm_manager(vsphere_client, resolver):
    return VMManager(vsphere_client, resolver)


@pytest.fixture
def datacenter(mock_vsphere_service_instance):
    return mock_vsphere_service_instance.content.rootFolder.childEntity[0]


@pytest.fixture
def template(datacenter):
    return [vm for vm in datacenter.vmFolder.childEntity if vm.name == "tpl1"][0]


@pytest.fixture
def mock_vm():
    """Powered on VM with no IP yet"""
    from tests.mocks.vsphere import MockVirtualMachine
    return MockVirtualMachine("test-vm", "poweredOn")


@pytest.fixture
def mock_vsphere_client():
    """Mock vSphere client whose run_task really submits the call"""
    client = Mock(spec=VSphereClient)
    client.run_task.side_effect = lambda action, submit, *args, **kwargs: submit(*args, **kwargs)
    client.power_state.side_effect = lambda vm: vm.runtime.powerState
    return client


@pytest.fixture
def fake_clock():
    """Fake clock wired into vm_manager's time module"""
    clock = FakeClock()
    with patch('vmbuilder.infrastructure.vsphere.vm_manager.time') as mock_time:
        mock_time.time.side_effect = clock.time
        yield clock
