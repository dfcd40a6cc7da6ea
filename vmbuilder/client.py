"""
Main vmbuilder client class
"""

from typing import Optional
from .config import ConnectConfig
from .exceptions import ConnectionError
from .infrastructure.vsphere.client import VSphereClient
from .infrastructure.vsphere.inventory import InventoryResolver
from .infrastructure.vsphere.vm_manager import VMManager


class VMBuilderClient:
    """One vSphere session with its inventory resolver and VM manager"""

    def __init__(self, config: ConnectConfig, task_poll_interval: float = 0.5):
        self.config = config
        self.vsphere = VSphereClient(config, task_poll_interval=task_poll_interval)
        self._inventory: Optional[InventoryResolver] = None
        self._vms: Optional[VMManager] = None

    def connect(self) -> 'VMBuilderClient':
        """Connect to vSphere and resolve the datacenter"""
        self.vsphere.connect()
        self._inventory = InventoryResolver(self.vsphere)
        self._vms = VMManager(self.vsphere, self._inventory)
        return self

    def disconnect(self) -> None:
        """Disconnect from vSphere"""
        self.vsphere.disconnect()
        self._inventory = None
        self._vms = None

    def cancel(self) -> None:
        """Abort any wait in progress on this session"""
        self.vsphere.cancel()

    @property
    def inventory(self) -> InventoryResolver:
        if self._inventory is None:
            raise ConnectionError("Not connected to vSphere")
        return self._inventory

    @property
    def vms(self) -> VMManager:
        if self._vms is None:
            raise ConnectionError("Not connected to vSphere")
        return self._vms

    def __enter__(self):
        return self.connect()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
