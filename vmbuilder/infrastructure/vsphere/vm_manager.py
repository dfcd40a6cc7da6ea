"""
VM lifecycle management for vSphere
"""

import time
import logging
from typing import Optional, Callable, Any
from pyVmomi import vim, vmodl
from .client import VSphereClient, fault_message
from .inventory import InventoryResolver
from ...config import CloneConfig, HardwareConfig
from ...exceptions import PreconditionError, TaskError, StateError, TimeoutError


logger = logging.getLogger(__name__)

SNAPSHOT_NAME = "Created by vmbuilder"
LINKED_CLONE_DISK_MOVE_TYPE = "createNewChildDiskBacking"
SHUTDOWN_TIMEOUT_MESSAGE = "Timeout while waiting for machine to shut down."


class VMManager:
    """Manages clone and lifecycle operations for one VM at a time"""

    def __init__(self, vsphere_client: VSphereClient,
                 resolver: Optional[InventoryResolver] = None):
        self.client = vsphere_client
        self.resolver = resolver or InventoryResolver(vsphere_client)

    # clone

    def build_relocate_spec(self, pool: vim.ResourcePool,
                            datastore: Optional[vim.Datastore] = None) -> vim.vm.RelocateSpec:
        """Placement for the clone; datastore is left unset when not given"""
        relocate_spec = vim.vm.RelocateSpec()
        relocate_spec.pool = pool
        if datastore is not None:
            relocate_spec.datastore = datastore
        return relocate_spec

    def current_snapshot(self, template: vim.VirtualMachine) -> Optional[vim.vm.Snapshot]:
        """Template's current snapshot, or None when it has none"""
        try:
            snapshot_info = template.snapshot
        except vmodl.MethodFault as e:
            raise StateError(f"Failed to read snapshots of '{template.name}': {fault_message(e)}",
                             details={'fault': e}) from e
        if snapshot_info is None:
            return None
        return snapshot_info.currentSnapshot

    def build_clone_spec(self, template: vim.VirtualMachine,
                         relocate_spec: vim.vm.RelocateSpec,
                         linked_clone: bool = False) -> vim.vm.CloneSpec:
        """Clone spec; the clone always starts powered off"""
        clone_spec = vim.vm.CloneSpec()
        clone_spec.location = relocate_spec
        clone_spec.powerOn = False
        clone_spec.template = False

        if linked_clone:
            snapshot = self.current_snapshot(template)
            if snapshot is None:
                raise PreconditionError("`linked_clone=true`, but template has no snapshots",
                                        details={'template': template.name})
            clone_spec.location.diskMoveType = LINKED_CLONE_DISK_MOVE_TYPE
            clone_spec.snapshot = snapshot

        return clone_spec

    def clone_vm(self, config: CloneConfig) -> vim.VirtualMachine:
        """Clone the template into a new, powered off VM"""
        template = self.resolver.find_vm(config.template)
        folder = self.resolver.folder_or_default(config.folder)
        pool = self.resolver.resource_pool_or_default(config.host, config.resource_pool)
        datastore = self.resolver.datastore_or_none(config.datastore)

        relocate_spec = self.build_relocate_spec(pool, datastore)
        clone_spec = self.build_clone_spec(template, relocate_spec, config.linked_clone)

        vm = self.client.run_task(
            f"clone of '{config.template}' to '{config.vm_name}'",
            template.CloneVM_Task,
            folder=folder,
            name=config.vm_name,
            spec=clone_spec
        )
        logger.info(f"Cloned '{config.template}' to '{config.vm_name}'")
        return vm

    # lifecycle

    def destroy_vm(self, vm: vim.VirtualMachine) -> None:
        """Delete VM and its disks"""
        self.client.run_task(f"destroy of '{vm.name}'", vm.Destroy_Task)

    def build_config_spec(self, hardware: HardwareConfig) -> vim.vm.ConfigSpec:
        """Reconfigure spec carrying only the fields that were set"""
        spec = vim.vm.ConfigSpec()
        if hardware.cpus is not None:
            spec.numCPUs = hardware.cpus
        if hardware.ram is not None:
            spec.memoryMB = hardware.ram

        if hardware.cpu_reservation is not None or hardware.cpu_limit is not None:
            cpu_allocation = vim.ResourceAllocationInfo()
            if hardware.cpu_reservation is not None:
                cpu_allocation.reservation = hardware.cpu_reservation
            if hardware.cpu_limit is not None:
                cpu_allocation.limit = hardware.cpu_limit
            spec.cpuAllocation = cpu_allocation

        if hardware.ram_reservation is not None:
            spec.memoryAllocation = vim.ResourceAllocationInfo(
                reservation=hardware.ram_reservation)

        if hardware.ram_reserve_all is not None:
            spec.memoryReservationLockedToMax = hardware.ram_reserve_all

        return spec

    def configure_vm(self, vm: vim.VirtualMachine, hardware: HardwareConfig) -> None:
        """Apply CPU/RAM settings in one reconfigure task"""
        spec = self.build_config_spec(hardware)
        self.client.run_task(f"reconfigure of '{vm.name}'", vm.ReconfigVM_Task, spec=spec)

    def power_on(self, vm: vim.VirtualMachine) -> None:
        """Power on VM"""
        self.client.run_task(f"power on of '{vm.name}'", vm.PowerOnVM_Task)

    def power_off(self, vm: vim.VirtualMachine) -> None:
        """Hard power off; no task is submitted when already off"""
        state = self.client.power_state(vm)
        if state == vim.VirtualMachinePowerState.poweredOff:
            logger.info(f"VM '{vm.name}' is already powered off")
            return
        self.client.run_task(f"power off of '{vm.name}'", vm.PowerOffVM_Task)

    def _invoke(self, action: str, call: Callable, *args) -> Any:
        """Call a non-task API method, mapping faults to TaskError"""
        self.client.check_cancelled()
        logger.info(f"Requesting {action}")
        try:
            return call(*args)
        except vmodl.MethodFault as e:
            message = fault_message(e)
            logger.warning(f"{action} failed: {message}")
            raise TaskError(f"{action} failed: {message}", details={'fault': e}) from e

    def start_shutdown(self, vm: vim.VirtualMachine) -> None:
        """Ask the guest OS to shut down; returns without waiting"""
        self._invoke(f"guest shutdown of '{vm.name}'", vm.ShutdownGuest)

    def create_snapshot(self, vm: vim.VirtualMachine, name: str = SNAPSHOT_NAME) -> None:
        """Snapshot without memory state and without quiescing"""
        self.client.run_task(
            f"snapshot of '{vm.name}'",
            vm.CreateSnapshot_Task,
            name=name,
            description="",
            memory=False,
            quiesce=False
        )

    def convert_to_template(self, vm: vim.VirtualMachine) -> None:
        """Mark VM as a template"""
        self._invoke(f"template conversion of '{vm.name}'", vm.MarkAsTemplate)

    # waiters

    def wait_for_ip(self, vm: vim.VirtualMachine, timeout: Optional[float] = None,
                    poll_interval: float = 2.0) -> str:
        """
        Wait until VMware Tools reports a guest IP address.

        Without a timeout this waits until the address shows up or the
        session is cancelled.
        """
        start_time = time.time()
        while True:
            self.client.check_cancelled()
            try:
                ip_address = vm.guest.ipAddress
            except vmodl.MethodFault as e:
                raise StateError(f"Failed to read guest info of '{vm.name}': {fault_message(e)}",
                                 details={'fault': e}) from e
            if ip_address:
                logger.info(f"VM '{vm.name}' has IP address {ip_address}")
                return ip_address

            if timeout is not None and time.time() - start_time >= timeout:
                raise TimeoutError(f"Timeout waiting for IP address on VM {vm.name}")
            logger.debug(f"Waiting for IP address on VM '{vm.name}'")
            self.client.sleep(poll_interval)

    def wait_for_shutdown(self, vm: vim.VirtualMachine, timeout: float,
                          poll_interval: float = 1.0) -> None:
        """Poll the power state until the VM is off or the timeout expires"""
        deadline = time.time() + timeout
        while True:
            state = self.client.power_state(vm)
            if state == vim.VirtualMachinePowerState.poweredOff:
                logger.info(f"VM '{vm.name}' is shut down")
                return

            if time.time() >= deadline:
                raise TimeoutError(SHUTDOWN_TIMEOUT_MESSAGE,
                                   details={'vm': vm.name, 'timeout': timeout})
            logger.debug(f"Waiting for VM '{vm.name}' to shut down ({state})")
            self.client.sleep(poll_interval)
