"""
vSphere session: connection, datacenter resolution and task handling
"""

import ssl
import atexit
import logging
import threading
from typing import Optional, Any, List, Callable
from urllib.parse import urlsplit
from pyVim import connect
from pyVmomi import vim, vmodl
from ...config import ConnectConfig
from ...exceptions import (ConnectionError, AuthenticationError, ResolutionError,
                           TaskError, StateError, OperationCancelledError)


logger = logging.getLogger(__name__)

DEFAULT_PORT = 443


def fault_message(fault: Any) -> str:
    """Best-effort human readable text for a vSphere fault"""
    if fault is None:
        return "unknown error"
    for attr in ('msg', 'localizedMessage'):
        value = getattr(fault, attr, None)
        if value:
            return str(value)
    return str(fault)


class VSphereClient:
    """Authenticated vSphere session scoped to one datacenter"""

    def __init__(self, config: ConnectConfig, task_poll_interval: float = 0.5):
        self.config = config
        self.task_poll_interval = task_poll_interval
        self._service_instance = None
        self._content = None
        self._datacenter = None
        self._cancelled = threading.Event()

    def parse_endpoint(self):
        """Split vcenter_server into (host, port)"""
        server = (self.config.vcenter_server or "").strip()
        try:
            parts = urlsplit(f"https://{server}/sdk")
            host, port = parts.hostname, parts.port
        except ValueError as e:
            raise ConnectionError(f"Invalid vCenter address '{server}': {e}") from e
        if not host or parts.path != "/sdk":
            raise ConnectionError(f"Invalid vCenter address '{server}'")
        return host, port or DEFAULT_PORT

    def connect(self) -> None:
        """Log in and resolve the working datacenter"""
        host, port = self.parse_endpoint()
        try:
            context = None
            if self.config.insecure_connection:
                # Lab environments may need unverified SSL context
                context = ssl._create_unverified_context()  # nosec B323

            self._service_instance = connect.SmartConnect(
                host=host,
                user=self.config.username,
                pwd=self.config.password,
                port=port,
                sslContext=context
            )

            atexit.register(connect.Disconnect, self._service_instance)
            self._content = self._service_instance.RetrieveContent()

        except vim.fault.InvalidLogin as e:
            raise AuthenticationError(f"Failed to authenticate to vSphere {host}") from e
        except Exception as e:
            raise ConnectionError(f"Failed to connect to vSphere: {str(e)}") from e

        logger.info(f"Connected to vSphere {host}:{port}")

        try:
            self._datacenter = self.resolve_datacenter(self.config.datacenter)
        except Exception:
            self.disconnect()
            raise
        logger.info(f"Using datacenter '{self._datacenter.name}'")

    def disconnect(self) -> None:
        """Disconnect from vSphere"""
        if self._service_instance:
            connect.Disconnect(self._service_instance)
            self._service_instance = None
            self._content = None
            self._datacenter = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()

    @property
    def content(self):
        """Get vSphere content object"""
        if not self._content:
            raise ConnectionError("Not connected to vSphere")
        return self._content

    @property
    def datacenter(self) -> vim.Datacenter:
        if self._datacenter is None:
            raise ConnectionError("Not connected to vSphere")
        return self._datacenter

    @property
    def datacenter_name(self) -> str:
        return self.datacenter.name

    def list_objects(self, vimtype: List, root=None) -> List[Any]:
        """All objects of the given types below root (default: rootFolder)"""
        container = self.content.viewManager.CreateContainerView(
            root or self.content.rootFolder, vimtype, True)
        try:
            return list(container.view)
        finally:
            container.Destroy()

    def resolve_datacenter(self, name: Optional[str] = None) -> vim.Datacenter:
        """Datacenter by name, or the only one when no name is given"""
        datacenters = self.list_objects([vim.Datacenter])
        if name:
            matches = [dc for dc in datacenters if dc.name == name]
            if not matches:
                raise ResolutionError(f"Datacenter '{name}' not found")
            if len(matches) > 1:
                raise ResolutionError(f"Datacenter '{name}' resolves to {len(matches)} objects")
            return matches[0]

        if not datacenters:
            raise ResolutionError("No datacenters found")
        if len(datacenters) > 1:
            raise ResolutionError(
                "Default datacenter resolves to multiple instances, please specify one",
                details={'datacenters': [dc.name for dc in datacenters]}
            )
        return datacenters[0]

    # cancellation

    def cancel(self) -> None:
        """Abort every wait currently running on this session"""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def check_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise OperationCancelledError("vSphere session was cancelled")

    def sleep(self, seconds: float) -> None:
        """Sleep, waking early when the session is cancelled"""
        if self._cancelled.wait(seconds):
            raise OperationCancelledError("vSphere session was cancelled")

    # tasks

    def wait_for_task(self, task: vim.Task, action: str = "task") -> Any:
        """Wait for vSphere task to complete and return its result"""
        while True:
            self.check_cancelled()
            info = task.info
            state = info.state
            if state == vim.TaskInfo.State.success:
                return info.result
            if state == vim.TaskInfo.State.error:
                message = fault_message(info.error)
                logger.warning(f"Task {action} failed: {message}")
                raise TaskError(f"Task {action} failed: {message}",
                                details={'fault': info.error})
            logger.debug(f"Task {action} is {state}")
            self.sleep(self.task_poll_interval)

    def run_task(self, action: str, submit: Callable, *args, **kwargs) -> Any:
        """Submit a task-returning call and block until it finishes"""
        self.check_cancelled()
        logger.info(f"Starting {action}")
        try:
            task = submit(*args, **kwargs)
        except vmodl.MethodFault as e:
            message = fault_message(e)
            logger.warning(f"Failed to submit {action}: {message}")
            raise TaskError(f"Failed to submit {action}: {message}",
                            details={'fault': e}) from e
        result = self.wait_for_task(task, action)
        logger.info(f"Finished {action}")
        return result

    def power_state(self, vm: vim.VirtualMachine) -> str:
        """Current power state of a VM"""
        try:
            return vm.runtime.powerState
        except (vmodl.MethodFault, OSError) as e:
            raise StateError(f"Failed to read power state: {fault_message(e)}",
                             details={'fault': e}) from e
