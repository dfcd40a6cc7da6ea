"""
Inventory lookups scoped to the session's datacenter
"""

import logging
from typing import Optional, Any
from pyVmomi import vim
from .client import VSphereClient
from ...exceptions import ResolutionError


logger = logging.getLogger(__name__)


def escape_name(name: str) -> str:
    """Escape an entity name for use as one inventory path segment"""
    return name.replace("%", "%25").replace("/", "%2f")


def escape_path(path: str) -> str:
    """Escape each segment of a '/' separated path of entity names"""
    return "/".join(escape_name(part) for part in path.strip("/").split("/"))


class InventoryResolver:
    """
    Resolves names and inventory paths to managed objects.

    Paths follow the vCenter inventory layout, e.g.
    ``/<datacenter>/vm/<folder>`` or ``/<datacenter>/host/<host>/Resources/<pool>``.
    Names inside paths are escaped (``%`` as ``%25``, ``/`` inside a name as
    ``%2f``); a ``/`` in a caller supplied path always separates segments.
    Optional names left as None fall back to the datacenter's defaults.
    Nothing is cached, every call goes to the server.
    """

    def __init__(self, vsphere_client: VSphereClient):
        self.client = vsphere_client

    @property
    def datacenter(self) -> vim.Datacenter:
        return self.client.datacenter

    def datacenter_path(self) -> str:
        """Inventory path of the datacenter, including parent folders"""
        root = self.client.content.rootFolder
        names = []
        obj = self.datacenter
        while obj is not None and obj != root:
            names.append(escape_name(obj.name))
            obj = obj.parent
        return "/" + "/".join(reversed(names))

    def find_by_path(self, path: str, vimtype, kind: str) -> Any:
        """Look up an inventory path and check the object type"""
        obj = self.client.content.searchIndex.FindByInventoryPath(path.strip("/"))
        if obj is None or not isinstance(obj, vimtype):
            raise ResolutionError(f"{kind} '{path}' not found", details={'path': path})
        logger.debug(f"Resolved {kind} path {path}")
        return obj

    def find_unique(self, vimtype, name: str, root, kind: str) -> Any:
        """Exactly one object of vimtype named name below root"""
        matches = [obj for obj in self.client.list_objects([vimtype], root) if obj.name == name]
        if not matches:
            raise ResolutionError(f"{kind} '{name}' not found", details={'name': name})
        if len(matches) > 1:
            raise ResolutionError(f"{kind} '{name}' resolves to {len(matches)} objects",
                                  details={'name': name})
        return matches[0]

    def find_vm(self, name: str) -> vim.VirtualMachine:
        """VM or template by name, or by path relative to the datacenter's vm folder"""
        if name.startswith("/"):
            return self.find_by_path("/" + escape_path(name), vim.VirtualMachine, "VM")
        if "/" in name:
            return self.find_by_path(f"{self.datacenter_path()}/vm/{escape_path(name)}",
                                     vim.VirtualMachine, "VM")
        return self.find_unique(vim.VirtualMachine, name, self.datacenter.vmFolder, "VM")

    def find_folder(self, path: str) -> vim.Folder:
        return self.find_by_path(path, vim.Folder, "Folder")

    def folder_or_default(self, folder: Optional[str] = None) -> vim.Folder:
        """Folder below /<dc>/vm, or the datacenter's vm folder"""
        if not folder:
            return self.datacenter.vmFolder
        return self.find_folder(f"{self.datacenter_path()}/vm/{escape_path(folder)}")

    def find_resource_pool(self, path: str) -> vim.ResourcePool:
        return self.find_by_path(path, vim.ResourcePool, "Resource pool")

    def default_resource_pool(self) -> vim.ResourcePool:
        """Root pool of the datacenter's only cluster or standalone host"""
        compute = self.client.list_objects([vim.ComputeResource], self.datacenter.hostFolder)
        if not compute:
            raise ResolutionError(f"No resource pool found in datacenter '{self.datacenter.name}'")
        if len(compute) > 1:
            raise ResolutionError(
                "Default resource pool resolves to multiple instances, please specify a host and pool",
                details={'compute_resources': [c.name for c in compute]}
            )
        return compute[0].resourcePool

    def resource_pool_or_default(self, host: Optional[str] = None,
                                 pool: Optional[str] = None) -> vim.ResourcePool:
        """Named pool under a host/cluster, or the datacenter default pool"""
        if not pool:
            return self.default_resource_pool()
        if not host:
            return self.find_unique(vim.ResourcePool, pool, self.datacenter.hostFolder,
                                    "Resource pool")
        return self.find_resource_pool(
            f"{self.datacenter_path()}/host/{escape_path(host)}/Resources/{escape_path(pool)}")

    def find_datastore(self, name: str) -> vim.Datastore:
        return self.find_unique(vim.Datastore, name, self.datacenter.datastoreFolder, "Datastore")

    def datastore_or_none(self, name: Optional[str] = None) -> Optional[vim.Datastore]:
        """Datastore when named, otherwise None so placement picks one"""
        if not name:
            return None
        return self.find_datastore(name)

