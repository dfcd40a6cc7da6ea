"""
vSphere mock infrastructure for testing
"""
from .base import MockVSphereObject
from .service import MockServiceInstance, MockContent, create_single_datacenter_inventory
from .vm import MockVirtualMachine
from .inventory import (MockDatacenter, MockFolder, MockResourcePool, MockComputeResource,
                        MockClusterComputeResource, MockDatastore, MockSnapshot,
                        MockSnapshotTree, MockSnapshotInfo, snapshot_chain)
from .tasks import MockTask

__all__ = [
    'MockVSphereObject',
    'MockServiceInstance',
    'MockContent',
    'create_single_datacenter_inventory',
    'MockVirtualMachine',
    'MockDatacenter',
    'MockFolder',
    'MockResourcePool',
    'MockComputeResource',
    'MockClusterComputeResource',
    'MockDatastore',
    'MockSnapshot',
    'MockSnapshotTree',
    'MockSnapshotInfo',
    'snapshot_chain',
    'MockTask',
]
