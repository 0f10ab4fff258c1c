"""Synchronization subsystem — the resource table and acquisition protocols.

Re-exports public symbols so callers can write::

    from py_sched.sync import ResourceTable, CeilingProtocol
"""

from py_sched.sync.protocols import (
    AcquisitionProtocol,
    CeilingProtocol,
    FifoProtocol,
    InheritanceProtocol,
)
from py_sched.sync.resources import DEFAULT_NUM_RESOURCES, Resource, ResourceTable

__all__ = [
    "DEFAULT_NUM_RESOURCES",
    "AcquisitionProtocol",
    "CeilingProtocol",
    "FifoProtocol",
    "InheritanceProtocol",
    "Resource",
    "ResourceTable",
]
