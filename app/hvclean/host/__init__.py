"""Virtualization host query layer.

Defines the host interface, the read-only VM records it produces and
the Hyper-V implementation.
"""

from hvclean.host.base import HostQueryError, VirtualizationHost
from hvclean.host.hyperv import HyperVHost
from hvclean.host.models import DiskReference, Snapshot, VirtualMachine

__all__ = [
    "DiskReference",
    "HostQueryError",
    "HyperVHost",
    "Snapshot",
    "VirtualMachine",
    "VirtualizationHost",
]
