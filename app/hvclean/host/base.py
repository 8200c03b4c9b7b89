"""Abstract base class for virtualization hosts.

This module defines the query interface the reconciliation engine uses
to learn which files a host considers in use.
"""

from abc import ABC, abstractmethod

from hvclean.host.models import Snapshot, VirtualMachine


class HostQueryError(RuntimeError):
    """Raised when the virtualization host cannot answer a query."""


class VirtualizationHost(ABC):
    """Abstract base class for virtualization hosts.

    Every query may raise HostQueryError. Only a failing list_vms() is
    fatal to a scan; the other failures are confined to the VM, disk or
    snapshot being queried.

    Example:
        >>> host = HyperVHost()
        >>> if host.is_available():
        ...     for vm in host.list_vms():
        ...         print(vm.name, host.list_disks(vm.vm_id))
    """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the host can be queried from this machine.

        Returns:
            True if queries can be issued, False otherwise.
        """

    @abstractmethod
    def list_vms(self) -> list[VirtualMachine]:
        """List every registered virtual machine.

        The returned records carry identifier, name, state and locations;
        attachments and snapshots are fetched separately.

        Raises:
            HostQueryError: If the VM listing fails.
        """

    @abstractmethod
    def list_disks(self, vm_id: str) -> list[str]:
        """List paths of the virtual disks attached to a VM.

        Raises:
            HostQueryError: If the query fails.
        """

    @abstractmethod
    def list_dvd_paths(self, vm_id: str) -> list[str]:
        """List paths of optical media attached to a VM.

        Empty drives are omitted.

        Raises:
            HostQueryError: If the query fails.
        """

    @abstractmethod
    def list_snapshots(self, vm_id: str) -> list[Snapshot]:
        """List snapshots of a VM.

        Raises:
            HostQueryError: If the query fails.
        """

    @abstractmethod
    def list_snapshot_disks(self, snapshot_id: str) -> list[str]:
        """List paths of the virtual disks attached to a snapshot.

        A checkpoint keeps its own disk set, which can branch away from
        the chain the VM currently runs on.

        Raises:
            HostQueryError: If the query fails.
        """

    @abstractmethod
    def list_snapshot_dvd_paths(self, snapshot_id: str) -> list[str]:
        """List paths of optical media recorded in a snapshot.

        Raises:
            HostQueryError: If the query fails.
        """

    @abstractmethod
    def get_parent_path(self, disk_path: str) -> str | None:
        """Resolve the immediate parent of a differencing disk.

        Returns:
            Parent disk path, or None for a disk without a parent.

        Raises:
            HostQueryError: If the disk metadata cannot be read.
        """
