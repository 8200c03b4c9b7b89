"""Virtualization host domain models.

Read-only records describing what the host reports about its virtual
machines. They are built once per run and never mutated.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class DiskReference:
    """A virtual disk attached to a virtual machine.

    Attributes:
        path: Absolute path of the disk file.
        parent_path: Parent disk path for differencing disks, if known.
    """

    path: str
    parent_path: str | None = None


@dataclass(frozen=True, slots=True)
class Snapshot:
    """A checkpoint of a virtual machine.

    Attributes:
        snapshot_id: Stable unique identifier (GUID string).
        name: Display name.
        vm_id: Identifier of the owning virtual machine.
        disks: Disks attached to the checkpoint, with their parents.
        dvd_paths: Media paths inserted when the checkpoint was taken.
    """

    snapshot_id: str
    name: str
    vm_id: str
    disks: tuple[DiskReference, ...] = ()
    dvd_paths: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class VirtualMachine:
    """A virtual machine registered with the host.

    Attributes:
        vm_id: Stable unique identifier (GUID string).
        name: Display name. Not guaranteed unique.
        state: Current run state as reported by the host (e.g. "Running").
        disks: Attached virtual disks, in host order.
        dvd_paths: Paths of attached optical media, in host order.
        snapshots: Snapshots of this VM.
        configuration_location: Host-reported configuration root, if any.
        snapshot_location: Host-reported snapshot root, if any.
    """

    vm_id: str
    name: str
    state: str
    disks: tuple[DiskReference, ...] = ()
    dvd_paths: tuple[str, ...] = ()
    snapshots: tuple[Snapshot, ...] = ()
    configuration_location: str | None = None
    snapshot_location: str | None = None

    def __post_init__(self) -> None:
        """Validate VM data after initialization."""
        if not self.vm_id:
            msg = "VM identifier cannot be empty"
            raise ValueError(msg)

    @property
    def is_running(self) -> bool:
        """Check if the VM is currently running."""
        return self.state.lower() == "running"
