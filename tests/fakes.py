"""In-memory virtualization host for tests."""

from collections.abc import Iterable

from hvclean.host.base import HostQueryError, VirtualizationHost
from hvclean.host.models import Snapshot, VirtualMachine

VM_WEB_ID = "6f1c2b9e-4a3d-4b8e-9c1f-0a2b3c4d5e6f"
VM_DB_ID = "0d9e8f7a-1b2c-4d3e-8f9a-b0c1d2e3f4a5"
SNAPSHOT_ID = "a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d"
UNREGISTERED_ID = "ffffffff-0000-4000-8000-123456789abc"


class FakeHost(VirtualizationHost):
    """Virtualization host answering from dictionaries.

    Queries listed in ``failing`` raise HostQueryError. Keys are
    "list_vms", "disks:<vm_id>", "dvds:<vm_id>", "snapshots:<vm_id>",
    "snapshot_disks:<snapshot_id>", "snapshot_dvds:<snapshot_id>" and
    "parent:<disk path>".
    """

    def __init__(self) -> None:
        self.available = True
        self.vms: list[VirtualMachine] = []
        self.disks: dict[str, list[str]] = {}
        self.dvds: dict[str, list[str]] = {}
        self.snapshots: dict[str, list[Snapshot]] = {}
        self.parents: dict[str, str] = {}
        self.snapshot_disks: dict[str, list[str]] = {}
        self.snapshot_dvds: dict[str, list[str]] = {}
        self.failing: set[str] = set()
        self.parent_queries: list[str] = []

    def add_vm(
        self,
        vm_id: str,
        name: str,
        state: str = "Off",
        *,
        disks: Iterable[str] = (),
        dvds: Iterable[str] = (),
        snapshots: Iterable[tuple[str, str]] = (),
        configuration_location: str | None = None,
        snapshot_location: str | None = None,
    ) -> VirtualMachine:
        vm = VirtualMachine(
            vm_id=vm_id,
            name=name,
            state=state,
            configuration_location=configuration_location,
            snapshot_location=snapshot_location,
        )
        self.vms.append(vm)
        self.disks[vm_id] = list(disks)
        self.dvds[vm_id] = list(dvds)
        self.snapshots[vm_id] = [
            Snapshot(snapshot_id=sid, name=sname, vm_id=vm_id) for sid, sname in snapshots
        ]
        return vm

    def _check(self, key: str) -> None:
        if key in self.failing:
            raise HostQueryError(f"simulated failure: {key}")

    def is_available(self) -> bool:
        return self.available

    def list_vms(self) -> list[VirtualMachine]:
        self._check("list_vms")
        return list(self.vms)

    def list_disks(self, vm_id: str) -> list[str]:
        self._check(f"disks:{vm_id}")
        return list(self.disks.get(vm_id, []))

    def list_dvd_paths(self, vm_id: str) -> list[str]:
        self._check(f"dvds:{vm_id}")
        return list(self.dvds.get(vm_id, []))

    def list_snapshots(self, vm_id: str) -> list[Snapshot]:
        self._check(f"snapshots:{vm_id}")
        return list(self.snapshots.get(vm_id, []))

    def list_snapshot_disks(self, snapshot_id: str) -> list[str]:
        self._check(f"snapshot_disks:{snapshot_id}")
        return list(self.snapshot_disks.get(snapshot_id, []))

    def list_snapshot_dvd_paths(self, snapshot_id: str) -> list[str]:
        self._check(f"snapshot_dvds:{snapshot_id}")
        return list(self.snapshot_dvds.get(snapshot_id, []))

    def get_parent_path(self, disk_path: str) -> str | None:
        self.parent_queries.append(disk_path)
        self._check(f"parent:{disk_path}")
        return self.parents.get(disk_path)
