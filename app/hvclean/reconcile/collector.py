"""Active-file collector.

Walks the host's registered VMs, their disks (following differencing
disk chains to the base disk), DVD media and snapshots (with the disks
and media each checkpoint holds) to build the set of files the host is
using, plus a VM lookup index.
"""

import logging
from dataclasses import replace
from pathlib import Path

from hvclean.host.base import HostQueryError, VirtualizationHost
from hvclean.host.models import DiskReference, Snapshot, VirtualMachine
from hvclean.reconcile.models import ActiveFileSet, CollectionResult, VMIndex, normalize_path

logger = logging.getLogger(__name__)

CONFIG_EXTENSION = ".vmcx"
STATE_EXTENSION = ".vmrs"

# Subfolders Hyper-V creates under a VM's configuration/snapshot location
_VM_CONFIG_SUBDIR = "Virtual Machines"
_SNAPSHOT_CONFIG_SUBDIR = "Snapshots"

# Longest differencing chain followed before giving up
MAX_CHAIN_DEPTH = 64


class CollectionError(RuntimeError):
    """Raised when the host reports nothing to reconcile against."""


class ActiveFileCollector:
    """Builds the set of files in use by a virtualization host.

    Collection is sequential and deterministic: VMs in host order, and
    per VM its config files, disks and their chains, DVD media, then
    snapshots with their own disks and media. Only a failing VM listing
    aborts; every other failure is logged and confined to the VM, chain
    or snapshot involved.

    Args:
        host: Virtualization host to query.
        primary_config_path: Directory holding VM configuration files.
        snapshot_config_path: Directory holding snapshot configuration files.
    """

    def __init__(
        self,
        host: VirtualizationHost,
        primary_config_path: Path,
        snapshot_config_path: Path,
    ) -> None:
        self._host = host
        self._primary_config_path = primary_config_path
        self._snapshot_config_path = snapshot_config_path

        # Per-collection parent lookups (shared base disks are queried once)
        self._parent_cache: dict[str, str | None] = {}

    def collect(self) -> CollectionResult:
        """Query the host and build the active-file set and VM index.

        Returns:
            CollectionResult with active files, VM index and VMs.

        Raises:
            HostQueryError: If the host cannot list its VMs.
            CollectionError: If the host has no VMs registered.
        """
        self._parent_cache = {}

        vms = self._host.list_vms()
        if not vms:
            msg = "No virtual machines are registered with the host"
            raise CollectionError(msg)

        active: list[str] = []
        assembled: list[VirtualMachine] = []
        for vm in vms:
            logger.debug("Collecting files of VM %s (%s)", vm.name, vm.vm_id)
            assembled.append(self._collect_vm(vm, active))

        logger.debug("Collected %d active files from %d VMs", len(active), len(assembled))
        return CollectionResult(
            active_files=ActiveFileSet(active),
            vm_index=VMIndex(assembled),
            vms=tuple(assembled),
        )

    def _collect_vm(self, vm: VirtualMachine, active: list[str]) -> VirtualMachine:
        """Register one VM's files and return it with attachments filled in."""
        config_dirs = self._config_dirs(
            self._primary_config_path, vm.configuration_location, _VM_CONFIG_SUBDIR
        )
        self._add_config_files(config_dirs, vm.vm_id, f"VM {vm.name}", active)

        try:
            disk_paths = self._host.list_disks(vm.vm_id)
            dvd_paths = self._host.list_dvd_paths(vm.vm_id)
        except HostQueryError as e:
            logger.warning("Skipping attachments of VM %s: %s", vm.name, e)
            disk_paths, dvd_paths = [], []

        disks = self._register_disks(disk_paths, active)
        active.extend(p for p in dvd_paths if p)

        snapshots = self._collect_snapshots(vm, active)

        return replace(
            vm,
            disks=tuple(disks),
            dvd_paths=tuple(dvd_paths),
            snapshots=tuple(snapshots),
        )

    def _collect_snapshots(self, vm: VirtualMachine, active: list[str]) -> list[Snapshot]:
        try:
            snapshots = self._host.list_snapshots(vm.vm_id)
        except HostQueryError as e:
            logger.warning("Skipping snapshots of VM %s: %s", vm.name, e)
            return []

        dirs = self._config_dirs(
            self._snapshot_config_path, vm.snapshot_location, _SNAPSHOT_CONFIG_SUBDIR
        )
        assembled: list[Snapshot] = []
        for snapshot in snapshots:
            label = f"snapshot {snapshot.name} of VM {vm.name}"
            self._add_config_files(dirs, snapshot.snapshot_id, label, active)
            assembled.append(self._collect_snapshot_attachments(snapshot, label, active))
        return assembled

    def _collect_snapshot_attachments(
        self, snapshot: Snapshot, label: str, active: list[str]
    ) -> Snapshot:
        """Register the disks (with their chains) and media a checkpoint holds."""
        try:
            disk_paths = self._host.list_snapshot_disks(snapshot.snapshot_id)
            dvd_paths = self._host.list_snapshot_dvd_paths(snapshot.snapshot_id)
        except HostQueryError as e:
            logger.warning("Skipping attachments of %s: %s", label, e)
            return snapshot

        disks = self._register_disks(disk_paths, active)
        active.extend(p for p in dvd_paths if p)
        return replace(snapshot, disks=tuple(disks), dvd_paths=tuple(dvd_paths))

    def _register_disks(self, disk_paths: list[str], active: list[str]) -> list[DiskReference]:
        """Register each disk and its parent chain."""
        disks: list[DiskReference] = []
        for disk_path in disk_paths:
            chain = self._resolve_chain(disk_path)
            active.extend(chain)
            parent = chain[1] if len(chain) > 1 else None
            disks.append(DiskReference(path=disk_path, parent_path=parent))
        return disks

    def _resolve_chain(self, disk_path: str) -> list[str]:
        """Follow a disk's parent chain.

        Returns the disk followed by each ancestor. The walk stops at a
        disk without a parent, on a repeated path, past MAX_CHAIN_DEPTH,
        or when the host cannot read a disk's metadata.
        """
        chain = [disk_path]
        seen = {normalize_path(disk_path)}
        current = disk_path

        while True:
            if len(chain) > MAX_CHAIN_DEPTH:
                logger.warning(
                    "Disk chain of %s exceeds %d levels; stopping", disk_path, MAX_CHAIN_DEPTH
                )
                break

            try:
                parent = self._get_parent(current)
            except HostQueryError as e:
                logger.warning("Cannot follow parent of disk %s: %s", current, e)
                break

            if parent is None:
                break

            key = normalize_path(parent)
            if key in seen:
                logger.warning("Disk chain of %s loops back to %s; stopping", disk_path, parent)
                break

            seen.add(key)
            chain.append(parent)
            current = parent

        return chain

    def _get_parent(self, disk_path: str) -> str | None:
        key = normalize_path(disk_path)
        if key not in self._parent_cache:
            self._parent_cache[key] = self._host.get_parent_path(disk_path)
        return self._parent_cache[key]

    @staticmethod
    def _config_dirs(base: Path, location: str | None, subdir: str) -> list[Path]:
        """Directories in which an entity's config files may live.

        The configured directory always applies. A host-reported location
        adds its Hyper-V subfolder when it differs.
        """
        dirs = [base]
        if location:
            extra = Path(location) / subdir
            if normalize_path(extra) != normalize_path(base):
                dirs.append(extra)
        return dirs

    @staticmethod
    def _add_config_files(
        dirs: list[Path],
        entity_id: str,
        label: str,
        active: list[str],
    ) -> None:
        """Register an entity's .vmcx file and, when present, its .vmrs file.

        The .vmcx path is registered in every candidate directory. A
        missing .vmrs is normal (the VM is off); a .vmcx found in none of
        the directories is logged.
        """
        found = False
        for directory in dirs:
            config_file = directory / f"{entity_id}{CONFIG_EXTENSION}"
            state_file = directory / f"{entity_id}{STATE_EXTENSION}"
            active.append(str(config_file))
            try:
                found = found or config_file.exists()
                if state_file.exists():
                    active.append(str(state_file))
            except OSError as e:
                logger.warning("Cannot check configuration files of %s: %s", label, e)
                found = True

        if not found:
            logger.warning(
                "Configuration file of %s not found: %s",
                label,
                dirs[0] / f"{entity_id}{CONFIG_EXTENSION}",
            )
