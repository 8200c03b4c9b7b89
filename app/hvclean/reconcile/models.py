"""Reconciliation domain models.

This module defines the data structures shared by the collector, the
disk scanner and the orphan resolver: the set of files the host uses,
the VM lookup index, scanned candidate files and orphan records.
"""

import logging
import os
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from hvclean.host.models import VirtualMachine

logger = logging.getLogger(__name__)

# Extensions of VM configuration and runtime state files
CONFIG_EXTENSIONS: frozenset[str] = frozenset({".vmcx", ".vmrs"})

# Extensions of virtual hard disks, including differencing disks
DISK_EXTENSIONS: frozenset[str] = frozenset({".vhd", ".vhdx", ".avhd", ".avhdx"})

ISO_EXTENSION = ".iso"

# Owner reported when nothing could be extracted
UNKNOWN_OWNER = "unknown"


def normalize_path(path: str | os.PathLike[str]) -> str:
    """Normalize a path for case-insensitive comparison.

    Args:
        path: Absolute filesystem path.

    Returns:
        Normalized, case-folded path string.
    """
    return os.path.normpath(os.fspath(path)).casefold()


class ActiveFileSet:
    """Immutable set of file paths the host considers in use.

    Membership tests normalize the queried path, so ``path in active`` is a
    case-insensitive O(1) lookup.
    """

    __slots__ = ("_paths",)

    def __init__(self, paths: Iterable[str | os.PathLike[str]] = ()) -> None:
        self._paths: frozenset[str] = frozenset(normalize_path(p) for p in paths)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, os.PathLike)):
            return False
        return normalize_path(path) in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._paths))

    def __repr__(self) -> str:
        return f"ActiveFileSet({len(self._paths)} paths)"


class VMIndex:
    """Lookup of registered VMs by identifier and by name.

    Identifiers and names live in separate maps. A key that is both some
    VM's identifier and another VM's name resolves to the identifier.
    When two VMs share a name, the first one indexed wins.
    """

    __slots__ = ("_by_id", "_by_name")

    def __init__(self, vms: Iterable[VirtualMachine] = ()) -> None:
        by_id: dict[str, VirtualMachine] = {}
        by_name: dict[str, VirtualMachine] = {}
        for vm in vms:
            by_id.setdefault(vm.vm_id.casefold(), vm)
            if not vm.name:
                continue
            name_key = vm.name.casefold()
            if name_key in by_name:
                logger.debug(
                    "Duplicate VM name %r (%s); keeping %s",
                    vm.name,
                    vm.vm_id,
                    by_name[name_key].vm_id,
                )
                continue
            by_name[name_key] = vm
        self._by_id = by_id
        self._by_name = by_name

    def by_id(self, vm_id: str) -> VirtualMachine | None:
        """Look up a VM by identifier (case-insensitive)."""
        return self._by_id.get(vm_id.casefold())

    def by_name(self, name: str) -> VirtualMachine | None:
        """Look up a VM by display name (case-insensitive)."""
        return self._by_name.get(name.casefold())

    def find(self, key: str) -> VirtualMachine | None:
        """Look up a VM by identifier first, then by name."""
        if not key:
            return None
        return self.by_id(key) or self.by_name(key)

    def __len__(self) -> int:
        return len(self._by_id)


@dataclass(frozen=True, slots=True)
class CollectionResult:
    """Everything the collector learned from the host.

    Attributes:
        active_files: Files reachable from any VM or snapshot.
        vm_index: Lookup of registered VMs.
        vms: Registered VMs with their attachments, in host order.
    """

    active_files: ActiveFileSet
    vm_index: VMIndex
    vms: tuple[VirtualMachine, ...]


@dataclass(frozen=True, slots=True)
class CandidateFile:
    """A VM-related file found on disk.

    Attributes:
        path: Absolute file path.
        name: File name without extension.
        extension: Lower-cased extension including the dot (e.g. ".vhdx").
        directory_name: Name of the containing directory.
        grandparent_name: Name of the containing directory's parent.
        size_bytes: File size in bytes.
        mtime: Last modification time in ISO 8601 format (UTC).
    """

    path: str
    name: str
    extension: str
    directory_name: str
    grandparent_name: str
    size_bytes: int
    mtime: str

    def __post_init__(self) -> None:
        """Validate candidate data after initialization."""
        if not self.path:
            msg = "Path cannot be empty"
            raise ValueError(msg)

    @classmethod
    def from_path(cls, path: Path, size_bytes: int, mtime: str) -> "CandidateFile":
        """Build a candidate from a path and its stat data."""
        return cls(
            path=str(path),
            name=path.stem,
            extension=path.suffix.lower(),
            directory_name=path.parent.name,
            grandparent_name=path.parent.parent.name,
            size_bytes=size_bytes,
            mtime=mtime,
        )

    @property
    def is_config(self) -> bool:
        """Check if this is a VM configuration or state file."""
        return self.extension in CONFIG_EXTENSIONS


class OwnershipMatch(str, Enum):
    """Outcome of ownership inference for an orphan.

    Attributes:
        MATCHED: Attributed to a VM that is currently registered.
        UNMATCHED_WITH_GUESS: An identifier or name was extracted, but no
            such VM is registered.
        UNMATCHED_NO_GUESS: Nothing usable could be extracted.
    """

    MATCHED = "matched"
    UNMATCHED_WITH_GUESS = "unmatched_with_guess"
    UNMATCHED_NO_GUESS = "unmatched_no_guess"


@dataclass(frozen=True, slots=True)
class OwnershipInference:
    """Result of attributing a file to a probable owner.

    Attributes:
        match: Classification outcome.
        owner: VM name when matched, the extracted guess otherwise, or
            UNKNOWN_OWNER.
        vm: The registered VM when matched.
    """

    match: OwnershipMatch
    owner: str
    vm: VirtualMachine | None = None


@dataclass(frozen=True, slots=True)
class OrphanRecord:
    """A scanned file that no registered VM or snapshot uses.

    Attributes:
        file: The orphaned file.
        match: Ownership inference outcome.
        owner: Inferred owner (VM name, guess, or UNKNOWN_OWNER).
        owner_id: Identifier of the owning VM when it is registered.
        owner_state: Run state of the owning VM when it is registered.
    """

    file: CandidateFile
    match: OwnershipMatch
    owner: str
    owner_id: str | None = None
    owner_state: str | None = None

    @property
    def path(self) -> str:
        """Absolute path of the orphaned file."""
        return self.file.path

    @property
    def owner_registered(self) -> bool:
        """Check if the inferred owner is a registered VM."""
        return self.match == OwnershipMatch.MATCHED

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "path": self.file.path,
            "extension": self.file.extension,
            "size_bytes": self.file.size_bytes,
            "mtime": self.file.mtime,
            "match": self.match.value,
            "owner": self.owner,
            "owner_id": self.owner_id,
            "owner_registered": self.owner_registered,
            "owner_state": self.owner_state,
        }
