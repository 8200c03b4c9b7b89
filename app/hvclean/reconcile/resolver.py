"""Orphan resolver and ownership inference.

Orphans are scanned files that are not in the host's active-file set.
For each orphan the resolver guesses which VM the file once belonged to,
using the file name and its surrounding directory names. The guess is a
hint for the operator, not proof of provenance.
"""

import logging
import re
from collections.abc import Iterable

from hvclean.reconcile.models import (
    CONFIG_EXTENSIONS,
    UNKNOWN_OWNER,
    ActiveFileSet,
    CandidateFile,
    OrphanRecord,
    OwnershipInference,
    OwnershipMatch,
    VMIndex,
)

logger = logging.getLogger(__name__)

# Hyper-V names configuration files after the VM or snapshot GUID
GUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

# Folder names Hyper-V creates inside a VM's directory (English, German,
# French). A file in one of these is attributed to the folder above it.
GROUPING_FOLDER_NAMES: frozenset[str] = frozenset(
    name.casefold()
    for name in (
        "Virtual Hard Disks",
        "Snapshots",
        "Virtual Machines",
        "Virtuelle Festplatten",
        "Virtuelle Computer",
        "Disques durs virtuels",
        "Ordinateurs virtuels",
        "Instantanés",
    )
)


def is_guid(value: str) -> bool:
    """Check if a string is a GUID in 8-4-4-4-12 hex form."""
    return GUID_PATTERN.match(value) is not None


def infer_ownership(
    name: str,
    directory_name: str,
    grandparent_name: str,
    extension: str,
    index: VMIndex,
) -> OwnershipInference:
    """Guess which VM a file belongs to.

    Configuration files (.vmcx/.vmrs) are only attributed through a
    GUID-shaped file name. Other files try, in order:

    1. the file name (without extension);
    2. the containing directory name, or the grandparent directory name
       instead when the containing directory is a standard Hyper-V
       grouping folder such as "Virtual Hard Disks";
    3. otherwise the bare file name is reported as an unconfirmed guess.

    Args:
        name: File name without extension.
        directory_name: Name of the containing directory.
        grandparent_name: Name of the containing directory's parent.
        extension: Lower-cased extension including the dot.
        index: Registered VMs.

    Returns:
        OwnershipInference with the classification and owner.
    """
    if extension.lower() in CONFIG_EXTENSIONS:
        if not is_guid(name):
            return OwnershipInference(OwnershipMatch.UNMATCHED_NO_GUESS, UNKNOWN_OWNER)
        vm = index.by_id(name)
        if vm is not None:
            return OwnershipInference(OwnershipMatch.MATCHED, vm.name or vm.vm_id, vm)
        return OwnershipInference(OwnershipMatch.UNMATCHED_WITH_GUESS, name)

    if directory_name.casefold() in GROUPING_FOLDER_NAMES:
        keys = [name, grandparent_name]
    else:
        keys = [name, directory_name]

    for key in keys:
        vm = index.find(key)
        if vm is not None:
            return OwnershipInference(OwnershipMatch.MATCHED, vm.name or vm.vm_id, vm)

    if not name:
        return OwnershipInference(OwnershipMatch.UNMATCHED_NO_GUESS, UNKNOWN_OWNER)
    return OwnershipInference(OwnershipMatch.UNMATCHED_WITH_GUESS, name)


def find_orphans(
    candidates: Iterable[CandidateFile],
    active: ActiveFileSet,
) -> list[CandidateFile]:
    """Return candidates that are not in the active-file set.

    Comparison is case-insensitive. Input order is preserved.
    """
    return [c for c in candidates if c.path not in active]


def resolve_orphans(
    candidates: Iterable[CandidateFile],
    active: ActiveFileSet,
    index: VMIndex,
) -> list[OrphanRecord]:
    """Find orphaned candidates and attribute each to a probable owner.

    Args:
        candidates: Files found by the disk scanner.
        active: Files in use by the host.
        index: Registered VMs.

    Returns:
        OrphanRecord for each orphan, in candidate order.
    """
    records: list[OrphanRecord] = []
    for orphan in find_orphans(candidates, active):
        inference = infer_ownership(
            orphan.name,
            orphan.directory_name,
            orphan.grandparent_name,
            orphan.extension,
            index,
        )
        logger.debug("Orphan %s -> %s (%s)", orphan.path, inference.owner, inference.match.value)
        records.append(
            OrphanRecord(
                file=orphan,
                match=inference.match,
                owner=inference.owner,
                owner_id=inference.vm.vm_id if inference.vm else None,
                owner_state=inference.vm.state if inference.vm else None,
            )
        )
    return records
