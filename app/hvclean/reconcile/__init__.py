"""Reconciliation engine.

Validates scan paths, collects the files a virtualization host uses,
scans disks for VM files, resolves orphans and drives their deletion.
"""

from hvclean.reconcile.collector import ActiveFileCollector, CollectionError
from hvclean.reconcile.deletion import (
    Decision,
    DeletionOutcome,
    DeletionWorkflow,
    ItemAction,
    ItemOutcome,
    WorkflowState,
    parse_decision,
)
from hvclean.reconcile.models import (
    ActiveFileSet,
    CandidateFile,
    CollectionResult,
    OrphanRecord,
    OwnershipInference,
    OwnershipMatch,
    VMIndex,
)
from hvclean.reconcile.operator import FileActionResult, FileRemover
from hvclean.reconcile.resolver import find_orphans, infer_ownership, resolve_orphans
from hvclean.reconcile.scanner import DiskScanner
from hvclean.reconcile.validator import InvalidPath, PathValidation, validate_scan_paths

__all__ = [
    "ActiveFileCollector",
    "ActiveFileSet",
    "CandidateFile",
    "CollectionError",
    "CollectionResult",
    "Decision",
    "DeletionOutcome",
    "DeletionWorkflow",
    "DiskScanner",
    "FileActionResult",
    "FileRemover",
    "InvalidPath",
    "ItemAction",
    "ItemOutcome",
    "OrphanRecord",
    "OwnershipInference",
    "OwnershipMatch",
    "PathValidation",
    "VMIndex",
    "WorkflowState",
    "find_orphans",
    "infer_ownership",
    "parse_decision",
    "resolve_orphans",
    "validate_scan_paths",
]
