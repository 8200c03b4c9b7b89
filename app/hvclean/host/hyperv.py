"""Hyper-V host implementation.

Queries the local Hyper-V host through the Hyper-V PowerShell module
(Get-VM, Get-VMHardDiskDrive, Get-VMDvdDrive, Get-VMSnapshot, Get-VHD),
reading results back as JSON.
"""

import json
import logging
import subprocess
from typing import Any

from hvclean.host.base import HostQueryError, VirtualizationHost
from hvclean.host.models import Snapshot, VirtualMachine
from hvclean.utils.shell import CommandResult, find_powershell, run_powershell

logger = logging.getLogger(__name__)

# Every script writes UTF-8 (Windows PowerShell defaults to the OEM code page)
# and stops on the first error so failures surface as a non-zero exit
_PREAMBLE = (
    "[Console]::OutputEncoding = [System.Text.Encoding]::UTF8; "
    "$ErrorActionPreference = 'Stop'; "
)

_LIST_VMS = (
    "Get-VM | Select-Object "
    "@{n='Id';e={$_.Id.ToString()}}, Name, "
    "@{n='State';e={$_.State.ToString()}}, "
    "ConfigurationLocation, SnapshotFileLocation "
    "| ConvertTo-Json -Compress"
)


def _ps_quote(value: str) -> str:
    """Quote a value as a PowerShell single-quoted string literal."""
    return "'" + value.replace("'", "''") + "'"


class HyperVHost(VirtualizationHost):
    """Virtualization host backed by the Hyper-V PowerShell module.

    Args:
        executable: PowerShell executable to use. Defaults to the first of
            powershell/pwsh found on PATH.
        timeout: Per-query timeout in seconds.
    """

    def __init__(self, executable: str | None = None, timeout: float = 120.0) -> None:
        self._executable = executable
        self._timeout = timeout

    def is_available(self) -> bool:
        """Check that PowerShell exists and exposes the Hyper-V module."""
        executable = self._get_executable()
        if executable is None:
            return False
        try:
            result = run_powershell(
                "Get-Command Get-VM -ErrorAction Stop | Out-Null",
                executable=executable,
                timeout=30.0,
            )
        except (FileNotFoundError, OSError, subprocess.TimeoutExpired):
            return False
        return result.success

    def list_vms(self) -> list[VirtualMachine]:
        """List every VM registered with Hyper-V."""
        vms: list[VirtualMachine] = []
        for item in self._query_json(_LIST_VMS, "list virtual machines"):
            vm = self._parse_vm(item)
            if vm is not None:
                vms.append(vm)
        return vms

    def list_disks(self, vm_id: str) -> list[str]:
        """List virtual hard disk paths attached to a VM."""
        script = (
            f"Get-VM -Id {_ps_quote(vm_id)} | Get-VMHardDiskDrive "
            "| Select-Object -ExpandProperty Path | ConvertTo-Json -Compress"
        )
        return self._query_paths(script, f"list disks of VM {vm_id}")

    def list_dvd_paths(self, vm_id: str) -> list[str]:
        """List media paths inserted in a VM's DVD drives."""
        script = (
            f"Get-VM -Id {_ps_quote(vm_id)} | Get-VMDvdDrive "
            "| Where-Object { $_.Path } "
            "| Select-Object -ExpandProperty Path | ConvertTo-Json -Compress"
        )
        return self._query_paths(script, f"list DVD drives of VM {vm_id}")

    def list_snapshots(self, vm_id: str) -> list[Snapshot]:
        """List snapshots (checkpoints) of a VM."""
        script = (
            f"Get-VM -Id {_ps_quote(vm_id)} | Get-VMSnapshot | Select-Object "
            "@{n='Id';e={$_.Id.ToString()}}, Name | ConvertTo-Json -Compress"
        )
        snapshots: list[Snapshot] = []
        for item in self._query_json(script, f"list snapshots of VM {vm_id}"):
            if not isinstance(item, dict) or not item.get("Id"):
                logger.debug("Skipping malformed snapshot record: %r", item)
                continue
            snapshots.append(
                Snapshot(
                    snapshot_id=str(item["Id"]),
                    name=str(item.get("Name") or ""),
                    vm_id=vm_id,
                )
            )
        return snapshots

    def list_snapshot_disks(self, snapshot_id: str) -> list[str]:
        """List virtual hard disk paths attached to a snapshot."""
        script = (
            f"Get-VMSnapshot -Id {_ps_quote(snapshot_id)} | Get-VMHardDiskDrive "
            "| Select-Object -ExpandProperty Path | ConvertTo-Json -Compress"
        )
        return self._query_paths(script, f"list disks of snapshot {snapshot_id}")

    def list_snapshot_dvd_paths(self, snapshot_id: str) -> list[str]:
        """List media paths recorded in a snapshot's DVD drives."""
        script = (
            f"Get-VMSnapshot -Id {_ps_quote(snapshot_id)} | Get-VMDvdDrive "
            "| Where-Object { $_.Path } "
            "| Select-Object -ExpandProperty Path | ConvertTo-Json -Compress"
        )
        return self._query_paths(script, f"list DVD drives of snapshot {snapshot_id}")

    def get_parent_path(self, disk_path: str) -> str | None:
        """Read the parent path of a virtual disk with Get-VHD."""
        script = (
            f"$vhd = Get-VHD -Path {_ps_quote(disk_path)}; "
            "if ($vhd.ParentPath) { $vhd.ParentPath }"
        )
        result = self._run(script, f"read disk metadata of {disk_path}")
        parent = result.stdout.strip()
        return parent or None

    # === Private helpers ===

    def _get_executable(self) -> str | None:
        if self._executable is None:
            self._executable = find_powershell()
        return self._executable

    def _run(self, script: str, action: str) -> CommandResult:
        """Run a script, converting every failure into HostQueryError."""
        executable = self._get_executable()
        if executable is None:
            msg = f"Cannot {action}: PowerShell is not available"
            raise HostQueryError(msg)

        try:
            result = run_powershell(
                _PREAMBLE + script,
                executable=executable,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as e:
            msg = f"Cannot {action}: timed out after {self._timeout:.0f}s"
            raise HostQueryError(msg) from e
        except (FileNotFoundError, OSError) as e:
            msg = f"Cannot {action}: {e}"
            raise HostQueryError(msg) from e

        if not result.success:
            detail = result.stderr.strip().splitlines()
            msg = f"Cannot {action}: {detail[0] if detail else 'unknown error'}"
            raise HostQueryError(msg)

        return result

    def _query_json(self, script: str, action: str) -> list[Any]:
        """Run a script ending in ConvertTo-Json and return a list of items.

        ConvertTo-Json emits nothing for an empty pipeline and a bare
        object (not an array) for a single item.
        """
        raw = self._run(script, action).stdout.strip()
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            msg = f"Cannot {action}: unexpected output ({e})"
            raise HostQueryError(msg) from e
        if isinstance(data, list):
            return data
        return [data]

    def _query_paths(self, script: str, action: str) -> list[str]:
        return [str(p) for p in self._query_json(script, action) if isinstance(p, str) and p]

    @staticmethod
    def _parse_vm(item: object) -> VirtualMachine | None:
        """Build a VirtualMachine from one Get-VM JSON record."""
        if not isinstance(item, dict) or not item.get("Id"):
            logger.debug("Skipping malformed VM record: %r", item)
            return None
        return VirtualMachine(
            vm_id=str(item["Id"]),
            name=str(item.get("Name") or ""),
            state=str(item.get("State") or "Unknown"),
            configuration_location=item.get("ConfigurationLocation") or None,
            snapshot_location=item.get("SnapshotFileLocation") or None,
        )
