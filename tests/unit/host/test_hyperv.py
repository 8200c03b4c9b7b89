"""Unit tests for the Hyper-V host."""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest
from hvclean.host.base import HostQueryError
from hvclean.host.hyperv import HyperVHost
from hvclean.utils.shell import CommandResult

from tests.fakes import SNAPSHOT_ID, VM_DB_ID, VM_WEB_ID


def _ok(stdout: str = "") -> CommandResult:
    return CommandResult(stdout=stdout, stderr="", returncode=0)


def _failed(stderr: str) -> CommandResult:
    return CommandResult(stdout="", stderr=stderr, returncode=1)


@pytest.fixture
def host() -> HyperVHost:
    """Hyper-V host with a fixed executable."""
    return HyperVHost(executable="powershell", timeout=10.0)


class TestListVms:
    """Tests for HyperVHost.list_vms."""

    @patch("hvclean.host.hyperv.run_powershell")
    def test_parses_vm_list(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """Every JSON record becomes a VirtualMachine."""
        mock_ps.return_value = _ok(
            json.dumps(
                [
                    {
                        "Id": VM_WEB_ID,
                        "Name": "web01",
                        "State": "Running",
                        "ConfigurationLocation": r"D:\Hyper-V\web01",
                        "SnapshotFileLocation": r"D:\Hyper-V\web01",
                    },
                    {"Id": VM_DB_ID, "Name": "db01", "State": "Off"},
                ]
            )
        )

        vms = host.list_vms()

        assert [vm.name for vm in vms] == ["web01", "db01"]
        assert vms[0].is_running is True
        assert vms[0].configuration_location == r"D:\Hyper-V\web01"
        assert vms[1].snapshot_location is None

    @patch("hvclean.host.hyperv.run_powershell")
    def test_single_vm_object(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """A bare object (one VM) is accepted."""
        mock_ps.return_value = _ok(json.dumps({"Id": VM_WEB_ID, "Name": "web01", "State": "Off"}))

        assert len(host.list_vms()) == 1

    @patch("hvclean.host.hyperv.run_powershell")
    def test_empty_output(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """No output means no VMs."""
        mock_ps.return_value = _ok("")

        assert host.list_vms() == []

    @patch("hvclean.host.hyperv.run_powershell")
    def test_skips_malformed_records(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """Records without an Id are skipped."""
        mock_ps.return_value = _ok(json.dumps([{"Name": "broken"}, {"Id": VM_WEB_ID}]))

        vms = host.list_vms()

        assert [vm.vm_id for vm in vms] == [VM_WEB_ID]
        assert vms[0].state == "Unknown"

    @patch("hvclean.host.hyperv.run_powershell")
    def test_invalid_json(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """Unparseable output is a query error."""
        mock_ps.return_value = _ok("WARNING: something odd")

        with pytest.raises(HostQueryError, match="unexpected output"):
            host.list_vms()

    @patch("hvclean.host.hyperv.run_powershell")
    def test_failure_reports_first_error_line(
        self, mock_ps: MagicMock, host: HyperVHost
    ) -> None:
        """A failing script raises with its first stderr line."""
        mock_ps.return_value = _failed("Get-VM : You do not have the required permission.\nmore")

        with pytest.raises(HostQueryError, match="required permission") as exc_info:
            host.list_vms()

        assert "more" not in str(exc_info.value)

    @patch("hvclean.host.hyperv.run_powershell")
    def test_timeout(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """A timeout is a query error."""
        mock_ps.side_effect = subprocess.TimeoutExpired(cmd="powershell", timeout=10)

        with pytest.raises(HostQueryError, match="timed out"):
            host.list_vms()

    @patch("hvclean.host.hyperv.find_powershell", return_value=None)
    def test_no_powershell(self, _mock_find: MagicMock) -> None:
        """Without PowerShell every query fails."""
        with pytest.raises(HostQueryError, match="PowerShell is not available"):
            HyperVHost().list_vms()


class TestVmDetails:
    """Tests for per-VM queries."""

    @patch("hvclean.host.hyperv.run_powershell")
    def test_list_disks(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """Disk paths are returned and the VM id is quoted in the script."""
        mock_ps.return_value = _ok(json.dumps([r"D:\VMs\web01.vhdx", r"D:\VMs\data.vhdx"]))

        disks = host.list_disks(VM_WEB_ID)

        assert disks == [r"D:\VMs\web01.vhdx", r"D:\VMs\data.vhdx"]
        script = mock_ps.call_args.args[0]
        assert f"Get-VM -Id '{VM_WEB_ID}'" in script
        assert script.startswith("[Console]::OutputEncoding = [System.Text.Encoding]::UTF8")
        assert "$ErrorActionPreference = 'Stop'" in script

    @patch("hvclean.host.hyperv.run_powershell")
    def test_single_dvd_path(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """A single path arrives as a bare JSON string."""
        mock_ps.return_value = _ok(json.dumps(r"E:\ISOs\setup.iso"))

        assert host.list_dvd_paths(VM_WEB_ID) == [r"E:\ISOs\setup.iso"]

    @patch("hvclean.host.hyperv.run_powershell")
    def test_list_snapshots(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """Snapshots carry the owning VM id."""
        mock_ps.return_value = _ok(json.dumps({"Id": SNAPSHOT_ID, "Name": "before-update"}))

        snapshots = host.list_snapshots(VM_WEB_ID)

        assert len(snapshots) == 1
        assert snapshots[0].snapshot_id == SNAPSHOT_ID
        assert snapshots[0].vm_id == VM_WEB_ID

    @patch("hvclean.host.hyperv.run_powershell")
    def test_non_ascii_path(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """Accented folder names survive the round trip through PowerShell."""
        mock_ps.return_value = _ok(json.dumps([r"D:\Instantanés\web01_C1.avhdx"]))

        assert host.list_disks(VM_WEB_ID) == [r"D:\Instantanés\web01_C1.avhdx"]
        assert "OutputEncoding = [System.Text.Encoding]::UTF8" in mock_ps.call_args.args[0]

    @patch("hvclean.host.hyperv.run_powershell")
    def test_list_snapshot_disks(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """Checkpoint disks are read through the snapshot id."""
        mock_ps.return_value = _ok(json.dumps(r"D:\VMs\web01_BRANCH.avhdx"))

        disks = host.list_snapshot_disks(SNAPSHOT_ID)

        assert disks == [r"D:\VMs\web01_BRANCH.avhdx"]
        script = mock_ps.call_args.args[0]
        assert f"Get-VMSnapshot -Id '{SNAPSHOT_ID}'" in script
        assert "Get-VMHardDiskDrive" in script

    @patch("hvclean.host.hyperv.run_powershell")
    def test_list_snapshot_dvd_paths(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """Checkpoint media are read through the snapshot id."""
        mock_ps.return_value = _ok(json.dumps([r"E:\ISOs\tools.iso"]))

        assert host.list_snapshot_dvd_paths(SNAPSHOT_ID) == [r"E:\ISOs\tools.iso"]
        script = mock_ps.call_args.args[0]
        assert f"Get-VMSnapshot -Id '{SNAPSHOT_ID}'" in script
        assert "Get-VMDvdDrive" in script

    @patch("hvclean.host.hyperv.run_powershell")
    def test_snapshot_disk_failure(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """A failing checkpoint query is a query error."""
        mock_ps.return_value = _failed("Get-VMSnapshot : Unable to find a snapshot")

        with pytest.raises(HostQueryError, match="Unable to find a snapshot"):
            host.list_snapshot_disks(SNAPSHOT_ID)

    @patch("hvclean.host.hyperv.run_powershell")
    def test_parent_path(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """The parent path is read from Get-VHD."""
        mock_ps.return_value = _ok("D:\\VMs\\base.vhdx\r\n")

        assert host.get_parent_path(r"D:\VMs\web01_C1.avhdx") == r"D:\VMs\base.vhdx"

    @patch("hvclean.host.hyperv.run_powershell")
    def test_no_parent(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """A base disk has no parent."""
        mock_ps.return_value = _ok("")

        assert host.get_parent_path(r"D:\VMs\base.vhdx") is None

    @patch("hvclean.host.hyperv.run_powershell")
    def test_quotes_embedded_apostrophe(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """Single quotes in paths are doubled."""
        mock_ps.return_value = _ok("")

        host.get_parent_path(r"D:\Bob's VMs\disk.vhdx")

        assert r"'D:\Bob''s VMs\disk.vhdx'" in mock_ps.call_args.args[0]


class TestAvailability:
    """Tests for HyperVHost.is_available."""

    @patch("hvclean.host.hyperv.run_powershell")
    def test_available(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """Hyper-V is available when Get-VM exists."""
        mock_ps.return_value = _ok()

        assert host.is_available() is True

    @patch("hvclean.host.hyperv.run_powershell")
    def test_module_missing(self, mock_ps: MagicMock, host: HyperVHost) -> None:
        """A missing Hyper-V module means unavailable."""
        mock_ps.return_value = _failed("The term 'Get-VM' is not recognized")

        assert host.is_available() is False

    @patch("hvclean.host.hyperv.find_powershell", return_value=None)
    def test_no_powershell(self, _mock_find: MagicMock) -> None:
        """Without PowerShell Hyper-V is unavailable."""
        assert HyperVHost().is_available() is False
