"""Shell execution utilities.

Provides safe subprocess execution with proper error handling, and
the PowerShell wrapper used to query the Hyper-V host.
"""

import shutil
import subprocess
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0


def run_command(
    args: list[str],
    *,
    check: bool = False,
    timeout: float | None = 60.0,
    cwd: str | None = None,
    encoding: str | None = None,
    errors: str | None = None,
) -> CommandResult:
    """Execute a shell command and return the result.

    Args:
        args: Command and arguments to execute.
        check: If True, raise CalledProcessError on non-zero exit.
        timeout: Maximum time in seconds to wait for command.
        cwd: Working directory for the command. If None, uses current directory.
        encoding: Output encoding. If None, uses the locale encoding.
        errors: Decoding error handler (e.g. "replace"). If None, strict.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        subprocess.CalledProcessError: If check=True and command fails.
        subprocess.TimeoutExpired: If command exceeds timeout.
        FileNotFoundError: If command executable is not found.
    """
    result = subprocess.run(
        args,
        capture_output=True,
        text=True,
        check=check,
        timeout=timeout,
        cwd=cwd,
        encoding=encoding,
        errors=errors,
    )
    return CommandResult(
        stdout=result.stdout,
        stderr=result.stderr,
        returncode=result.returncode,
    )


def command_exists(name: str) -> bool:
    """Check if a command exists in the system PATH.

    Args:
        name: Command name to check.

    Returns:
        True if command exists, False otherwise.
    """
    return shutil.which(name) is not None


# Windows PowerShell first, then PowerShell 7
_POWERSHELL_CANDIDATES: tuple[str, ...] = ("powershell", "pwsh")


def find_powershell() -> str | None:
    """Locate a PowerShell executable on PATH.

    Returns:
        Executable name of the first PowerShell found, or None.
    """
    for candidate in _POWERSHELL_CANDIDATES:
        if command_exists(candidate):
            return candidate
    return None


def run_powershell(
    script: str,
    *,
    executable: str = "powershell",
    timeout: float | None = 120.0,
) -> CommandResult:
    """Run a PowerShell script non-interactively.

    Output is decoded as UTF-8 (undecodable bytes are replaced); scripts
    must set [Console]::OutputEncoding accordingly.

    Args:
        script: PowerShell command text passed to -Command.
        executable: PowerShell executable to invoke.
        timeout: Maximum time in seconds to wait for the script.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        subprocess.TimeoutExpired: If the script exceeds timeout.
        FileNotFoundError: If PowerShell is not found.
    """
    return run_command(
        [executable, "-NoProfile", "-NonInteractive", "-Command", script],
        timeout=timeout,
        encoding="utf-8",
        errors="replace",
    )
