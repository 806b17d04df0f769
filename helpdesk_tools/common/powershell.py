"""PowerShell plumbing shared by the directory tools."""

from __future__ import annotations
import logging
import subprocess

LOG = logging.getLogger("helpdesk.powershell")


def ps_quote(value: str) -> str:
    """Return *value* as a single-quoted PowerShell literal."""
    return "'" + value.replace("'", "''") + "'"


def run_ps(cmd: str, executable: str = "pwsh") -> str:
    """Run *cmd* in PowerShell (requires ActiveDirectory module).

    Returns stripped stdout; raises RuntimeError with stderr on failure.
    """
    full = (
        "$PSStyle.OutputRendering='PlainText';"
        "$ErrorActionPreference='Stop';"
        "Import-Module ActiveDirectory; "
        + cmd
    )
    LOG.debug("Executing: %s", cmd)
    proc = subprocess.run([
        executable,
        "-NoLogo",
        "-NoProfile",
        "-NonInteractive",
        "-Command",
        full,
    ], capture_output=True, text=True)
    if proc.returncode != 0:
        raise RuntimeError(proc.stderr.strip() or f"{executable} exited with {proc.returncode}")
    return proc.stdout.strip()
