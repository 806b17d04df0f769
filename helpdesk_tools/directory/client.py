"""Directory Query Client backed by the ActiveDirectory PowerShell module."""

from __future__ import annotations
import json
import logging
from typing import Callable, List, Optional, Sequence
from helpdesk_tools.common.powershell import ps_quote, run_ps
from helpdesk_tools.common.settings import Settings
from helpdesk_tools.directory.errors import QueryFault, ValidationFault

LOG = logging.getLogger("helpdesk.directory")

CMDLETS = {
    "user": "Get-ADUser",
    "group": "Get-ADGroup",
    "computer": "Get-ADComputer",
}

Runner = Callable[..., str]


class DirectoryClient:
    """Runs directory queries and membership changes through PowerShell."""

    def __init__(self, settings: Settings, runner: Optional[Runner] = None):
        self.settings = settings
        self._run = runner or run_ps

    def _execute(self, script: str) -> str:
        try:
            return self._run(script, executable=self.settings.powershell)
        except (RuntimeError, OSError) as exc:
            raise QueryFault(str(exc)) from exc

    def _server_args(self) -> List[str]:
        return [f"-Server {ps_quote(self.settings.server)}"] if self.settings.server else []

    def _credential_args(self) -> List[str]:
        return [f"-Credential {self.settings.credential}"] if self.settings.credential else []

    def search_script(
        self,
        expression: str,
        kind: str,
        properties: Sequence[str],
        result_size: int,
        scope: Optional[str] = None,
    ) -> str:
        try:
            cmdlet = CMDLETS[kind]
        except KeyError:
            raise ValidationFault(f"unknown object kind {kind!r}") from None
        parts = [cmdlet, f"-Filter {ps_quote(expression)}", f"-ResultSetSize {int(result_size)}"]
        if properties:
            parts.append("-Properties " + ",".join(ps_quote(p) for p in properties))
        if scope:
            parts.append(f"-SearchBase {ps_quote(scope)}")
        parts.extend(self._server_args())
        query = " ".join(parts)
        if properties:
            query += " | Select-Object " + ",".join(ps_quote(p) for p in properties)
        return f"ConvertTo-Json -Depth 3 -Compress -InputObject @({query})"

    def search(
        self,
        expression: str,
        kind: str,
        properties: Sequence[str] = (),
        result_size: int = 20,
        scope: Optional[str] = None,
    ) -> List[dict]:
        """Return matching records (possibly none) as dictionaries."""
        script = self.search_script(expression, kind, properties, result_size, scope)
        out = self._execute(script)
        if not out:
            return []
        try:
            data = json.loads(out)
        except json.JSONDecodeError as exc:
            raise QueryFault(f"Unreadable directory output: {out[:100]!r}") from exc
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            raise QueryFault(f"Unexpected directory output type: {type(data).__name__}")
        LOG.debug("%s query returned %d record(s)", kind, len(data))
        return data

    def _membership(self, cmdlet: str, group: str, member: str, *extra: str) -> None:
        parts = [cmdlet, f"-Identity {ps_quote(group)}", f"-Members {ps_quote(member)}"]
        parts.extend(self._server_args())
        parts.extend(self._credential_args())
        parts.extend(extra)
        self._execute(" ".join(parts))

    def add_group_member(self, group: str, member: str) -> None:
        self._membership("Add-ADGroupMember", group, member)

    def remove_group_member(self, group: str, member: str) -> None:
        self._membership("Remove-ADGroupMember", group, member, "-Confirm:$false")
