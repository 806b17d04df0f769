"""Process-wide, read-only settings.

Built once at startup from the environment and handed to whatever needs it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import FrozenSet, Optional
from helpdesk_tools.common.env import env, env_bool, env_list

EMPLOYEE_ID_FIELD = "EmployeeID"
EMPLOYEE_SCOPE = "OU=Domain Users,DC=corp,DC=local"
DEFAULT_PROTECTED_GROUPS = (
    "Domain Admins",
    "Enterprise Admins",
    "Schema Admins",
    "Administrators",
)
MIN_RESULT_SIZE = 1
MAX_RESULT_SIZE = 100
DEFAULT_RESULT_SIZE = 20


@dataclass(frozen=True)
class Settings:
    employee_id_field: str = EMPLOYEE_ID_FIELD
    employee_scope: str = EMPLOYEE_SCOPE
    protected_groups: FrozenSet[str] = field(
        default_factory=lambda: frozenset(g.lower() for g in DEFAULT_PROTECTED_GROUPS)
    )
    result_size: int = DEFAULT_RESULT_SIZE
    retry_on_invalid_selection: bool = True
    server: Optional[str] = None
    credential: Optional[str] = None  # PowerShell expression, e.g. "$cred"
    powershell: str = "pwsh"
    action_log: Path = Path("adops.log")

    def __post_init__(self):
        if not MIN_RESULT_SIZE <= self.result_size <= MAX_RESULT_SIZE:
            raise ValueError(
                f"result_size must be between {MIN_RESULT_SIZE} and {MAX_RESULT_SIZE}"
            )
        # Group names compare case-insensitively, like the directory does.
        object.__setattr__(
            self, "protected_groups", frozenset(g.lower() for g in self.protected_groups)
        )

    def is_protected(self, group: str) -> bool:
        return group.strip().lower() in self.protected_groups

    @classmethod
    def from_env(cls) -> "Settings":
        """Read `HELPDESK_*` variables (and `AD_CRED`) into a Settings."""
        return cls(
            employee_id_field=env("HELPDESK_EMPLOYEE_ID_FIELD", EMPLOYEE_ID_FIELD),
            employee_scope=env("HELPDESK_EMPLOYEE_SCOPE", EMPLOYEE_SCOPE),
            protected_groups=frozenset(
                env_list("HELPDESK_PROTECTED_GROUPS", list(DEFAULT_PROTECTED_GROUPS))
            ),
            result_size=int(env("HELPDESK_RESULT_SIZE", str(DEFAULT_RESULT_SIZE))),
            retry_on_invalid_selection=env_bool("HELPDESK_RETRY_ON_INVALID_SELECTION", True),
            server=env("HELPDESK_AD_SERVER"),
            credential=env("AD_CRED"),
            powershell=env("HELPDESK_POWERSHELL", "pwsh"),
            action_log=Path(env("HELPDESK_ACTION_LOG", "adops.log")),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
