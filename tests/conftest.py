import json
import pytest
from helpdesk_tools.common.settings import Settings


class FakeRunner:
    """Stands in for `run_ps`: records scripts, replays canned output."""

    def __init__(self, output="", error=None):
        self.output = output
        self.error = error
        self.scripts = []

    def __call__(self, script, executable="pwsh"):
        self.scripts.append(script)
        if self.error is not None:
            raise self.error
        if isinstance(self.output, (list, dict)):
            return json.dumps(self.output)
        return self.output


@pytest.fixture
def settings(tmp_path):
    return Settings(
        employee_scope="OU=Staff,DC=example,DC=org",
        protected_groups=frozenset({"Domain Admins"}),
        action_log=tmp_path / "adops.log",
    )


@pytest.fixture
def fake_runner():
    return FakeRunner()
