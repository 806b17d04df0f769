import json
import pytest
from rich.console import Console
from typer.testing import CliRunner
from helpdesk_tools.adops import cli
from conftest import FakeRunner

runner = CliRunner()

USERS = [
    {"Name": "Alice Doe", "SamAccountName": "adoe", "Title": "Analyst", "Manager": ["CN=Boss"]},
    {"Name": "John Doe", "SamAccountName": "jdoe", "Title": "Engineer", "Manager": "CN=Boss"},
]


@pytest.fixture
def wire(monkeypatch, settings):
    def _wire(output="", error=None):
        fake = FakeRunner(output, error)
        monkeypatch.setattr(cli, "run_ps", fake)
        monkeypatch.setattr(cli, "get_settings", lambda: settings)
        monkeypatch.setattr(cli, "console", Console(color_system=None, width=200))
        return fake
    return _wire


def test_user_get_single_match_prints_sheet(wire):
    fake = wire([USERS[1]])
    result = runner.invoke(cli.app, ["user", "get", "--sam", "jdoe"])
    assert result.exit_code == 0, result.output
    assert "Account Information: JDOE" in result.output
    assert "CN=Boss" in result.output
    assert "(SamAccountName -like ''jdoe'')" in fake.scripts[0]


def test_user_get_picks_from_table(wire):
    wire(USERS)
    result = runner.invoke(cli.app, ["user", "get", "*doe*"], input="1\n")
    assert result.exit_code == 0, result.output
    assert "Account Information: ADOE" in result.output


def test_user_get_blank_input_cancels(wire):
    wire(USERS)
    result = runner.invoke(cli.app, ["user", "get", "*doe*"], input="\n")
    assert result.exit_code == 1
    assert "Cancelled." in result.output


def test_user_get_no_retry_aborts_on_bad_choice(wire):
    wire(USERS)
    result = runner.invoke(cli.app, ["user", "get", "*doe*", "--no-retry"], input="9\n")
    assert result.exit_code == 1
    assert "Invalid selection" in result.output


def test_user_get_retry_reprompts(wire):
    wire(USERS)
    result = runner.invoke(cli.app, ["user", "get", "*doe*", "--retry"], input="x\n2\n")
    assert result.exit_code == 0, result.output
    assert "Account Information: JDOE" in result.output


def test_user_get_without_criteria_is_rejected(wire):
    fake = wire(USERS)
    result = runner.invoke(cli.app, ["user", "get"])
    assert result.exit_code == 2
    assert "criterion" in result.output
    assert fake.scripts == []


def test_user_get_no_match(wire):
    wire("[]")
    result = runner.invoke(cli.app, ["user", "get", "--mail", "nobody@example.org"])
    assert result.exit_code == 1
    assert "No matching user found." in result.output


def test_user_get_query_failure_is_reported(wire):
    wire(error=RuntimeError("The server has rejected the client credentials."))
    result = runner.invoke(cli.app, ["user", "get", "jdoe"])
    assert result.exit_code == 1
    assert "Query failed" in result.output


def test_user_get_employee_id_scoped(wire, settings):
    fake = wire([USERS[0]])
    result = runner.invoke(cli.app, ["user", "get", "--employee-id", "1001", "--name", "Alice*"])
    assert result.exit_code == 0, result.output
    script = fake.scripts[0]
    assert "(Name -like ''Alice*'' -or DisplayName -like ''Alice*'') -and (EmployeeID -like ''1001'')" in script
    assert f"-SearchBase '{settings.employee_scope}'" in script


def test_user_get_literal(wire):
    fake = wire([USERS[0]])
    runner.invoke(cli.app, ["user", "get", "--sam", "a*", "--literal"])
    assert "SamAccountName -like ''a`*''" in fake.scripts[0]


def test_group_and_computer_get(wire):
    fake = wire([{"Name": "Helpdesk", "GroupScope": "Global"}])
    result = runner.invoke(cli.app, ["group", "get", "--name", "Help*"])
    assert result.exit_code == 0, result.output
    assert "Get-ADGroup" in fake.scripts[0]
    assert "Group: Helpdesk" in result.output

    fake = wire([{"Name": "WS-001", "OperatingSystem": "Windows 11 Pro"}])
    result = runner.invoke(cli.app, ["computer", "get", "--os", "Windows 11*"])
    assert result.exit_code == 0, result.output
    assert "Get-ADComputer" in fake.scripts[0]
    assert "Windows 11 Pro" in result.output


def test_add_member_logs_action(wire, settings):
    fake = wire()
    result = runner.invoke(cli.app, ["group", "add-member", "Helpdesk", "jdoe"])
    assert result.exit_code == 0, result.output
    assert fake.scripts[0].startswith("Add-ADGroupMember -Identity 'Helpdesk'")
    entry = json.loads(settings.action_log.read_text().splitlines()[0])
    assert entry["action"] == "add-member"
    assert entry["member"] == "jdoe"


def test_protected_group_refused(wire, settings):
    fake = wire()
    result = runner.invoke(cli.app, ["group", "rm-member", "domain admins", "jdoe"])
    assert result.exit_code == 1
    assert "protected" in result.output
    assert fake.scripts == []
    assert not settings.action_log.exists()


def test_membership_failure(wire):
    wire(error=RuntimeError("Insufficient access rights"))
    result = runner.invoke(cli.app, ["group", "rm-member", "Helpdesk", "jdoe"])
    assert result.exit_code == 1
    assert "Insufficient access rights" in result.output


def test_version(wire):
    wire()
    result = runner.invoke(cli.app, ["version"])
    assert cli.APP_VERSION in result.output


def test_limit_defaults_to_configured_result_size(monkeypatch, wire, settings):
    fake = wire([USERS[0]])
    monkeypatch.setattr(cli, "get_settings", lambda: settings.__class__(result_size=50))
    result = runner.invoke(cli.app, ["user", "get", "a"])
    assert result.exit_code == 0, result.output
    assert "-ResultSetSize 50" in fake.scripts[0]


def test_limit_option_overrides_setting(wire):
    fake = wire([USERS[0]])
    runner.invoke(cli.app, ["user", "get", "a", "--limit", "5"])
    assert "-ResultSetSize 5" in fake.scripts[0]


@pytest.mark.parametrize("key, value", [
    ("HELPDESK_RESULT_SIZE", "abc"),
    ("HELPDESK_RETRY_ON_INVALID_SELECTION", "maybe"),
])
def test_bad_configuration_is_reported(monkeypatch, wire, key, value):
    from helpdesk_tools.common import env as env_module
    from helpdesk_tools.common.settings import Settings

    fake = wire(USERS)
    monkeypatch.setattr(env_module, "_loaded", True)
    monkeypatch.setenv(key, value)
    monkeypatch.setattr(cli, "get_settings", Settings.from_env)
    result = runner.invoke(cli.app, ["user", "get", "jdoe"])
    assert result.exit_code == 2
    assert "Invalid configuration" in result.output
    assert fake.scripts == []
