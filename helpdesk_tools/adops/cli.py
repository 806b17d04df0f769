"""ADOps — Active Directory help-desk lookups
==========================================
Part of *helpdesk-tools* suite

Every `get` command follows the same path: the options become filter clauses,
the clauses become one `-Filter` expression, the directory returns up to
`--limit` matches, and the operator picks one from a numbered table (a sole
match is taken without asking). The picked object is printed as a property
sheet.

Commands
--------
• **User**      `user get [QUERY] --name --sam --employee-id --mail --title`
• **Group**     `group get [QUERY] --name --description`
                `group add-member <grp> <sam>` / `group rm-member <grp> <sam>`
• **Computer**  `computer get [QUERY] --name --description --os`

Repeating an option (`--sam jdoe --sam asmith`) gives one criterion several
alternatives; different options must all match. `--literal` treats `*`, `?`,
`[` and `]` as plain text.

Prerequisites
-------------
* PowerShell with the RSAT **ActiveDirectory** module on the PATH (`pwsh` by
  default, see `HELPDESK_POWERSHELL`).
* Membership changes pass `-Credential $AD_CRED` when `AD_CRED` is set.
"""

from __future__ import annotations
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
import typer
from rich.console import Console
from rich.markup import escape
from helpdesk_tools.common.powershell import run_ps
from helpdesk_tools.common.settings import Settings, get_settings
from helpdesk_tools.directory.client import DirectoryClient
from helpdesk_tools.directory.errors import QueryFault, SelectionFault, ValidationFault
from helpdesk_tools.directory.filters import FilterClause, QuerySpec
from helpdesk_tools.directory.pipeline import find_one
from helpdesk_tools.directory.records import field_text
from helpdesk_tools.directory.selector import DisplayColumn, Outcome

APP_VERSION = "0.2.0"
app = typer.Typer(add_completion=False, help="ADOps - Active Directory help-desk CLI")
LOG = logging.getLogger("adops")
console = Console()

USER_COLUMNS = [
    DisplayColumn("#"),
    DisplayColumn("Name"),
    DisplayColumn("Username", "SamAccountName"),
    DisplayColumn("Title"),
    DisplayColumn("Department"),
    DisplayColumn("Enabled"),
]
USER_PROPERTIES = (
    "Name", "DisplayName", "SamAccountName", "UserPrincipalName", "EmployeeID",
    "mail", "Title", "Department", "Office", "Manager", "Enabled", "LockedOut",
    "PasswordLastSet", "LastLogonDate", "DistinguishedName",
)
GROUP_COLUMNS = [
    DisplayColumn("#"),
    DisplayColumn("Name"),
    DisplayColumn("Category", "GroupCategory"),
    DisplayColumn("Scope", "GroupScope"),
    DisplayColumn("Description"),
]
GROUP_PROPERTIES = (
    "Name", "SamAccountName", "GroupCategory", "GroupScope", "Description",
    "ManagedBy", "mail", "DistinguishedName",
)
COMPUTER_COLUMNS = [
    DisplayColumn("#"),
    DisplayColumn("Name"),
    DisplayColumn("OS", "OperatingSystem"),
    DisplayColumn("Description"),
    DisplayColumn("Enabled"),
]
COMPUTER_PROPERTIES = (
    "Name", "DNSHostName", "OperatingSystem", "OperatingSystemVersion",
    "Description", "IPv4Address", "LastLogonDate", "Enabled", "DistinguishedName",
)

# --------------------------- helper ----------------------------------------


def load_settings() -> Settings:
    """Settings for this run; a bad environment value ends the command."""
    try:
        return get_settings()
    except ValueError as exc:
        typer.secho(f"Invalid configuration: {exc}", fg=typer.colors.RED)
        raise typer.Exit(2)


def make_client(settings: Settings) -> DirectoryClient:
    return DirectoryClient(settings, runner=run_ps)


def log_action(settings: Settings, action: str, detail: dict) -> None:
    record = {"ts": datetime.now(tz=timezone.utc).isoformat(), "action": action, **detail}
    with Path(settings.action_log).open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(record) + "\n")


def collect_clauses(criteria: Sequence[Tuple[Optional[List[str]], Sequence[str]]]) -> List[FilterClause]:
    """One clause per criterion that was actually supplied."""
    clauses = []
    for args, fields in criteria:
        if isinstance(args, str):
            args = [args]
        values = [a for a in (args or []) if a]
        if values:
            clauses.append(FilterClause(tuple(values), tuple(fields)))
    return clauses


def lookup(
    kind: str,
    clauses: List[FilterClause],
    columns: Sequence[DisplayColumn],
    properties: Sequence[str],
    literal: bool,
    limit: Optional[int],
    search_base: Optional[str],
    retry: Optional[bool],
):
    """Run the search/select pipeline and exit cleanly on anything but a pick."""
    settings = load_settings()
    spec = QuerySpec(
        clauses=tuple(clauses),
        kind=kind,
        result_size=limit or settings.result_size,
        properties=tuple(properties),
        scope=search_base,
        literal=literal,
    )
    try:
        selection = find_one(
            spec,
            columns,
            make_client(settings),
            settings,
            console=console,
            retry_on_invalid_selection=retry,
            title=f"{kind.title()} matches",
        )
    except ValidationFault as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(2)
    except SelectionFault as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(1)

    if selection.outcome is Outcome.NO_RESULTS:
        if selection.error:
            typer.secho(f"Query failed: {selection.error}", fg=typer.colors.RED)
        else:
            typer.echo(f"No matching {kind} found.")
        raise typer.Exit(1)
    if selection.outcome is Outcome.CANCELLED:
        typer.echo("Cancelled.")
        raise typer.Exit(1)
    return selection.record


def show_record(title: str, record, properties: Sequence[str]) -> None:
    console.print(f"\n[bold]{escape(title)}[/]\n")
    width = max(len(p) for p in properties)
    for prop in properties:
        console.print(f"[bold]{prop:<{width}}[/] : {escape(field_text(record, prop))}")
    console.print()


LIMIT_OPTION = typer.Option(
    None, "--limit", min=1, max=100, help="Maximum number of matches (default from settings)"
)
LITERAL_OPTION = typer.Option(False, "--literal", help="Treat * ? [ ] as plain text")
BASE_OPTION = typer.Option(None, "--search-base", help="Restrict search to this OU (distinguishedName)")
RETRY_OPTION = typer.Option(
    None, "--retry/--no-retry", help="Reprompt on an invalid row number (default from settings)"
)


@app.callback()
def _common(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    """Shared options for all sub-commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


# --------------------------- user commands ---------------------------------

user_cli = typer.Typer(help="User lookups")
app.add_typer(user_cli, name="user")


@user_cli.command("get")
def user_get(
    query: Optional[str] = typer.Argument(None, help="Matches name, username, display name or mail"),
    name: Optional[List[str]] = typer.Option(None, "--name", help="Name / DisplayName pattern"),
    sam: Optional[List[str]] = typer.Option(None, "--sam", help="SAMAccountName pattern"),
    employee_id: Optional[List[str]] = typer.Option(None, "--employee-id", help="Employee number"),
    mail: Optional[List[str]] = typer.Option(None, "--mail", help="Email address pattern"),
    title: Optional[List[str]] = typer.Option(None, "--title", help="Job title pattern"),
    literal: bool = LITERAL_OPTION,
    limit: Optional[int] = LIMIT_OPTION,
    search_base: Optional[str] = BASE_OPTION,
    retry: Optional[bool] = RETRY_OPTION,
):
    """Find one user and show the account sheet."""
    settings = load_settings()
    clauses = collect_clauses([
        (query, ("Name", "SamAccountName", "DisplayName", "mail")),
        (name, ("Name", "DisplayName")),
        (sam, ("SamAccountName",)),
        (employee_id, (settings.employee_id_field,)),
        (mail, ("mail",)),
        (title, ("Title",)),
    ])
    user = lookup("user", clauses, USER_COLUMNS, USER_PROPERTIES, literal, limit, search_base, retry)
    sam_name = field_text(user, "SamAccountName")
    show_record(f"Account Information: {sam_name.upper()}", user, USER_PROPERTIES)


# --------------------------- group commands --------------------------------

group_cli = typer.Typer(help="Group lookups and membership")
app.add_typer(group_cli, name="group")


@group_cli.command("get")
def group_get(
    query: Optional[str] = typer.Argument(None, help="Matches name or SAMAccountName"),
    name: Optional[List[str]] = typer.Option(None, "--name", help="Group name pattern"),
    description: Optional[List[str]] = typer.Option(None, "--description", help="Description pattern"),
    literal: bool = LITERAL_OPTION,
    limit: Optional[int] = LIMIT_OPTION,
    search_base: Optional[str] = BASE_OPTION,
    retry: Optional[bool] = RETRY_OPTION,
):
    """Find one group and show its details."""
    clauses = collect_clauses([
        (query, ("Name", "SamAccountName")),
        (name, ("Name",)),
        (description, ("Description",)),
    ])
    group = lookup("group", clauses, GROUP_COLUMNS, GROUP_PROPERTIES, literal, limit, search_base, retry)
    show_record(f"Group: {field_text(group, 'Name')}", group, GROUP_PROPERTIES)


def _guard_protected(settings: Settings, group: str) -> None:
    if settings.is_protected(group):
        typer.secho(f"{group} is a protected group; change it through the directory team.", fg=typer.colors.RED)
        LOG.warning("Refused membership change on protected group %s", group)
        raise typer.Exit(1)


@group_cli.command("add-member")
def add_member(group: str = typer.Argument(...), sam: str = typer.Argument(...)):
    settings = load_settings()
    _guard_protected(settings, group)
    try:
        make_client(settings).add_group_member(group, sam)
    except QueryFault as exc:
        typer.secho(f"Failed: {exc}", fg=typer.colors.RED)
        raise typer.Exit(1)
    log_action(settings, "add-member", {"group": group, "member": sam})
    console.print(f"[green]Added {escape(sam)} to {escape(group)}")


@group_cli.command("rm-member")
def rm_member(group: str = typer.Argument(...), sam: str = typer.Argument(...)):
    settings = load_settings()
    _guard_protected(settings, group)
    try:
        make_client(settings).remove_group_member(group, sam)
    except QueryFault as exc:
        typer.secho(f"Failed: {exc}", fg=typer.colors.RED)
        raise typer.Exit(1)
    log_action(settings, "rm-member", {"group": group, "member": sam})
    console.print(f"[green]Removed {escape(sam)} from {escape(group)}")


# --------------------------- computer commands -----------------------------

computer_cli = typer.Typer(help="Computer lookups")
app.add_typer(computer_cli, name="computer")


@computer_cli.command("get")
def computer_get(
    query: Optional[str] = typer.Argument(None, help="Matches name or DNS host name"),
    name: Optional[List[str]] = typer.Option(None, "--name", help="Computer name pattern"),
    description: Optional[List[str]] = typer.Option(None, "--description", help="Description pattern"),
    os: Optional[List[str]] = typer.Option(None, "--os", help="Operating system pattern"),
    literal: bool = LITERAL_OPTION,
    limit: Optional[int] = LIMIT_OPTION,
    search_base: Optional[str] = BASE_OPTION,
    retry: Optional[bool] = RETRY_OPTION,
):
    """Find one computer and show its details."""
    clauses = collect_clauses([
        (query, ("Name", "DNSHostName")),
        (name, ("Name",)),
        (description, ("Description",)),
        (os, ("OperatingSystem",)),
    ])
    computer = lookup(
        "computer", clauses, COMPUTER_COLUMNS, COMPUTER_PROPERTIES, literal, limit, search_base, retry
    )
    show_record(f"Computer: {field_text(computer, 'Name')}", computer, COMPUTER_PROPERTIES)


# --------------------------- misc ------------------------------------------

@app.command()
def version():
    console.print(f"ADOps v{APP_VERSION}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
