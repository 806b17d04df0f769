"""Search, then select: the shared body of every `get` command."""

from __future__ import annotations
import logging
from typing import Callable, Optional, Sequence
from rich.console import Console
from rich.markup import escape
from helpdesk_tools.common.settings import Settings
from helpdesk_tools.directory.client import DirectoryClient
from helpdesk_tools.directory.errors import QueryFault, SelectionFault
from helpdesk_tools.directory.filters import QuerySpec, compile_query
from helpdesk_tools.directory.selector import (
    DisplayColumn,
    Outcome,
    Selection,
    select_record,
    validate_columns,
)

LOG = logging.getLogger("helpdesk.directory")


def find_one(
    spec: QuerySpec,
    columns: Sequence[DisplayColumn],
    client: DirectoryClient,
    settings: Settings,
    console: Optional[Console] = None,
    read_line: Optional[Callable[[str], str]] = None,
    retry_on_invalid_selection: Optional[bool] = None,
    allow_return: bool = False,
    title: Optional[str] = None,
) -> Selection:
    """Run *spec* and let the operator pick one record.

    ValidationFault propagates before any query runs. A failed query comes
    back as a NO_RESULTS selection carrying the error text. With retries off,
    SelectionFault propagates to the caller.
    """
    validate_columns(columns)
    built = compile_query(spec, settings)
    properties = list(spec.properties)
    for col in columns:
        if not col.is_index and col.source not in properties:
            properties.append(col.source)

    LOG.info("Searching %s objects: %s", spec.kind, built.expression)
    try:
        records = client.search(
            built.expression,
            spec.kind,
            properties,
            result_size=spec.result_size,
            scope=built.scope,
        )
    except QueryFault as exc:
        LOG.error("Directory query failed: %s", exc)
        return Selection(Outcome.NO_RESULTS, error=str(exc))
    if not records:
        return Selection(Outcome.NO_RESULTS)

    if retry_on_invalid_selection is None:
        retry_on_invalid_selection = settings.retry_on_invalid_selection
    console = console or Console()
    first = True
    while True:
        try:
            return select_record(
                records,
                columns,
                console=console,
                read_line=read_line,
                allow_return=allow_return,
                title=title,
                show_table=first,
            )
        except SelectionFault as exc:
            if not retry_on_invalid_selection:
                raise
            first = False
            console.print(f"[red]{escape(str(exc))}[/]")
