"""Result Selector
===============

Narrows a record set down to one record. A single match is returned without
asking; otherwise an indexed table is printed and the operator types a row
number. Blank input cancels.

The selector asks exactly once. Reprompting on bad input is the caller's
call (see `pipeline.find_one`).
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from helpdesk_tools.directory.errors import SelectionFault, ValidationFault
from helpdesk_tools.directory.records import field_text

INDEX_HEADER = "#"


@dataclass(frozen=True)
class DisplayColumn:
    header: str
    field: Optional[str] = None

    @property
    def is_index(self) -> bool:
        return self.header == INDEX_HEADER

    @property
    def source(self) -> str:
        return self.field or self.header


class Outcome(str, Enum):
    SELECTED = "selected"
    CANCELLED = "cancelled"
    NO_RESULTS = "no_results"


@dataclass(frozen=True)
class Selection:
    outcome: Outcome
    record: Any = None
    index: Optional[int] = None
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.outcome is Outcome.SELECTED


CANCELLED = Selection(Outcome.CANCELLED)


def validate_columns(columns: Sequence[DisplayColumn]) -> None:
    if not columns:
        raise ValidationFault("at least one display column is required")
    if sum(1 for c in columns if c.is_index) > 1:
        raise ValidationFault(f"only one {INDEX_HEADER!r} column is allowed")


def table_rows(records: Sequence[Any], columns: Sequence[DisplayColumn]) -> List[List[str]]:
    """Cell text for each record, row index 1-based."""
    return [
        [str(n) if col.is_index else field_text(record, col.source) for col in columns]
        for n, record in enumerate(records, start=1)
    ]


def build_table(
    records: Sequence[Any],
    columns: Sequence[DisplayColumn],
    title: Optional[str] = None,
) -> Table:
    validate_columns(columns)
    table = Table(title=title)
    for col in columns:
        table.add_column(col.header, justify="right" if col.is_index else "left")
    for row in table_rows(records, columns):
        table.add_row(*(escape(cell) for cell in row))
    return table


def parse_choice(raw: str, count: int, allow_return: bool = False) -> Optional[int]:
    """Turn operator input into a zero-based index; None means cancel."""
    text = raw.strip()
    low = 0 if allow_return else 1
    if not text:
        return None
    try:
        number = int(text)
    except ValueError:
        raise SelectionFault(raw, low, count) from None
    if allow_return and number == 0:
        return None
    if not 1 <= number <= count:
        raise SelectionFault(raw, low, count)
    return number - 1


def select_record(
    records: Sequence[Any],
    columns: Sequence[DisplayColumn],
    console: Optional[Console] = None,
    read_line: Optional[Callable[[str], str]] = None,
    allow_return: bool = False,
    title: Optional[str] = None,
    show_table: bool = True,
) -> Selection:
    if not records:
        raise ValidationFault("nothing to select from")
    if len(records) == 1:
        return Selection(Outcome.SELECTED, records[0], 0)

    console = console or Console()
    read_line = read_line or console.input
    if show_table:
        console.print(build_table(records, columns, title=title))
    hint = f"0-{len(records)}, 0 to go back" if allow_return else f"1-{len(records)}, blank to cancel"
    try:
        raw = read_line(f"Select a row ({hint}): ")
    except EOFError:
        return CANCELLED
    index = parse_choice(raw, len(records), allow_return=allow_return)
    if index is None:
        return CANCELLED
    return Selection(Outcome.SELECTED, records[index], index)
