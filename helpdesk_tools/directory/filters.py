"""Filter Builder
==============

Compiles search criteria into a single ActiveDirectory `-Filter` expression.

Each `FilterClause` pairs one or more argument patterns with one or more
attribute names. Inside a clause every (field, argument) pair is OR-ed; the
clauses themselves are AND-ed:

    FilterClause(("jdoe*",), ("Name", "SamAccountName"))
    FilterClause(("IT",), ("Department",))

    (Name -like 'jdoe*' -or SamAccountName -like 'jdoe*') -and (Department -like 'IT')

The text is deterministic: fields in input order on the outside, arguments in
input order on the inside, clauses in input order.
"""

from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Optional, Sequence, Tuple
from helpdesk_tools.common.settings import (
    DEFAULT_RESULT_SIZE,
    EMPLOYEE_ID_FIELD,
    EMPLOYEE_SCOPE,
    MAX_RESULT_SIZE,
    MIN_RESULT_SIZE,
)
from helpdesk_tools.directory.errors import ValidationFault

if TYPE_CHECKING:
    from helpdesk_tools.common.settings import Settings

OBJECT_KINDS = ("user", "group", "computer")

_WILDCARD = re.compile(r"([`*?\[\]])")


@dataclass(frozen=True)
class FilterClause:
    arguments: Tuple[str, ...]
    fields: Tuple[str, ...]

    def __post_init__(self):
        # accept any iterable (or a bare string) on construction
        object.__setattr__(self, "arguments", _as_tuple(self.arguments))
        object.__setattr__(self, "fields", _as_tuple(self.fields))
        if not self.arguments:
            raise ValidationFault("filter clause needs at least one argument")
        if not self.fields:
            raise ValidationFault("filter clause needs at least one field")
        if any(not f.strip() for f in self.fields):
            raise ValidationFault("filter clause field names must not be blank")


@dataclass(frozen=True)
class QuerySpec:
    clauses: Tuple[FilterClause, ...]
    kind: str = "user"
    result_size: int = DEFAULT_RESULT_SIZE
    properties: Tuple[str, ...] = field(default_factory=tuple)
    scope: Optional[str] = None
    literal: bool = False

    def __post_init__(self):
        object.__setattr__(self, "clauses", tuple(self.clauses))
        object.__setattr__(self, "properties", _as_tuple(self.properties))

    def validate(self) -> None:
        if not self.clauses:
            raise ValidationFault("at least one search criterion is required")
        if self.kind not in OBJECT_KINDS:
            raise ValidationFault(
                f"unknown object kind {self.kind!r}; expected one of {', '.join(OBJECT_KINDS)}"
            )
        if not MIN_RESULT_SIZE <= self.result_size <= MAX_RESULT_SIZE:
            raise ValidationFault(
                f"result size must be between {MIN_RESULT_SIZE} and {MAX_RESULT_SIZE}"
            )


@dataclass(frozen=True)
class BuiltFilter:
    expression: str
    scope: Optional[str] = None


def _as_tuple(value) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


def escape_wildcards(text: str) -> str:
    """Backtick-escape wildcard metacharacters so *text* matches literally."""
    return _WILDCARD.sub(r"`\1", text)


def condition(field_name: str, argument: str) -> str:
    quoted = argument.replace("'", "''")
    return f"{field_name} -like '{quoted}'"


def targets_field(clauses: Iterable[FilterClause], field_name: str) -> bool:
    wanted = field_name.lower()
    return any(f.lower() == wanted for clause in clauses for f in clause.fields)


def build_filter(
    clauses: Sequence[FilterClause],
    literal: bool = False,
    scope: Optional[str] = None,
    employee_id_field: str = EMPLOYEE_ID_FIELD,
    employee_scope: str = EMPLOYEE_SCOPE,
) -> BuiltFilter:
    """Compile *clauses* into one `-Filter` expression and resolve the scope.

    Any clause on the employee-identifier field pins the whole request to the
    employee sub-tree.
    """
    if not clauses:
        raise ValidationFault("at least one search criterion is required")

    groups = []
    for clause in clauses:
        args = [escape_wildcards(a) for a in clause.arguments] if literal else list(clause.arguments)
        terms = [condition(f, a) for f in clause.fields for a in args]
        groups.append("(" + " -or ".join(terms) + ")")

    if targets_field(clauses, employee_id_field):
        scope = employee_scope
    return BuiltFilter(" -and ".join(groups), scope)


def compile_query(spec: QuerySpec, settings: "Settings") -> BuiltFilter:
    spec.validate()
    return build_filter(
        spec.clauses,
        literal=spec.literal,
        scope=spec.scope,
        employee_id_field=settings.employee_id_field,
        employee_scope=settings.employee_scope,
    )
