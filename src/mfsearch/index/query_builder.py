"""Parameterized SQL construction and FTS5 MATCH compilation."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, List, Sequence, Tuple

_ADVANCED_TOKEN = re.compile(r'"[^"]*"|\(|\)|&|\||!|[^\s()&|!"]+')
_WORD = re.compile(r"\w+", re.UNICODE)


def escape_like(value: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so ``value`` matches literally."""
    return (
        value.replace(escape, escape * 2).replace("%", f"{escape}%").replace("_", f"{escape}_")
    )


def _quote(term: str) -> str:
    return '"' + term.replace('"', '""') + '"'


def compile_plain(text: str) -> str:
    """Natural-language text to an OR of quoted terms.

    Rows matching more terms rank higher under bm25, so expansion terms widen
    recall without excluding rows that only mention the acronym.
    """
    seen: List[str] = []
    for word in _WORD.findall(text):
        lowered = word.lower()
        if lowered not in seen:
            seen.append(lowered)
    return " OR ".join(_quote(word) for word in seen)


def _compile_operand(token: str) -> str:
    if token.startswith('"'):
        inner = token.strip('"').strip()
        return _quote(inner) if inner else ""
    prefix = token.endswith("*")
    word = token.rstrip("*").replace(":", "")
    if "<->" in word:
        phrase = " ".join(part for part in word.split("<->") if part)
        return _quote(phrase) if phrase else ""
    terms = _WORD.findall(word)
    if not terms:
        return ""
    if len(terms) > 1:
        return _quote(" ".join(terms))
    return _quote(terms[0]) + ("*" if prefix else "")


def compile_advanced(expression: str) -> str:
    """Compile a ``& | ! * "phrase" a<->b`` expression into FTS5 MATCH syntax.

    FTS5 has no unary NOT, so ``a & !b`` becomes ``a NOT b`` and a ``!`` with
    nothing on its left drops the operand (or parenthesised group) it negates.
    Dangling operators are removed and parentheses balanced.
    """
    out: List[str] = []
    depth = 0
    skip_next = False
    skip_depth = 0

    def last_is_operand() -> bool:
        return bool(out) and out[-1] not in ("AND", "OR", "NOT", "(")

    for token in _ADVANCED_TOKEN.findall(expression):
        if skip_depth:
            if token == "(":
                skip_depth += 1
            elif token == ")":
                skip_depth -= 1
            continue
        if skip_next and token != ")":
            if token == "(":
                skip_next = False
                skip_depth = 1
            elif token not in ("!", "&", "|") and _compile_operand(token):
                skip_next = False
            continue
        skip_next = False

        if token == "(":
            if last_is_operand():
                out.append("AND")
            out.append("(")
            depth += 1
        elif token == ")":
            if depth == 0:
                continue
            while out and out[-1] in ("AND", "OR", "NOT"):
                out.pop()
            if out and out[-1] == "(":
                out.pop()
            else:
                out.append(")")
            depth -= 1
        elif token in ("&", "|"):
            if last_is_operand():
                out.append("AND" if token == "&" else "OR")
        elif token == "!":
            if out and out[-1] == "AND":
                out[-1] = "NOT"
            elif last_is_operand():
                out.append("NOT")
            else:
                skip_next = True
        else:
            operand = _compile_operand(token)
            if not operand:
                continue
            if last_is_operand():
                out.append("AND")
            out.append(operand)

    while out and out[-1] in ("AND", "OR", "NOT", "("):
        if out.pop() == "(":
            depth -= 1
    out.extend(")" * depth)
    return " ".join(out)


def compile_match(expanded: str, advanced: bool) -> str:
    return compile_advanced(expanded) if advanced else compile_plain(expanded)


@dataclass
class SelectBuilder:
    """Accumulates a SELECT statement with positional parameters.

    Identifiers (tables, columns) come from code; only values flow through
    ``params``.
    """

    table: str
    columns: List[str] = field(default_factory=list)
    joins: List[str] = field(default_factory=list)
    conditions: List[str] = field(default_factory=list)
    params: List[Any] = field(default_factory=list)
    select_params: List[Any] = field(default_factory=list)
    order: List[str] = field(default_factory=list)
    limit: int | None = None

    def select(self, *columns: str, params: Sequence[Any] = ()) -> "SelectBuilder":
        self.columns.extend(columns)
        self.select_params.extend(params)
        return self

    def join(self, clause: str) -> "SelectBuilder":
        self.joins.append(clause)
        return self

    def where(self, condition: str, *params: Any) -> "SelectBuilder":
        self.conditions.append(condition)
        self.params.extend(params)
        return self

    def where_in(self, column: str, values: Sequence[Any]) -> "SelectBuilder":
        if not values:
            return self.where("0")
        placeholders = ", ".join("?" for _ in values)
        return self.where(f"{column} IN ({placeholders})", *values)

    def where_ieq(self, column: str, value: Any) -> "SelectBuilder":
        return self.where(f"LOWER({column}) = LOWER(?)", value)

    def order_by(self, *clauses: str) -> "SelectBuilder":
        self.order.extend(clauses)
        return self

    def limit_to(self, limit: int | None) -> "SelectBuilder":
        self.limit = limit
        return self

    def build(self) -> Tuple[str, List[Any]]:
        sql = [f"SELECT {', '.join(self.columns) or '*'}", f"FROM {self.table}"]
        sql.extend(self.joins)
        if self.conditions:
            sql.append("WHERE " + " AND ".join(f"({c})" for c in self.conditions))
        if self.order:
            sql.append("ORDER BY " + ", ".join(self.order))
        params = [*self.select_params, *self.params]
        if self.limit is not None:
            sql.append("LIMIT ?")
            params.append(int(self.limit))
        return "\n".join(sql), params
