# sql_parser.py
from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


# =========================
# Data models
# =========================


class JoinType(str, enum.Enum):
    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL = "FULL"
    CROSS = "CROSS"


@dataclass
class TableReference:
    name: str
    schema: str
    # toggled by callers, only the initial value comes from the name
    is_view: bool = False

    @property
    def fqtn(self) -> str:
        return f"{self.schema}.{self.name}"


@dataclass(frozen=True)
class JoinPredicate:
    left_table: str
    right_table: str
    left_column: str
    right_column: str
    join_type: JoinType = JoinType.INNER


# =========================
# Patterns
# =========================

DEFAULT_SCHEMA = "public"
VIEW_PREFIX = "v_"

_LINE_COMMENT_RX = re.compile(r"--[^\n\r\u2028\u2029]*")
_BLOCK_COMMENT_RX = re.compile(r"/\*.*?\*/", re.S)
_WHITESPACE_RX = re.compile(r"\s+")

_IDENT = r"[a-zA-Z_][a-zA-Z0-9_]*"
# from a.t1, t2 -> group(1) = "a.", group(2) = "t1, t2"
_TABLE_CLAUSE_RX = re.compile(
    rf"(?:from|join|update|into)\s+({_IDENT}\.)?"
    rf"({_IDENT}(?:\s*,\s*(?:{_IDENT}\.)?{_IDENT})*)"
)

_QUALIFIED = r"\w+(?:\.\w+)?"
# words that can never be a table or alias in front of JOIN
_RESERVED = (
    r"(?:select|from|where|join|on|and|or|as|inner|left|right|full|cross|outer|natural|using)\b"
)
# the right operand of a previous ON is never taken as the left table
_EXPLICIT_JOIN_RX = re.compile(
    rf"\b(?<![.=])(?<!=\s)(?!{_RESERVED})({_QUALIFIED})"
    rf"(?:\s+(?:as\s+)?(?!{_RESERVED})\w+)?"
    r"\s+(?:(inner|left|right|full|cross)\s+)?(?:outer\s+)?join\s+"
    rf"({_QUALIFIED})"
    r"(?:\s+(?:as\s+)?(?!on\b)\w+)?"
    rf"\s+on\s+({_QUALIFIED})\s*=\s*({_QUALIFIED})",
    re.ASCII,
)
_IMPLICIT_JOIN_RX = re.compile(
    rf"where.*?({_QUALIFIED})\s*=\s*({_QUALIFIED})",
    re.ASCII,
)


# =========================
# Helpers
# =========================


def normalize_sql(sql: Optional[str]) -> str:
    """
    Lowercase the text and drop `--` line comments, then `/* */` block comments.
    Comment markers inside string literals are not recognised as literals.
    """
    if not sql:
        return ""
    clean = sql.lower()
    clean = _LINE_COMMENT_RX.sub("", clean)
    return _BLOCK_COMMENT_RX.sub("", clean)


def _collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RX.sub(" ", text).strip()


def _last_segment(identifier: str) -> str:
    return identifier.split(".")[-1]


def _split_fqtn(full_name: str) -> TableReference:
    """
    "sales.orders" -> (sales, orders)
    "orders"       -> (public, orders)
    "a.b.t"        -> (a, b)
    """
    parts = full_name.split(".")
    if len(parts) > 1:
        schema, name = parts[0], parts[1]
    else:
        schema, name = DEFAULT_SCHEMA, full_name
    return TableReference(name=name, schema=schema, is_view=name.startswith(VIEW_PREFIX))


# =========================
# Core: tables
# =========================


def extract_tables(sql: Optional[str]) -> List[TableReference]:
    """
    Recover table references from FROM / JOIN / UPDATE / INTO clauses.

    The clause level schema prefix is applied to every item of a comma list,
    so ``from a.t1, t2`` yields ``a.t1`` and ``a.t2``.
    Output is unique and sorted by ``schema.name``.
    """
    clean = normalize_sql(sql)
    if not clean:
        return []

    tables: Dict[str, TableReference] = {}
    for match in _TABLE_CLAUSE_RX.finditer(clean):
        schema_prefix = match.group(1)
        for table in match.group(2).split(","):
            table = table.strip()
            if schema_prefix:
                full_name = f"{schema_prefix[:-1]}.{table}"
            elif "." not in table:
                full_name = f"{DEFAULT_SCHEMA}.{table}"
            else:
                full_name = table
            ref = _split_fqtn(full_name)
            tables.setdefault(ref.fqtn, ref)

    return [tables[key] for key in sorted(tables)]


# =========================
# Core: joins
# =========================


def _explicit_joins(clean: str) -> List[JoinPredicate]:
    joins: List[JoinPredicate] = []
    for match in _EXPLICIT_JOIN_RX.finditer(clean):
        left_full, join_type, right_full, left_col_full, right_col_full = match.groups()
        joins.append(
            JoinPredicate(
                left_table=_last_segment(left_full),
                right_table=_last_segment(right_full),
                left_column=_last_segment(left_col_full),
                right_column=_last_segment(right_col_full),
                join_type=JoinType((join_type or "inner").upper()),
            )
        )
    return joins


def _implicit_joins(clean: str) -> List[JoinPredicate]:
    joins: List[JoinPredicate] = []
    for match in _IMPLICIT_JOIN_RX.finditer(clean):
        left_full, right_full = match.groups()
        # bare columns and literals are filters, not joins
        if "." not in left_full or "." not in right_full:
            continue
        left_table, left_col = left_full.split(".")
        right_table, right_col = right_full.split(".")
        if left_table == right_table:
            continue
        joins.append(
            JoinPredicate(
                left_table=left_table,
                right_table=right_table,
                left_column=left_col,
                right_column=right_col,
                join_type=JoinType.INNER,
            )
        )
    return joins


def extract_joins(sql: Optional[str]) -> List[JoinPredicate]:
    """
    Recover equi-join predicates in order of appearance.

    Explicit ``JOIN ... ON a = b`` forms win; only when there are none are
    WHERE clause equalities between two different tables reported, always
    as INNER joins.
    """
    clean = _collapse_whitespace(normalize_sql(sql))
    if not clean:
        return []

    joins = _explicit_joins(clean)
    if joins:
        return joins

    tables = extract_tables(sql)
    logger.debug(
        "No explicit joins, scanning WHERE clauses over tables: %s",
        [t.fqtn for t in tables],
    )
    return _implicit_joins(clean)
