"""
Collection Query Helpers

Parses the bracketed query-string syntax the dashboard uses against every
collection endpoint and applies it to a SQLAlchemy query:

    ?filters[name][$eq]=Central
    ?filters[division][documentId][$eq]=<documentId>
    ?filters[name][$containsi]=stand
    ?pagination[page]=2&pagination[pageSize]=100

Responses are wrapped in the ``{"data": [...], "meta": {"pagination": ...}}``
envelope. Page size is capped at MAX_PAGE_SIZE; there is no continuation
beyond the requested page.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, inspect
from sqlalchemy.orm import Query

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 1000

FILTER_KEY_RE = re.compile(r'^filters((?:\[[^\]]+\])+)$')
BRACKET_RE = re.compile(r'\[([^\]]+)\]')
OPERATORS = ("$eq", "$ne", "$contains", "$containsi")


class FilterError(ValueError):
    """Raised for a filter naming an unknown field or operator."""


@dataclass
class FilterClause:
    path: List[str]
    operator: str
    value: str


def _wire_to_attr(name: str) -> str:
    return "document_id" if name == "documentId" else name


def parse_filters(query_params) -> List[FilterClause]:
    clauses = []
    for key, value in query_params.multi_items():
        match = FILTER_KEY_RE.match(key)
        if not match:
            continue
        parts = BRACKET_RE.findall(match.group(1))
        if parts[-1].startswith("$"):
            operator, path = parts[-1], parts[:-1]
        else:
            operator, path = "$eq", parts
        if operator not in OPERATORS:
            raise FilterError(f"Unsupported filter operator '{operator}'")
        if not path:
            raise FilterError(f"Filter '{key}' names no field")
        clauses.append(FilterClause(path=path, operator=operator, value=value))
    return clauses


def parse_pagination(query_params, default_size: int = DEFAULT_PAGE_SIZE) -> Tuple[int, int]:
    def _int(name: str, fallback: int) -> int:
        raw = query_params.get(name)
        try:
            return int(raw) if raw is not None else fallback
        except ValueError:
            return fallback

    page = max(_int("pagination[page]", 1), 1)
    page_size = _int("pagination[pageSize]", default_size)
    if page_size < 1:
        page_size = default_size
    return page, min(page_size, MAX_PAGE_SIZE)


def _coerce(column, value: str) -> Any:
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    if python_type in (int, float):
        try:
            return python_type(value)
        except ValueError:
            raise FilterError(f"Filter value '{value}' is not a number")
    return value


def _condition(column, operator: str, value: str):
    if operator == "$eq":
        return column == _coerce(column, value)
    if operator == "$ne":
        return column != _coerce(column, value)
    if operator == "$contains":
        return column.contains(value)
    return func.lower(column).contains(value.lower())


def apply_filters(query: Query, model, clauses: List[FilterClause],
                  aliases: Optional[Dict[str, str]] = None) -> Query:
    """
    Apply parsed filter clauses to ``query`` over ``model``.

    One-segment paths filter a column; two-segment paths filter a
    many-to-one relationship by a column of the related row, e.g.
    ``division.documentId``.
    """
    aliases = aliases or {}
    mapper = inspect(model)

    for clause in clauses:
        head = aliases.get(clause.path[0], clause.path[0])

        if len(clause.path) == 1:
            attr = _wire_to_attr(head)
            if attr not in mapper.columns:
                raise FilterError(f"Unknown filter field '{clause.path[0]}'")
            query = query.filter(_condition(mapper.columns[attr], clause.operator, clause.value))

        elif len(clause.path) == 2:
            if head not in mapper.relationships:
                raise FilterError(f"Unknown relation '{clause.path[0]}'")
            related = mapper.relationships[head].mapper
            attr = _wire_to_attr(clause.path[1])
            if attr not in related.columns:
                raise FilterError(f"Unknown field '{clause.path[1]}' on '{clause.path[0]}'")
            condition = _condition(related.columns[attr], clause.operator, clause.value)
            query = query.filter(getattr(model, head).has(condition))

        else:
            raise FilterError("Nested filters deeper than one relation are not supported")

    return query


def paginate(query: Query, page: int, page_size: int) -> Tuple[list, Dict[str, Any]]:
    total = query.order_by(None).count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    meta = {
        "pagination": {
            "page": page,
            "pageSize": page_size,
            "pageCount": math.ceil(total / page_size) if total else 0,
            "total": total,
        }
    }
    return items, meta
