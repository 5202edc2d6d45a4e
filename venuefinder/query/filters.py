"""
Query filter translator.

Turns a request's query string into a storage filter:

    ?price[gte]=10&category=bar&sort=-price&page=2
        → filters {"price": {"$gte": "10"}, "category": "bar"}
          sort [("price", -1)]

Operators are rewritten on the parsed structure, only in operator
position (the keys of a field's condition object). Field names and
values are never touched, so a field literally called "gte" or a value
such as "dine in" survive as-is.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from venuefinder.auth.principal import Principal
from venuefinder.storage import SortSpec

logger = logging.getLogger(__name__)

# Keys handled by pagination / projection / ordering rather than filtering
CONTROL_KEYS = ("select", "sort", "page", "limit")

# Comparison tokens clients may use inside a field's condition object
OPERATORS = frozenset({"gt", "gte", "lt", "lte", "in"})

# Special owner value meaning "whoever is calling"
CURRENT_OWNER = "current"

DEFAULT_SORT = "-createdAt"

_KEY_RE = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_MAX_DEPTH = 5


# =============================================================================
# Query-String Parsing
# =============================================================================


def _split_key(key: str) -> list[str]:
    """"price[gte]" → ["price", "gte"]; malformed keys are kept whole."""
    m = _KEY_RE.match(key)
    if not m:
        return [key]
    parts = [m.group(1)] + re.findall(r"\[([^\[\]]*)\]", m.group(2))
    return parts[: _MAX_DEPTH + 1]


def parse_query_params(items: Iterable[tuple[str, str]]) -> dict[str, Any]:
    """
    Parse bracketed query-string pairs into nested objects.
    
    Repeated keys (and "key[]") collect into lists.
    """
    result: dict[str, Any] = {}
    for raw_key, value in items:
        path = _split_key(raw_key)
        as_list = len(path) > 1 and path[-1] == ""
        if as_list:
            path = path[:-1]
        
        node = result
        for part in path[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        
        leaf = path[-1]
        if leaf in node:
            existing = node[leaf]
            node[leaf] = (existing if isinstance(existing, list) else [existing]) + [value]
        else:
            node[leaf] = [value] if as_list else value
    return result


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, list):
        return ",".join(str(v) for v in value)
    return str(value)


def parse_select(value: Any) -> list[str] | None:
    """"name,address" → ["name", "address"]"""
    text = _as_text(value)
    if not text:
        return None
    return [f.strip() for f in text.replace(" ", ",").split(",") if f.strip()] or None


def parse_sort(value: Any, default: str | None = DEFAULT_SORT) -> SortSpec:
    """"-price,name" → [("price", -1), ("name", 1)]"""
    text = _as_text(value) or default or ""
    spec: SortSpec = []
    for token in text.replace(" ", ",").split(","):
        token = token.strip()
        if not token:
            continue
        if token.startswith("-"):
            spec.append((token[1:], -1))
        else:
            spec.append((token.lstrip("+"), 1))
    return spec


# =============================================================================
# Operator Rewrite
# =============================================================================


def _rewrite_in(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        return [v for v in value.split(",") if v != ""]
    return [value]


def _rewrite_condition(condition: Any) -> Any:
    if not isinstance(condition, dict):
        return condition
    rewritten: dict[str, Any] = {}
    for key, value in condition.items():
        if key == "in":
            rewritten["$in"] = _rewrite_in(value)
        elif key in OPERATORS:
            rewritten[f"${key}"] = value
        else:
            rewritten[key] = _rewrite_condition(value)
    return rewritten


def rewrite_operators(filters: Mapping[str, Any]) -> dict[str, Any]:
    """
    Prefix comparison tokens with "$" wherever they sit in operator position.
    
        {"price": {"gte": 10}} → {"price": {"$gte": 10}}
        {"gte": "x"}           → {"gte": "x"}   (a field, not an operator)
    """
    return {name: _rewrite_condition(condition) for name, condition in filters.items()}


# =============================================================================
# Translation
# =============================================================================


@dataclass
class TranslatedQuery:
    """Everything a list endpoint needs to run its query."""
    
    filters: dict[str, Any] = field(default_factory=dict)
    select: list[str] | None = None
    sort: SortSpec = field(default_factory=list)
    
    # Set when the request can only ever match nothing (owner=current, anonymous)
    empty: bool = False
    
    @staticmethod
    def empty_response() -> dict[str, Any]:
        return {"success": True, "count": 0, "data": []}


def translate(
    raw_query: Mapping[str, Any],
    principal: Principal,
    *,
    scope_to_owner: bool = False,
    default_sort: str | None = DEFAULT_SORT,
) -> TranslatedQuery:
    """
    Build a storage filter from parsed query parameters.
    
    Steps:
    1. Strip control keys (select, sort, page, limit)
    2. Rewrite comparison operators
    3. owner=current → the caller's owner id, or an empty result when anonymous
    4. With scope_to_owner, an authenticated caller naming neither owner nor
       venue only sees their own resources
    """
    working = dict(raw_query)
    select = parse_select(working.get("select"))
    sort = parse_sort(working.get("sort"), default_sort)
    for key in CONTROL_KEYS:
        working.pop(key, None)
    
    filters = rewrite_operators(working)
    
    if filters.get("owner") == CURRENT_OWNER:
        if principal.is_anonymous:
            logger.debug("owner=current requested anonymously; returning no results")
            return TranslatedQuery(select=select, sort=sort, empty=True)
        filters["owner"] = principal.acting_owner_id
    elif scope_to_owner and principal.is_authenticated and "owner" not in filters and "venue" not in filters:
        logger.debug(f"Scoping list to owner {principal.acting_owner_id}")
        filters["owner"] = principal.acting_owner_id
    
    return TranslatedQuery(filters=filters, select=select, sort=sort)
