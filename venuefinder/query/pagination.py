"""
Pagination calculator.

Pure arithmetic over page, limit and the total match count; nothing is
stored between requests.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class PageRef:
    page: int
    limit: int
    
    def to_dict(self) -> dict[str, int]:
        return {"page": self.page, "limit": self.limit}


@dataclass(frozen=True)
class Page:
    """Where a page starts and which neighbours exist."""
    
    page: int
    limit: int
    skip: int
    next: PageRef | None = None
    prev: PageRef | None = None
    
    def to_dict(self) -> dict[str, Any]:
        """Pagination block for a list response: only the neighbours that exist."""
        out: dict[str, Any] = {}
        if self.next:
            out["next"] = self.next.to_dict()
        if self.prev:
            out["prev"] = self.prev.to_dict()
        return out


def _parse_int(raw: Any) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, int):
        return raw
    m = _LEADING_INT.match(str(raw))
    return int(m.group(1)) if m else None


def parse_page_params(
    page: Any,
    limit: Any,
    default_limit: int = 10,
    max_limit: int | None = None,
) -> tuple[int, int]:
    """
    Read page/limit from raw query values.
    
    Missing, unparsable or non-positive values fall back to page 1 and
    `default_limit`. `max_limit`, when configured, caps the page size.
    """
    page_num = _parse_int(page)
    limit_num = _parse_int(limit)
    
    if page_num is None or page_num < 1:
        page_num = 1
    if limit_num is None or limit_num < 1:
        limit_num = default_limit
    if max_limit is not None:
        limit_num = min(limit_num, max_limit)
    
    return page_num, limit_num


def paginate(page: int = 1, limit: int = 10, total: int = 0) -> Page:
    """
    Compute skip and neighbour pages.
    
        paginate(2, 10, 25) → skip 10, next page 3, prev page 1
    """
    skip = (page - 1) * limit
    return Page(
        page=page,
        limit=limit,
        skip=skip,
        next=PageRef(page + 1, limit) if page * limit < total else None,
        prev=PageRef(page - 1, limit) if skip > 0 else None,
    )
