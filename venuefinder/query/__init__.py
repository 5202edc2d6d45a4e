"""
Query handling for list endpoints: filter translation, pagination, radius search.
"""

from venuefinder.query.filters import (
    TranslatedQuery,
    parse_query_params,
    rewrite_operators,
    translate,
)
from venuefinder.query.pagination import Page, PageRef, paginate, parse_page_params
from venuefinder.query.geo import radius_filter

__all__ = [
    "TranslatedQuery",
    "parse_query_params",
    "rewrite_operators",
    "translate",
    "Page",
    "PageRef",
    "paginate",
    "parse_page_params",
    "radius_filter",
]
