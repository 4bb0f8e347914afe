from __future__ import annotations

"""Sorting and pagination for the records table."""

import math
from typing import List, Sequence, Tuple

from ..domain.errors import InvalidInput
from ..domain.models import GdpRecord


SORT_KEYS = ("year", "value", "country")
DIRECTIONS = ("ascending", "descending")
MAX_PAGE_SIZE = 100


def sort_records(records: Sequence[GdpRecord], key: str = "year", direction: str = "ascending") -> List[GdpRecord]:
    if key not in SORT_KEYS:
        raise InvalidInput(f"Cannot sort by '{key}'. Use one of: {', '.join(SORT_KEYS)}.")
    if direction not in DIRECTIONS:
        raise InvalidInput(f"Sort direction must be one of: {', '.join(DIRECTIONS)}.")
    return sorted(records, key=lambda r: getattr(r, key), reverse=direction == "descending")


def paginate(records: Sequence[GdpRecord], page: int, page_size: int) -> Tuple[List[GdpRecord], int]:
    """Return the slice for ``page`` (1-based) and the total page count."""
    if page < 1:
        raise InvalidInput("Page must be 1 or greater.")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise InvalidInput(f"Page size must be between 1 and {MAX_PAGE_SIZE}.")
    total_pages = math.ceil(len(records) / page_size)
    start = (page - 1) * page_size
    return list(records[start:start + page_size]), total_pages
