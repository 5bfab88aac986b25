"""Offset pagination for report listings."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Union

from feedback_portal.reports.domain.results import Err, Ok, Result, ValidationFailure

DEFAULT_PAGE_SIZE = 10
DEFAULT_MAX_SKIP = 2**31 - 1


@dataclass(frozen=True, slots=True)
class PageWindow:
    skip: int
    limit: int


def resolve_page(
    page: Optional[Union[int, float]],
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_skip: int = DEFAULT_MAX_SKIP,
) -> Result[PageWindow]:
    """Map a 1-based page number to a skip/limit window.

    Absent, NaN, zero and negative pages all resolve to the first page. A page
    whose offset would exceed ``max_skip`` is rejected instead of being passed
    on to the store.
    """
    if page is None or (isinstance(page, float) and math.isnan(page)) or page <= 0:
        return Ok(PageWindow(skip=0, limit=page_size))
    if isinstance(page, float) and math.isinf(page):
        return Err(ValidationFailure("page"))
    skip = page_size * (int(page) - 1)
    if skip > max_skip:
        return Err(ValidationFailure("page"))
    return Ok(PageWindow(skip=skip, limit=page_size))
