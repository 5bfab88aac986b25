import math

from feedback_portal.reports.domain.pagination import PageWindow, resolve_page
from feedback_portal.reports.domain.results import Err, Ok, ValidationFailure


def test_first_page_defaults():
	assert resolve_page(None) == Ok(PageWindow(skip=0, limit=10))
	assert resolve_page(1) == Ok(PageWindow(skip=0, limit=10))


def test_later_pages_offset_by_page_size():
	assert resolve_page(3) == Ok(PageWindow(skip=20, limit=10))
	assert resolve_page(2, page_size=25) == Ok(PageWindow(skip=25, limit=25))


def test_zero_negative_and_nan_read_as_first_page():
	for page in (0, -1, -(10**40), float("nan"), -math.inf):
		assert resolve_page(page) == Ok(PageWindow(skip=0, limit=10))


def test_offset_beyond_max_skip_is_rejected():
	assert resolve_page(2, max_skip=10) == Ok(PageWindow(skip=10, limit=10))
	assert resolve_page(3, max_skip=19) == Err(ValidationFailure("page"))
	assert resolve_page(10**30) == Err(ValidationFailure("page"))
	assert resolve_page(math.inf) == Err(ValidationFailure("page"))
