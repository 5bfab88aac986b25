"""Report store contract plus an in-memory implementation."""

from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Any, Mapping, Protocol, Sequence

from feedback_portal.reports.domain.models import NewReport, Reply, Report, ReportFilter

MUTABLE_FIELDS = frozenset({"description", "resolved"})


class StoreError(Exception):
    """A store operation failed.

    ``client_fault`` marks failures caused by the request itself (bad numeric
    input and the like) as opposed to infrastructure trouble.
    """

    def __init__(self, operation: str, *, client_fault: bool = False) -> None:
        super().__init__(operation)
        self.operation = operation
        self.client_fault = client_fault


class ReportStore(Protocol):
    async def insert_one(self, report: NewReport) -> str:
        ...

    async def find_many(
        self,
        report_filter: ReportFilter,
        *,
        ascending: bool,
        skip: int,
        limit: int,
    ) -> Sequence[Report]:
        ...

    async def find_one(self, report_id: str) -> Report | None:
        ...

    async def update_one(self, report_id: str, patch: Mapping[str, Any]) -> bool:
        ...

    async def append_reply(self, report_id: str, reply: Reply) -> bool:
        """Append ``reply`` and keep replies ordered by date in one atomic step."""
        ...

    async def delete_one(self, report_id: str) -> bool:
        ...

    async def count_documents(self, report_filter: ReportFilter) -> int:
        ...


def _copy(report: Report) -> Report:
    return replace(report, replies=list(report.replies))


class InMemoryReportStore(ReportStore):
    """Simple store implementation for development and tests."""

    def __init__(self) -> None:
        self._items: dict[str, Report] = {}

    async def insert_one(self, report: NewReport) -> str:
        report_id = str(uuid.uuid4())
        self._items[report_id] = Report(
            id=report_id,
            kind=report.kind,
            date=report.date,
            description=report.description,
            submitter_id=report.submitter_id,
            townhall_id=report.townhall_id,
        )
        return report_id

    async def find_many(
        self,
        report_filter: ReportFilter,
        *,
        ascending: bool,
        skip: int,
        limit: int,
    ) -> Sequence[Report]:
        matching = [item for item in self._items.values() if report_filter.matches(item)]
        matching.sort(key=lambda item: item.date, reverse=not ascending)
        return [_copy(item) for item in matching[skip : skip + limit]]

    async def find_one(self, report_id: str) -> Report | None:
        item = self._items.get(report_id)
        return _copy(item) if item is not None else None

    async def update_one(self, report_id: str, patch: Mapping[str, Any]) -> bool:
        unknown = set(patch) - MUTABLE_FIELDS
        if unknown:
            raise StoreError("update_one", client_fault=True)
        item = self._items.get(report_id)
        if item is None:
            return False
        for key, value in patch.items():
            setattr(item, key, value)
        return True

    async def append_reply(self, report_id: str, reply: Reply) -> bool:
        item = self._items.get(report_id)
        if item is None:
            return False
        item.replies = sorted([*item.replies, reply], key=lambda entry: entry.replied_date)
        return True

    async def delete_one(self, report_id: str) -> bool:
        return self._items.pop(report_id, None) is not None

    async def count_documents(self, report_filter: ReportFilter) -> int:
        return sum(1 for item in self._items.values() if report_filter.matches(item))
