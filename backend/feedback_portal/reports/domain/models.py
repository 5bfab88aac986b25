"""Domain models for bug and feedback reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional


class ReportKind(str, Enum):
    BUG = "bug"
    FEEDBACK = "feedback"

    @property
    def collection(self) -> str:
        return f"{self.value}_reports"


@dataclass(slots=True)
class Reply:
    content: str
    replied_by: Any
    replied_date: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "repliedBy": self.replied_by,
            "repliedDate": self.replied_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Reply":
        replied_date = data["repliedDate"]
        if isinstance(replied_date, str):
            replied_date = datetime.fromisoformat(replied_date)
        return cls(
            content=data["content"],
            replied_by=data.get("repliedBy"),
            replied_date=replied_date,
        )


@dataclass(slots=True)
class NewReport:
    """Fields of a report before the store has assigned an id."""

    kind: ReportKind
    date: datetime
    description: str
    submitter_id: str
    townhall_id: Optional[str] = None


@dataclass(slots=True)
class Report:
    id: str
    kind: ReportKind
    date: datetime
    description: str
    submitter_id: str
    resolved: bool = False
    replies: list[Reply] = field(default_factory=list)
    townhall_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "date": self.date.isoformat(),
            "description": self.description,
            "submitterId": self.submitter_id,
            "resolved": self.resolved,
            "replies": [reply.to_dict() for reply in self.replies],
        }
        if self.kind is ReportKind.BUG:
            payload["townhallId"] = self.townhall_id
        return payload


@dataclass(slots=True)
class ReportFilter:
    submitter_id: Optional[str] = None
    resolved: Optional[bool] = None

    def matches(self, report: Report) -> bool:
        if self.submitter_id is not None and report.submitter_id != self.submitter_id:
            return False
        if self.resolved is not None and report.resolved != self.resolved:
            return False
        return True


@dataclass(slots=True)
class ReportPage:
    reports: list[Report]
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"reports": [report.to_dict() for report in self.reports], "count": self.count}
