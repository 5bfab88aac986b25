"""Ownership checks gating report mutation."""

from __future__ import annotations

from enum import Enum

from feedback_portal.reports.domain.models import Report


class Decision(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"


def authorize_submitter(submitter_id: str, caller_id: str) -> Decision:
    # Exact comparison: no case folding or prefix matching
    if submitter_id and submitter_id == caller_id:
        return Decision.ALLOWED
    return Decision.DENIED


def authorize(report: Report, caller_id: str) -> Decision:
    """Allow only the identity that submitted ``report``."""
    return authorize_submitter(report.submitter_id, caller_id)
