"""Request decoders for report operations.

Each decoder takes the raw JSON payload (or raw query values) of one operation
and returns either a typed command or a ``ValidationFailure`` naming the first
offending field. Decoding is pure: nothing here touches the store.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Type, TypeVar, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool, StrictStr
from pydantic import ValidationError as PydanticValidationError

from feedback_portal.reports.domain.models import ReportKind
from feedback_portal.reports.domain.pagination import PageWindow, resolve_page
from feedback_portal.reports.domain.results import Err, Ok, Result, ValidationFailure

_LEADING_INT = re.compile(r"^\s*([+-]?)(\d+)")

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CallerRef(_Payload):
    id: StrictStr = Field(min_length=1, validation_alias=AliasChoices("id", "_id"))


class ReplierRef(CallerRef):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class CreateFeedbackReportIn(_Payload):
    description: StrictStr = Field(min_length=1)
    user: CallerRef


class CreateBugReportIn(CreateFeedbackReportIn):
    townhall_id: StrictStr = Field(min_length=1, validation_alias="townhallId")


class UpdateDescriptionIn(_Payload):
    id: StrictStr = Field(min_length=1, validation_alias=AliasChoices("id", "Id", "_id"))
    new_description: StrictStr = Field(min_length=1, validation_alias="newDescription")
    user: CallerRef


class DeleteReportIn(_Payload):
    id: StrictStr = Field(min_length=1, validation_alias=AliasChoices("id", "Id", "_id"))
    user: CallerRef


class SetResolvedStatusIn(_Payload):
    id: StrictStr = Field(min_length=1, validation_alias=AliasChoices("id", "Id", "_id"))
    resolved_status: StrictBool = Field(validation_alias="resolvedStatus")


class AppendReplyIn(_Payload):
    id: StrictStr = Field(min_length=1, validation_alias=AliasChoices("id", "Id", "_id"))
    reply_content: StrictStr = Field(min_length=1, validation_alias="replyContent")
    user: ReplierRef


class SubmitterScopeIn(_Payload):
    user: CallerRef


@dataclass(frozen=True, slots=True)
class CreateReport:
    kind: ReportKind
    description: str
    submitter_id: str
    townhall_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class UpdateDescription:
    report_id: str
    new_description: str
    caller_id: str


@dataclass(frozen=True, slots=True)
class DeleteReport:
    report_id: str
    caller_id: str


@dataclass(frozen=True, slots=True)
class SetResolvedStatus:
    report_id: str
    resolved: bool


@dataclass(frozen=True, slots=True)
class AppendReply:
    report_id: str
    content: str
    replied_by: dict[str, Any]
    replier_id: str


@dataclass(frozen=True, slots=True)
class ListQuery:
    window: PageWindow
    ascending: bool
    resolved: Optional[bool] = None


@dataclass(frozen=True, slots=True)
class SubmitterQuery:
    window: PageWindow
    ascending: bool
    submitter_id: str
    caller_id: str


def _first_error_field(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "body"
    loc = errors[0].get("loc") or ()
    parts = [str(part) for part in loc]
    return ".".join(parts) or "body"


def _decode(schema: Type[SchemaT], payload: Any) -> Union[Ok[SchemaT], Err]:
    if not isinstance(payload, Mapping):
        return Err(ValidationFailure("body"))
    try:
        return Ok(schema.model_validate(dict(payload)))
    except PydanticValidationError as exc:
        return Err(ValidationFailure(_first_error_field(exc)))


def decode_create(kind: ReportKind, payload: Any) -> Result[CreateReport]:
    if kind is ReportKind.BUG:
        decoded = _decode(CreateBugReportIn, payload)
        if isinstance(decoded, Err):
            return decoded
        bug = decoded.value
        return Ok(
            CreateReport(
                kind=kind,
                description=bug.description,
                submitter_id=bug.user.id,
                townhall_id=bug.townhall_id,
            )
        )
    decoded_feedback = _decode(CreateFeedbackReportIn, payload)
    if isinstance(decoded_feedback, Err):
        return decoded_feedback
    feedback = decoded_feedback.value
    return Ok(CreateReport(kind=kind, description=feedback.description, submitter_id=feedback.user.id))


def decode_update_description(payload: Any) -> Result[UpdateDescription]:
    decoded = _decode(UpdateDescriptionIn, payload)
    if isinstance(decoded, Err):
        return decoded
    body = decoded.value
    return Ok(UpdateDescription(report_id=body.id, new_description=body.new_description, caller_id=body.user.id))


def decode_delete(payload: Any) -> Result[DeleteReport]:
    decoded = _decode(DeleteReportIn, payload)
    if isinstance(decoded, Err):
        return decoded
    return Ok(DeleteReport(report_id=decoded.value.id, caller_id=decoded.value.user.id))


def decode_set_resolved_status(payload: Any) -> Result[SetResolvedStatus]:
    decoded = _decode(SetResolvedStatusIn, payload)
    if isinstance(decoded, Err):
        return decoded
    return Ok(SetResolvedStatus(report_id=decoded.value.id, resolved=decoded.value.resolved_status))


def decode_append_reply(payload: Any) -> Result[AppendReply]:
    decoded = _decode(AppendReplyIn, payload)
    if isinstance(decoded, Err):
        return decoded
    body = decoded.value
    # Stored exactly as sent
    replied_by = dict(payload["user"])
    return Ok(
        AppendReply(report_id=body.id, content=body.reply_content, replied_by=replied_by, replier_id=body.user.id)
    )


def parse_page(raw: Optional[str]) -> Optional[Union[int, float]]:
    """Read the leading integer of a query value.

    Strings without a leading integer read as ``None`` (first page). Integers
    too long to convert read as signed infinity so range checks still apply.
    """
    if raw is None:
        return None
    match = _LEADING_INT.match(raw)
    if match is None:
        return None
    sign, digits = match.groups()
    try:
        value = int(digits)
    except ValueError:
        return -math.inf if sign == "-" else math.inf
    return -value if sign == "-" else value


def parse_sort(raw: Optional[str], *, strict: bool = False) -> Result[bool]:
    if raw is None:
        return Ok(False)
    if raw == "true":
        return Ok(True)
    if strict and raw != "false":
        return Err(ValidationFailure("ascending"))
    return Ok(False)


def parse_resolved_filter(raw: Optional[str]) -> Result[Optional[bool]]:
    if raw is None:
        return Ok(None)
    if raw == "true":
        return Ok(True)
    if raw == "false":
        return Ok(False)
    return Err(ValidationFailure("resolved"))


def decode_list_query(
    *,
    page: Optional[str],
    ascending: Optional[str],
    resolved: Optional[str] = None,
    page_size: int,
    max_skip: int,
    strict_sort: bool = False,
) -> Result[ListQuery]:
    window = resolve_page(parse_page(page), page_size=page_size, max_skip=max_skip)
    if isinstance(window, Err):
        return window
    direction = parse_sort(ascending, strict=strict_sort)
    if isinstance(direction, Err):
        return direction
    resolved_filter = parse_resolved_filter(resolved)
    if isinstance(resolved_filter, Err):
        return resolved_filter
    return Ok(ListQuery(window=window.value, ascending=direction.value, resolved=resolved_filter.value))


def decode_submitter_query(
    *,
    submitter_id: Optional[str],
    payload: Any,
    page: Optional[str],
    ascending: Optional[str],
    page_size: int,
    max_skip: int,
    strict_sort: bool = False,
) -> Result[SubmitterQuery]:
    if not submitter_id:
        return Err(ValidationFailure("submitterId"))
    decoded = _decode(SubmitterScopeIn, payload)
    if isinstance(decoded, Err):
        return decoded
    listing = decode_list_query(
        page=page,
        ascending=ascending,
        page_size=page_size,
        max_skip=max_skip,
        strict_sort=strict_sort,
    )
    if isinstance(listing, Err):
        return listing
    return Ok(
        SubmitterQuery(
            window=listing.value.window,
            ascending=listing.value.ascending,
            submitter_id=submitter_id,
            caller_id=decoded.value.user.id,
        )
    )
