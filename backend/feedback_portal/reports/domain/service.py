"""Report orchestration: decode, check ownership or policy, then touch the store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from feedback_portal.obs import metrics
from feedback_portal.reports.domain import events as report_events
from feedback_portal.reports.domain import validation
from feedback_portal.reports.domain.events import ReportEventPublisher
from feedback_portal.reports.domain.models import NewReport, Reply, Report, ReportFilter, ReportKind, ReportPage
from feedback_portal.reports.domain.ownership import Decision, authorize, authorize_submitter
from feedback_portal.reports.domain.pagination import DEFAULT_MAX_SKIP, DEFAULT_PAGE_SIZE, PageWindow
from feedback_portal.reports.domain.policy import ANONYMOUS, AuthorizationPolicy, OpenPolicy, Permission, Principal
from feedback_portal.reports.domain.results import (
    Err,
    Failure,
    NotAuthorized,
    NotFound,
    Ok,
    Result,
    StoreFailure,
    ValidationFailure,
)
from feedback_portal.reports.domain.store import ReportStore, StoreError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ReportService:
    """Operations on one report kind.

    Every public method returns ``Ok`` or ``Err``; nothing raises for expected
    failures. Update and delete fetch the report first so a missing report and
    a foreign report produce different failures.
    """

    kind: ReportKind
    store: ReportStore
    policy: AuthorizationPolicy = field(default_factory=OpenPolicy)
    events: Optional[ReportEventPublisher] = None
    page_size: int = DEFAULT_PAGE_SIZE
    max_skip: int = DEFAULT_MAX_SKIP
    strict_sort: bool = False
    clock: Callable[[], datetime] = _utcnow

    async def create(self, payload: Any) -> Result[str]:
        decoded = validation.decode_create(self.kind, payload)
        if isinstance(decoded, Err):
            return self._reject("create", decoded)
        command = decoded.value
        new_report = NewReport(
            kind=self.kind,
            date=self.clock(),
            description=command.description,
            submitter_id=command.submitter_id,
            townhall_id=command.townhall_id,
        )
        try:
            report_id = await self.store.insert_one(new_report)
        except StoreError as exc:
            return self._store_failure("create", exc)
        await self._publish(report_events.REPORT_CREATED, report_id, command.submitter_id)
        return self._accept("create", report_id)

    async def get_by_id(self, report_id: str) -> Result[Report]:
        if not report_id:
            return self._reject("get", Err(ValidationFailure("id")))
        try:
            report = await self.store.find_one(report_id)
        except StoreError as exc:
            return self._store_failure("get", exc)
        if report is None:
            return self._reject("get", Err(NotFound(report_id)))
        return self._accept("get", report)

    async def list_reports(
        self,
        *,
        page: Optional[str] = None,
        ascending: Optional[str] = None,
        resolved: Optional[str] = None,
        principal: Principal = ANONYMOUS,
    ) -> Result[ReportPage]:
        decoded = validation.decode_list_query(
            page=page,
            ascending=ascending,
            resolved=resolved,
            page_size=self.page_size,
            max_skip=self.max_skip,
            strict_sort=self.strict_sort,
        )
        if isinstance(decoded, Err):
            return self._reject("list", decoded)
        if not await self.policy.is_allowed(principal, Permission.LIST_ALL):
            return self._reject("list", Err(NotAuthorized("policy_denied")))
        query = decoded.value
        return await self._page("list", ReportFilter(resolved=query.resolved), query.window, query.ascending)

    async def list_by_submitter(
        self,
        *,
        submitter_id: Optional[str],
        payload: Any,
        page: Optional[str] = None,
        ascending: Optional[str] = None,
    ) -> Result[ReportPage]:
        decoded = validation.decode_submitter_query(
            submitter_id=submitter_id,
            payload=payload,
            page=page,
            ascending=ascending,
            page_size=self.page_size,
            max_skip=self.max_skip,
            strict_sort=self.strict_sort,
        )
        if isinstance(decoded, Err):
            return self._reject("list_by_submitter", decoded)
        query = decoded.value
        if authorize_submitter(query.submitter_id, query.caller_id) is not Decision.ALLOWED:
            return self._reject("list_by_submitter", Err(NotAuthorized("not_submitter")))
        return await self._page(
            "list_by_submitter",
            ReportFilter(submitter_id=query.submitter_id),
            query.window,
            query.ascending,
        )

    async def update_description(self, payload: Any) -> Result[None]:
        decoded = validation.decode_update_description(payload)
        if isinstance(decoded, Err):
            return self._reject("update_description", decoded)
        command = decoded.value
        owned = await self._fetch_owned("update_description", command.report_id, command.caller_id)
        if isinstance(owned, Err):
            return owned
        try:
            matched = await self.store.update_one(command.report_id, {"description": command.new_description})
        except StoreError as exc:
            return self._store_failure("update_description", exc)
        if not matched:
            # deleted between fetch and update
            return self._reject("update_description", Err(NotFound(command.report_id)))
        await self._publish(report_events.REPORT_UPDATED, command.report_id, command.caller_id)
        return self._accept("update_description", None)

    async def delete(self, payload: Any) -> Result[None]:
        decoded = validation.decode_delete(payload)
        if isinstance(decoded, Err):
            return self._reject("delete", decoded)
        command = decoded.value
        owned = await self._fetch_owned("delete", command.report_id, command.caller_id)
        if isinstance(owned, Err):
            return owned
        try:
            deleted = await self.store.delete_one(command.report_id)
        except StoreError as exc:
            return self._store_failure("delete", exc)
        if not deleted:
            return self._reject("delete", Err(NotFound(command.report_id)))
        await self._publish(report_events.REPORT_DELETED, command.report_id, command.caller_id)
        return self._accept("delete", None)

    async def set_resolved_status(self, payload: Any, principal: Principal = ANONYMOUS) -> Result[None]:
        decoded = validation.decode_set_resolved_status(payload)
        if isinstance(decoded, Err):
            return self._reject("set_resolved_status", decoded)
        if not await self.policy.is_allowed(principal, Permission.SET_RESOLVED):
            return self._reject("set_resolved_status", Err(NotAuthorized("policy_denied")))
        command = decoded.value
        try:
            matched = await self.store.update_one(command.report_id, {"resolved": command.resolved})
        except StoreError as exc:
            return self._store_failure("set_resolved_status", exc)
        if not matched:
            return self._reject("set_resolved_status", Err(NotFound(command.report_id)))
        await self._publish(report_events.REPORT_RESOLVED, command.report_id, principal.user_id)
        return self._accept("set_resolved_status", None)

    async def append_reply(self, payload: Any, principal: Principal = ANONYMOUS) -> Result[None]:
        decoded = validation.decode_append_reply(payload)
        if isinstance(decoded, Err):
            return self._reject("append_reply", decoded)
        if not await self.policy.is_allowed(principal, Permission.APPEND_REPLY):
            return self._reject("append_reply", Err(NotAuthorized("policy_denied")))
        command = decoded.value
        reply = Reply(content=command.content, replied_by=command.replied_by, replied_date=self.clock())
        try:
            matched = await self.store.append_reply(command.report_id, reply)
        except StoreError as exc:
            return self._store_failure("append_reply", exc)
        if not matched:
            return self._reject("append_reply", Err(NotFound(command.report_id)))
        await self._publish(report_events.REPORT_REPLIED, command.report_id, command.replier_id)
        return self._accept("append_reply", None)

    async def _fetch_owned(self, operation: str, report_id: str, caller_id: str) -> Result[Report]:
        try:
            report = await self.store.find_one(report_id)
        except StoreError as exc:
            return self._store_failure(operation, exc)
        if report is None:
            return self._reject(operation, Err(NotFound(report_id)))
        if authorize(report, caller_id) is not Decision.ALLOWED:
            return self._reject(operation, Err(NotAuthorized("not_submitter")))
        return Ok(report)

    async def _page(
        self,
        operation: str,
        report_filter: ReportFilter,
        window: PageWindow,
        ascending: bool,
    ) -> Result[ReportPage]:
        try:
            reports = await self.store.find_many(
                report_filter,
                ascending=ascending,
                skip=window.skip,
                limit=window.limit,
            )
            count = await self.store.count_documents(report_filter)
        except StoreError as exc:
            return self._store_failure(operation, exc)
        return self._accept(operation, ReportPage(reports=list(reports), count=count))

    async def _publish(self, event: str, report_id: str, actor_id: Optional[str]) -> None:
        if self.events is None:
            return
        await self.events.publish(self.kind, event, report_id, actor_id)

    def _accept(self, operation: str, value: Any) -> Ok[Any]:
        metrics.record_report_operation(self.kind.value, operation, "ok")
        return Ok(value)

    def _reject(self, operation: str, result: Err) -> Err:
        failure: Failure = result.failure
        metrics.record_report_operation(self.kind.value, operation, failure.code)
        logger.info(
            "report request rejected",
            extra={"kind": self.kind.value, "operation": operation, "cause": _describe(failure)},
        )
        return result

    def _store_failure(self, operation: str, exc: StoreError) -> Err:
        failure = StoreFailure(operation=exc.operation, client_fault=exc.client_fault)
        if exc.client_fault:
            return self._reject(operation, Err(failure))
        metrics.record_report_operation(self.kind.value, operation, failure.code)
        logger.error(
            "report store unavailable",
            exc_info=exc,
            extra={"kind": self.kind.value, "operation": operation},
        )
        return Err(failure)


def _describe(failure: Failure) -> str:
    if isinstance(failure, ValidationFailure):
        return f"{failure.code}:{failure.field}"
    if isinstance(failure, NotFound):
        return f"{failure.code}:{failure.report_id}"
    if isinstance(failure, NotAuthorized):
        return f"{failure.code}:{failure.reason}"
    return f"{failure.code}:{failure.operation}"
