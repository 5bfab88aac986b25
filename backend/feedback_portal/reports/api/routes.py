"""Report routers mounted at /api/bugs and /api/feedback."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from feedback_portal.reports.api.deps import get_container, get_principal, read_json_body
from feedback_portal.reports.api.errors import unwrap
from feedback_portal.reports.container import ReportsContainer
from feedback_portal.reports.domain.models import ReportKind
from feedback_portal.reports.domain.policy import Principal
from feedback_portal.reports.domain.service import ReportService

PREFIXES = {
    ReportKind.BUG: "/api/bugs",
    ReportKind.FEEDBACK: "/api/feedback",
}


def build_router(kind: ReportKind, prefix: Optional[str] = None) -> APIRouter:
    router = APIRouter(prefix=prefix or PREFIXES[kind], tags=[f"{kind.value}-reports"])

    def get_service(container: ReportsContainer = Depends(get_container)) -> ReportService:
        return container.service(kind)

    @router.post("/create-report")
    async def create_report(
        payload: Any = Depends(read_json_body),
        service: ReportService = Depends(get_service),
    ) -> dict[str, str]:
        report_id = unwrap(await service.create(payload))
        return {"id": report_id}

    @router.get("/get-reports")
    async def get_reports(
        page: Optional[str] = Query(default=None),
        ascending: Optional[str] = Query(default=None),
        sort_by_date: Optional[str] = Query(default=None, alias="sortByDate"),
        resolved: Optional[str] = Query(default=None),
        service: ReportService = Depends(get_service),
        principal: Principal = Depends(get_principal),
    ) -> dict[str, Any]:
        result = await service.list_reports(
            page=page,
            ascending=ascending if ascending is not None else sort_by_date,
            resolved=resolved,
            principal=principal,
        )
        return unwrap(result).to_dict()

    @router.get("/get-reports/{submitter_id}")
    async def get_reports_by_submitter(
        submitter_id: str,
        page: Optional[str] = Query(default=None),
        ascending: Optional[str] = Query(default=None),
        sort_by_date: Optional[str] = Query(default=None, alias="sortByDate"),
        payload: Any = Depends(read_json_body),
        service: ReportService = Depends(get_service),
    ) -> dict[str, Any]:
        result = await service.list_by_submitter(
            submitter_id=submitter_id,
            payload=payload,
            page=page,
            ascending=ascending if ascending is not None else sort_by_date,
        )
        return unwrap(result).to_dict()

    @router.get("/get-report/{report_id}")
    async def get_report(
        report_id: str,
        service: ReportService = Depends(get_service),
    ) -> dict[str, Any]:
        report = unwrap(await service.get_by_id(report_id))
        return {"report": report.to_dict()}

    @router.post("/update-report")
    async def update_report(
        payload: Any = Depends(read_json_body),
        service: ReportService = Depends(get_service),
    ) -> dict[str, bool]:
        unwrap(await service.update_description(payload))
        return {"ok": True}

    @router.post("/delete-report")
    async def delete_report(
        payload: Any = Depends(read_json_body),
        service: ReportService = Depends(get_service),
    ) -> dict[str, bool]:
        unwrap(await service.delete(payload))
        return {"ok": True}

    @router.post("/set-resolved-status")
    async def set_resolved_status(
        payload: Any = Depends(read_json_body),
        service: ReportService = Depends(get_service),
        principal: Principal = Depends(get_principal),
    ) -> dict[str, bool]:
        unwrap(await service.set_resolved_status(payload, principal))
        return {"ok": True}

    @router.post("/add-reply")
    async def add_reply(
        payload: Any = Depends(read_json_body),
        service: ReportService = Depends(get_service),
        principal: Principal = Depends(get_principal),
    ) -> dict[str, bool]:
        unwrap(await service.append_reply(payload, principal))
        return {"ok": True}

    return router


bugs_router = build_router(ReportKind.BUG)
feedback_router = build_router(ReportKind.FEEDBACK)
