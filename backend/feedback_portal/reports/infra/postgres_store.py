"""PostgreSQL-backed report store."""

from __future__ import annotations

import json
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Optional, Sequence

import asyncpg

from feedback_portal.reports.domain.models import NewReport, Reply, Report, ReportFilter, ReportKind
from feedback_portal.reports.domain.store import MUTABLE_FIELDS, ReportStore, StoreError

_COLUMNS = "id, date, description, submitter_id, resolved, replies, townhall_id"


def schema_statements(table: str) -> tuple[str, ...]:
    return (
        f"""
        CREATE TABLE IF NOT EXISTS {table} (
            id UUID PRIMARY KEY,
            date TIMESTAMPTZ NOT NULL,
            description TEXT NOT NULL,
            submitter_id TEXT NOT NULL CHECK (submitter_id <> ''),
            resolved BOOLEAN NOT NULL DEFAULT FALSE,
            replies JSONB NOT NULL DEFAULT '[]'::jsonb,
            townhall_id TEXT
        )
        """,
        f"CREATE INDEX IF NOT EXISTS {table}_submitter_date_idx ON {table} (submitter_id, date)",
        f"CREATE INDEX IF NOT EXISTS {table}_resolved_date_idx ON {table} (resolved, date)",
    )


def build_where(report_filter: ReportFilter, params: list[Any]) -> str:
    """Append filter parameters and return the WHERE clause (or '')."""

    clauses: list[str] = []
    if report_filter.submitter_id is not None:
        params.append(report_filter.submitter_id)
        clauses.append(f"submitter_id = ${len(params)}")
    if report_filter.resolved is not None:
        params.append(report_filter.resolved)
        clauses.append(f"resolved = ${len(params)}")
    if not clauses:
        return ""
    return " WHERE " + " AND ".join(clauses)


def _as_uuid(report_id: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(report_id))
    except (ValueError, TypeError, AttributeError):
        return None


def _affected(status: str) -> int:
    # asyncpg returns command tags such as "UPDATE 1" / "DELETE 0"
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError):
        return 0


def _report_from_record(kind: ReportKind, record: Mapping[str, Any]) -> Report:
    replies_raw = record["replies"]
    if isinstance(replies_raw, str):
        replies_raw = json.loads(replies_raw)
    return Report(
        id=str(record["id"]),
        kind=kind,
        date=record["date"],
        description=record["description"],
        submitter_id=record["submitter_id"],
        resolved=record["resolved"],
        replies=[Reply.from_dict(item) for item in replies_raw or []],
        townhall_id=record["townhall_id"],
    )


class PostgresReportStore(ReportStore):
    """Persists one report kind in its own table using asyncpg.

    Every mutation is a single statement, so each touches exactly one row
    atomically and concurrent replies are serialised by the row lock.
    """

    def __init__(self, pool: asyncpg.Pool, kind: ReportKind) -> None:
        self.pool = pool
        self.kind = kind
        self.table = kind.collection

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except asyncpg.PostgresError as exc:
            # SQLSTATE class 22 is "data exception": the request carried bad values
            sqlstate = str(getattr(exc, "sqlstate", "") or "")
            raise StoreError(operation, client_fault=sqlstate.startswith("22")) from exc
        except ValueError as exc:
            # asyncpg rejects unencodable arguments client side with a ValueError subclass
            raise StoreError(operation, client_fault=True) from exc
        except (asyncpg.InterfaceError, OSError) as exc:
            raise StoreError(operation) from exc

    async def ensure_schema(self) -> None:
        async with self._guard("ensure_schema"):
            async with self.pool.acquire() as conn:
                for statement in schema_statements(self.table):
                    await conn.execute(statement)

    async def insert_one(self, report: NewReport) -> str:
        report_id = uuid.uuid4()
        query = f"""
        INSERT INTO {self.table} (id, date, description, submitter_id, resolved, replies, townhall_id)
        VALUES ($1, $2, $3, $4, FALSE, '[]'::jsonb, $5)
        """
        async with self._guard("insert_one"):
            await self.pool.execute(
                query,
                report_id,
                report.date,
                report.description,
                report.submitter_id,
                report.townhall_id,
            )
        return str(report_id)

    async def find_many(
        self,
        report_filter: ReportFilter,
        *,
        ascending: bool,
        skip: int,
        limit: int,
    ) -> Sequence[Report]:
        params: list[Any] = []
        where = build_where(report_filter, params)
        params.extend([limit, skip])
        direction = "ASC" if ascending else "DESC"
        query = (
            f"SELECT {_COLUMNS} FROM {self.table}{where} "
            f"ORDER BY date {direction} LIMIT ${len(params) - 1} OFFSET ${len(params)}"
        )
        async with self._guard("find_many"):
            rows = await self.pool.fetch(query, *params)
        return [_report_from_record(self.kind, row) for row in rows]

    async def find_one(self, report_id: str) -> Report | None:
        key = _as_uuid(report_id)
        if key is None:
            return None
        async with self._guard("find_one"):
            row = await self.pool.fetchrow(f"SELECT {_COLUMNS} FROM {self.table} WHERE id = $1", key)
        return _report_from_record(self.kind, row) if row is not None else None

    async def update_one(self, report_id: str, patch: Mapping[str, Any]) -> bool:
        unknown = set(patch) - MUTABLE_FIELDS
        if unknown or not patch:
            raise StoreError("update_one", client_fault=True)
        key = _as_uuid(report_id)
        if key is None:
            return False
        params: list[Any] = [key]
        assignments: list[str] = []
        for column in sorted(patch):
            params.append(patch[column])
            assignments.append(f"{column} = ${len(params)}")
        query = f"UPDATE {self.table} SET {', '.join(assignments)} WHERE id = $1"
        async with self._guard("update_one"):
            status = await self.pool.execute(query, *params)
        return _affected(status) > 0

    async def append_reply(self, report_id: str, reply: Reply) -> bool:
        key = _as_uuid(report_id)
        if key is None:
            return False
        query = f"""
        UPDATE {self.table}
        SET replies = (
            SELECT COALESCE(jsonb_agg(elem ORDER BY (elem->>'repliedDate')::timestamptz), '[]'::jsonb)
            FROM jsonb_array_elements(replies || jsonb_build_array($2::jsonb)) AS elem
        )
        WHERE id = $1
        """
        async with self._guard("append_reply"):
            status = await self.pool.execute(query, key, json.dumps(reply.to_dict()))
        return _affected(status) > 0

    async def delete_one(self, report_id: str) -> bool:
        key = _as_uuid(report_id)
        if key is None:
            return False
        async with self._guard("delete_one"):
            status = await self.pool.execute(f"DELETE FROM {self.table} WHERE id = $1", key)
        return _affected(status) > 0

    async def count_documents(self, report_filter: ReportFilter) -> int:
        params: list[Any] = []
        where = build_where(report_filter, params)
        async with self._guard("count_documents"):
            total = await self.pool.fetchval(f"SELECT COUNT(*) FROM {self.table}{where}", *params)
        return int(total or 0)
