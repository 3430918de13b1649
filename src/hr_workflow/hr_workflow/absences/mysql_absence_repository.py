from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterator, Optional, Sequence

from ..core.enums import ApprovalAction, ApprovalStage, IncidenceStatus, RequestStatus, RequestType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, in_clause, load_json
from ..incidences.model import Incidence
from .model import AbsenceRequest, ApprovalHistory, NewAbsenceRequest, RequestDetails, RequestFilter
from .repository import AbsenceRequestRepository, AbsenceRequestStore

_REQUEST_COLUMNS = """
    ar.request_id, ar.employee_id, ar.request_type, ar.incidence_type_id,
    ar.start_date, ar.end_date, ar.total_days, ar.reason,
    ar.status, ar.current_approval_stage, ar.requires_payroll,
    ar.hours_per_day, ar.paid_days, ar.unpaid_days, ar.unpaid_comments,
    ar.shift_details, ar.new_shift_id, ar.custom_fields,
    ar.is_archived, ar.archived_at, ar.archived_by,
    ar.created_by, ar.created_at, ar.updated_at,
    e.full_name AS employee_name
"""

_SELECT_REQUEST = f"""
    SELECT {_REQUEST_COLUMNS}
    FROM absence_requests ar
    JOIN employees e ON e.employee_id = ar.employee_id
"""


def _opt_float(value) -> Optional[float]:
    return float(value) if value is not None else None


def _to_request(r: dict) -> AbsenceRequest:
    return AbsenceRequest(
        request_id=int(r["request_id"]),
        employee_id=int(r["employee_id"]),
        request_type=RequestType(r["request_type"]),
        incidence_type_id=int(r["incidence_type_id"]) if r.get("incidence_type_id") is not None else None,
        start_date=r["start_date"],
        end_date=r["end_date"],
        total_days=float(r["total_days"]),
        reason=r["reason"],
        status=RequestStatus(r["status"]),
        current_approval_stage=ApprovalStage(r["current_approval_stage"]),
        requires_payroll=bool(r.get("requires_payroll", 0)),
        created_by=int(r["created_by"]),
        created_at=r["created_at"],
        updated_at=r.get("updated_at"),
        details=RequestDetails(
            hours_per_day=_opt_float(r.get("hours_per_day")),
            paid_days=_opt_float(r.get("paid_days")),
            unpaid_days=_opt_float(r.get("unpaid_days")),
            unpaid_comments=r.get("unpaid_comments"),
            shift_details=r.get("shift_details"),
            new_shift_id=int(r["new_shift_id"]) if r.get("new_shift_id") is not None else None,
        ),
        custom_fields=load_json(r.get("custom_fields")),
        is_archived=bool(r.get("is_archived", 0)),
        archived_at=r.get("archived_at"),
        archived_by=int(r["archived_by"]) if r.get("archived_by") is not None else None,
        employee_name=r.get("employee_name"),
    )


def _to_history(r: dict) -> ApprovalHistory:
    return ApprovalHistory(
        history_id=int(r["history_id"]),
        request_id=int(r["request_id"]),
        approver_id=int(r["approver_id"]),
        approval_stage=ApprovalStage(r["approval_stage"]),
        action=ApprovalAction(r["action"]),
        comments=r.get("comments"),
        created_at=r["created_at"],
    )


def _select_history(cur, request_id: int) -> list[ApprovalHistory]:
    cur.execute(
        """
        SELECT history_id, request_id, approver_id, approval_stage, action, comments, created_at
        FROM approval_history
        WHERE request_id=%s
        ORDER BY history_id
        """,
        (int(request_id),),
    )
    return [_to_history(r) for r in fetchall(cur)]


class _MySQLRequestStore(AbsenceRequestStore):
    def __init__(self, cur):
        self._cur = cur

    def lock_employee(self, employee_id: int) -> bool:
        self._cur.execute("SELECT employee_id FROM employees WHERE employee_id=%s FOR UPDATE", (int(employee_id),))
        return fetchone(self._cur) is not None

    def get_request(self, request_id: int, *, for_update: bool = False) -> Optional[AbsenceRequest]:
        sql = _SELECT_REQUEST + " WHERE ar.request_id=%s"
        if for_update:
            sql += " FOR UPDATE"
        self._cur.execute(sql, (int(request_id),))
        r = fetchone(self._cur)
        return _to_request(r) if r else None

    def find_overlapping_requests(
        self,
        *,
        employee_id: int,
        start_date: date,
        end_date: date,
        statuses: Sequence[RequestStatus],
        exclude_request_id: Optional[int] = None,
    ) -> Sequence[AbsenceRequest]:
        if not statuses:
            return []
        where = [
            "ar.employee_id=%s",
            f"ar.status IN ({in_clause(statuses)})",
            "ar.is_archived=0",
            "ar.start_date<=%s",
            "ar.end_date>=%s",
        ]
        params: list = [int(employee_id), *[s.value for s in statuses], end_date, start_date]
        if exclude_request_id is not None:
            where.append("ar.request_id<>%s")
            params.append(int(exclude_request_id))
        self._cur.execute(
            _SELECT_REQUEST + " WHERE " + " AND ".join(where) + " ORDER BY ar.start_date, ar.request_id",
            tuple(params),
        )
        return [_to_request(r) for r in fetchall(self._cur)]

    def find_overlapping_incidences(
        self,
        *,
        employee_id: int,
        start_date: date,
        end_date: date,
        exclude_request_id: Optional[int] = None,
    ) -> Sequence[Incidence]:
        where = ["employee_id=%s", "status<>%s", "start_date<=%s", "end_date>=%s"]
        params: list = [int(employee_id), IncidenceStatus.REJECTED.value, end_date, start_date]
        if exclude_request_id is not None:
            where.append("(absence_request_id IS NULL OR absence_request_id<>%s)")
            params.append(int(exclude_request_id))
        self._cur.execute(
            """
            SELECT incidence_id, employee_id, incidence_type_id, start_date, end_date,
                   quantity, status, absence_request_id
            FROM incidences
            WHERE """
            + " AND ".join(where)
            + " ORDER BY start_date, incidence_id",
            tuple(params),
        )
        return [
            Incidence(
                incidence_id=int(r["incidence_id"]),
                employee_id=int(r["employee_id"]),
                incidence_type_id=int(r["incidence_type_id"]),
                start_date=r["start_date"],
                end_date=r["end_date"],
                quantity=float(r.get("quantity") or 0),
                status=IncidenceStatus(r["status"]),
                absence_request_id=int(r["absence_request_id"]) if r.get("absence_request_id") is not None else None,
            )
            for r in fetchall(self._cur)
        ]

    def insert_request(self, draft: NewAbsenceRequest) -> int:
        d = draft.details
        self._cur.execute(
            """
            INSERT INTO absence_requests(
                employee_id, request_type, incidence_type_id, start_date, end_date, total_days, reason,
                status, current_approval_stage, requires_payroll,
                hours_per_day, paid_days, unpaid_days, unpaid_comments, shift_details, new_shift_id,
                custom_fields, created_by, created_at, updated_at
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                int(draft.employee_id),
                draft.request_type.value,
                draft.incidence_type_id,
                draft.start_date,
                draft.end_date,
                draft.total_days,
                draft.reason,
                draft.status.value,
                draft.current_approval_stage.value,
                1 if draft.requires_payroll else 0,
                d.hours_per_day,
                d.paid_days,
                d.unpaid_days,
                d.unpaid_comments,
                d.shift_details,
                d.new_shift_id,
                dump_json(draft.custom_fields),
                int(draft.created_by),
                draft.created_at,
                draft.created_at,
            ),
        )
        return int(self._cur.lastrowid)

    def compare_and_set_state(
        self,
        *,
        request_id: int,
        expected_status: RequestStatus,
        expected_stage: ApprovalStage,
        new_status: RequestStatus,
        new_stage: ApprovalStage,
        updated_at: datetime,
    ) -> bool:
        self._cur.execute(
            """
            UPDATE absence_requests
            SET status=%s, current_approval_stage=%s, updated_at=%s
            WHERE request_id=%s AND status=%s AND current_approval_stage=%s AND is_archived=0
            """,
            (
                new_status.value,
                new_stage.value,
                updated_at,
                int(request_id),
                expected_status.value,
                expected_stage.value,
            ),
        )
        return self._cur.rowcount == 1

    def insert_history(
        self,
        *,
        request_id: int,
        approver_id: int,
        stage: ApprovalStage,
        action: ApprovalAction,
        comments: Optional[str],
        created_at: datetime,
    ) -> int:
        self._cur.execute(
            """
            INSERT INTO approval_history(request_id, approver_id, approval_stage, action, comments, created_at)
            VALUES(%s,%s,%s,%s,%s,%s)
            """,
            (int(request_id), int(approver_id), stage.value, action.value, comments, created_at),
        )
        return int(self._cur.lastrowid)

    def count_history(self, request_id: int) -> int:
        self._cur.execute("SELECT COUNT(*) AS n FROM approval_history WHERE request_id=%s", (int(request_id),))
        r = fetchone(self._cur)
        return int(r["n"]) if r else 0

    def list_history(self, request_id: int) -> Sequence[ApprovalHistory]:
        return _select_history(self._cur, request_id)

    def mark_archived(self, *, request_id: int, archived_by: int, archived_at: datetime) -> bool:
        self._cur.execute(
            """
            UPDATE absence_requests
            SET is_archived=1, archived_at=%s, archived_by=%s, updated_at=%s
            WHERE request_id=%s AND is_archived=0
            """,
            (archived_at, int(archived_by), archived_at, int(request_id)),
        )
        return self._cur.rowcount == 1

    def delete_request(self, request_id: int) -> bool:
        self._cur.execute("DELETE FROM absence_requests WHERE request_id=%s", (int(request_id),))
        return self._cur.rowcount == 1


class MySQLAbsenceRequestRepository(AbsenceRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @contextmanager
    def unit_of_work(self) -> Iterator[AbsenceRequestStore]:
        with db_cursor(self._conn_factory) as (_, cur):
            yield _MySQLRequestStore(cur)

    def list_requests(self, request_filter: RequestFilter) -> Sequence[AbsenceRequest]:
        f = request_filter
        where: list[str] = []
        params: list = []
        if f.employee_id is not None:
            where.append("ar.employee_id=%s")
            params.append(int(f.employee_id))
        if f.statuses:
            where.append(f"ar.status IN ({in_clause(f.statuses)})")
            params.extend(s.value for s in f.statuses)
        if f.stages:
            where.append(f"ar.current_approval_stage IN ({in_clause(f.stages)})")
            params.extend(s.value for s in f.stages)
        if f.request_type is not None:
            where.append("ar.request_type=%s")
            params.append(f.request_type.value)
        if f.starts_on_or_after:
            where.append("ar.start_date>=%s")
            params.append(f.starts_on_or_after)
        if f.ends_on_or_before:
            where.append("ar.end_date<=%s")
            params.append(f.ends_on_or_before)
        if not f.include_archived:
            where.append("ar.is_archived=0")

        sql = _SELECT_REQUEST
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY ar.created_at DESC, ar.request_id DESC LIMIT %s"
        params.append(int(f.limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_request(r) for r in fetchall(cur)]

    def count_pending_by_stage(self) -> dict[ApprovalStage, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT current_approval_stage AS stage, COUNT(*) AS n
                FROM absence_requests
                WHERE status=%s AND is_archived=0
                GROUP BY current_approval_stage
                """,
                (RequestStatus.PENDING.value,),
            )
            return {ApprovalStage(r["stage"]): int(r["n"]) for r in fetchall(cur)}

    def list_history(self, request_id: int) -> Sequence[ApprovalHistory]:
        with db_cursor(self._conn_factory) as (_, cur):
            return _select_history(cur, request_id)
