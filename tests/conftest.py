from __future__ import annotations

import copy
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, timedelta

import pytest

from src.hr_workflow.hr_workflow.absences.events import EventBus, RequestCreated, RequestDecided, StageAdvanced
from src.hr_workflow.hr_workflow.absences.model import AbsenceRequest, ApprovalHistory
from src.hr_workflow.hr_workflow.absences.overlap import OverlapDetector, intervals_overlap
from src.hr_workflow.hr_workflow.absences.sequencer import StageSequencer
from src.hr_workflow.hr_workflow.absences.service import AbsenceRequestService
from src.hr_workflow.hr_workflow.authority.actor import ActorContext
from src.hr_workflow.hr_workflow.authority.resolver import RoleAuthorityResolver
from src.hr_workflow.hr_workflow.core.enums import (
    IncidenceCategory,
    IncidenceEffect,
    IncidenceStatus,
    RequestStatus,
)
from src.hr_workflow.hr_workflow.employees.model import Employee
from src.hr_workflow.hr_workflow.incidences.model import FormField, Incidence, IncidenceType


class FakeEmployeeDirectory:
    def __init__(self, employees=()):
        self._by_id = {e.employee_id: e for e in employees}

    def add(self, employee: Employee) -> None:
        self._by_id[employee.employee_id] = employee

    def get_by_id(self, employee_id):
        return self._by_id.get(int(employee_id))


class FakeIncidenceTypeCatalog:
    def __init__(self, types=()):
        self._by_id = {t.incidence_type_id: t for t in types}

    def get_by_id(self, incidence_type_id):
        return self._by_id.get(int(incidence_type_id))

    def list_requestable(self):
        return sorted((t for t in self._by_id.values() if t.is_requestable), key=lambda t: t.display_order)


class _State:
    def __init__(self):
        self.next_request_id = 1
        self.next_history_id = 1
        self.requests: dict[int, AbsenceRequest] = {}
        self.history: list[ApprovalHistory] = []
        self.incidences: list[Incidence] = []


class FakeStore:
    def __init__(self, state: _State, repo: "InMemoryAbsenceRepository"):
        self._s = state
        self._repo = repo

    def lock_employee(self, employee_id):
        self._repo.locked_employees.append(int(employee_id))
        return True

    def get_request(self, request_id, *, for_update=False):
        return self._s.requests.get(int(request_id))

    def find_overlapping_requests(self, *, employee_id, start_date, end_date, statuses, exclude_request_id=None):
        return [
            r
            for r in sorted(self._s.requests.values(), key=lambda r: (r.start_date, r.request_id))
            if r.employee_id == employee_id
            and r.status in statuses
            and not r.is_archived
            and r.request_id != exclude_request_id
            and intervals_overlap(start_date, end_date, r.start_date, r.end_date)
        ]

    def find_overlapping_incidences(self, *, employee_id, start_date, end_date, exclude_request_id=None):
        return [
            i
            for i in self._s.incidences
            if i.employee_id == employee_id
            and i.status != IncidenceStatus.REJECTED
            and (exclude_request_id is None or i.absence_request_id != exclude_request_id)
            and intervals_overlap(start_date, end_date, i.start_date, i.end_date)
        ]

    def insert_request(self, draft):
        rid = self._s.next_request_id
        self._s.next_request_id += 1
        self._s.requests[rid] = AbsenceRequest(
            request_id=rid,
            employee_id=draft.employee_id,
            request_type=draft.request_type,
            incidence_type_id=draft.incidence_type_id,
            start_date=draft.start_date,
            end_date=draft.end_date,
            total_days=draft.total_days,
            reason=draft.reason,
            status=draft.status,
            current_approval_stage=draft.current_approval_stage,
            requires_payroll=draft.requires_payroll,
            created_by=draft.created_by,
            created_at=draft.created_at,
            updated_at=draft.created_at,
            details=draft.details,
            custom_fields=draft.custom_fields,
        )
        return rid

    def compare_and_set_state(self, *, request_id, expected_status, expected_stage, new_status, new_stage, updated_at):
        if self._repo.cas_should_fail:
            return False
        req = self._s.requests.get(int(request_id))
        if not req or req.is_archived or req.status != expected_status or req.current_approval_stage != expected_stage:
            return False
        self._s.requests[req.request_id] = replace(
            req, status=new_status, current_approval_stage=new_stage, updated_at=updated_at
        )
        return True

    def insert_history(self, *, request_id, approver_id, stage, action, comments, created_at):
        hid = self._s.next_history_id
        self._s.next_history_id += 1
        self._s.history.append(
            ApprovalHistory(
                history_id=hid,
                request_id=int(request_id),
                approver_id=int(approver_id),
                approval_stage=stage,
                action=action,
                comments=comments,
                created_at=created_at,
            )
        )
        return hid

    def count_history(self, request_id):
        return len(self.list_history(request_id))

    def list_history(self, request_id):
        return [h for h in self._s.history if h.request_id == int(request_id)]

    def mark_archived(self, *, request_id, archived_by, archived_at):
        req = self._s.requests.get(int(request_id))
        if not req or req.is_archived:
            return False
        self._s.requests[req.request_id] = replace(
            req, is_archived=True, archived_by=archived_by, archived_at=archived_at
        )
        return True

    def delete_request(self, request_id):
        return self._s.requests.pop(int(request_id), None) is not None


def _matches(f, req) -> bool:
    if f.employee_id is not None and req.employee_id != f.employee_id:
        return False
    if f.statuses and req.status not in f.statuses:
        return False
    if f.stages and req.current_approval_stage not in f.stages:
        return False
    if f.request_type is not None and req.request_type != f.request_type:
        return False
    if f.starts_on_or_after and req.start_date < f.starts_on_or_after:
        return False
    if f.ends_on_or_before and req.end_date > f.ends_on_or_before:
        return False
    return f.include_archived or not req.is_archived


class InMemoryAbsenceRepository:
    """Transactional fake: a failed unit of work leaves no trace."""

    def __init__(self):
        self.state = _State()
        self.locked_employees: list[int] = []
        self.cas_should_fail = False
        self.last_filter = None

    @contextmanager
    def unit_of_work(self):
        snapshot = copy.deepcopy(self.state)
        try:
            yield FakeStore(self.state, self)
        except Exception:
            self.state = snapshot
            raise

    def add_incidence(self, incidence: Incidence) -> None:
        self.state.incidences.append(incidence)

    def list_requests(self, request_filter):
        self.last_filter = request_filter
        rows = [r for r in self.state.requests.values() if _matches(request_filter, r)]
        rows.sort(key=lambda r: (r.created_at, r.request_id), reverse=True)
        return rows[: request_filter.limit]

    def count_pending_by_stage(self):
        counts = {}
        for r in self.state.requests.values():
            if r.status == RequestStatus.PENDING and not r.is_archived:
                counts[r.current_approval_stage] = counts.get(r.current_approval_stage, 0) + 1
        return counts

    def list_history(self, request_id):
        return [h for h in self.state.history if h.request_id == int(request_id)]


class RecordingClock:
    def __init__(self, start=datetime(2026, 2, 2, 9, 0, 0)):
        self.now = start

    def __call__(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now


# Employee ids double as acting user ids.
ADMIN_ID = 1
MANAGER_ID = 2
SUPERVISOR_ID = 3
HR_ID = 4
PAYROLL_ID = 5
SUP_AND_GM_ID = 6
HR_AND_PR_ID = 10
EMPLOYEE_ID = 7
OTHER_EMPLOYEE_ID = 8
INACTIVE_ID = 9
NO_SUPERVISOR_ID = 11

VACATION_TYPE_ID = 1
SICK_TYPE_ID = 2
UNPAID_TYPE_ID = 3
OVERTIME_TYPE_ID = 4
BONUS_TYPE_ID = 5


def _employee(employee_id, name, role, supervisor_id=SUPERVISOR_ID, active=True):
    return Employee(
        employee_id=employee_id,
        full_name=name,
        email=f"user{employee_id}@example.com",
        role=role,
        supervisor_id=supervisor_id,
        general_manager_id=MANAGER_ID,
        is_active=active,
    )


@pytest.fixture
def employees():
    return FakeEmployeeDirectory(
        [
            _employee(ADMIN_ID, "Ana Admin", "admin", supervisor_id=None),
            _employee(MANAGER_ID, "Gabriel Manager", "manager", supervisor_id=None),
            _employee(SUPERVISOR_ID, "Sofia Supervisor", "supervisor", supervisor_id=MANAGER_ID),
            _employee(HR_ID, "Hector HR", "hr", supervisor_id=MANAGER_ID),
            _employee(PAYROLL_ID, "Paula Payroll", "payroll_staff", supervisor_id=HR_ID),
            _employee(SUP_AND_GM_ID, "Carlos Combined", "sup_and_gm", supervisor_id=None),
            _employee(EMPLOYEE_ID, "Elena Employee", "employee"),
            _employee(OTHER_EMPLOYEE_ID, "Marco Employee", "employee", supervisor_id=SUP_AND_GM_ID),
            _employee(INACTIVE_ID, "Ines Inactive", "employee", active=False),
            _employee(HR_AND_PR_ID, "Rosa HR Payroll", "hr_and_pr", supervisor_id=MANAGER_ID),
            _employee(NO_SUPERVISOR_ID, "Nico Nobody", "employee", supervisor_id=None),
        ]
    )


@pytest.fixture
def catalog():
    return FakeIncidenceTypeCatalog(
        [
            IncidenceType(VACATION_TYPE_ID, "Vacation", IncidenceCategory.VACATION, IncidenceEffect.NEUTRAL, True),
            IncidenceType(
                SICK_TYPE_ID,
                "Sick leave",
                IncidenceCategory.SICK,
                IncidenceEffect.NEUTRAL,
                True,
                form_fields=(FormField("certificate_number", "text", "Medical certificate", required=True),),
                display_order=2,
            ),
            IncidenceType(UNPAID_TYPE_ID, "Unpaid leave", IncidenceCategory.ABSENCE, IncidenceEffect.NEGATIVE, True,
                          display_order=3),
            IncidenceType(
                OVERTIME_TYPE_ID,
                "Overtime",
                IncidenceCategory.OVERTIME,
                IncidenceEffect.POSITIVE,
                True,
                form_fields=(FormField("hours", "number", "Hours", required=True, min=0.5, max=12),),
                display_order=4,
            ),
            IncidenceType(BONUS_TYPE_ID, "Punctuality bonus", IncidenceCategory.BONUS, IncidenceEffect.POSITIVE, False),
        ]
    )


@pytest.fixture
def repo():
    return InMemoryAbsenceRepository()


@pytest.fixture
def published():
    return []


@pytest.fixture
def event_bus(published):
    bus = EventBus()
    for event_type in (RequestCreated, StageAdvanced, RequestDecided):
        bus.subscribe(event_type, published.append)
    return bus


@pytest.fixture
def clock():
    return RecordingClock()


@pytest.fixture
def service(repo, employees, catalog, event_bus, clock):
    return AbsenceRequestService(
        repo,
        employees,
        catalog,
        resolver=RoleAuthorityResolver(),
        sequencer=StageSequencer(),
        overlap_detector=OverlapDetector(),
        events=event_bus,
        clock=clock,
        max_list_limit=100,
    )


@pytest.fixture
def actors():
    return {
        "admin": ActorContext.of(ADMIN_ID, "admin"),
        "manager": ActorContext.of(MANAGER_ID, "manager"),
        "supervisor": ActorContext.of(SUPERVISOR_ID, "supervisor"),
        "hr": ActorContext.of(HR_ID, "hr"),
        "payroll": ActorContext.of(PAYROLL_ID, "payroll_staff"),
        "sup_and_gm": ActorContext.of(SUP_AND_GM_ID, "sup_and_gm"),
        "hr_and_pr": ActorContext.of(HR_AND_PR_ID, "hr_and_pr"),
        "employee": ActorContext.of(EMPLOYEE_ID, "employee"),
        "other": ActorContext.of(OTHER_EMPLOYEE_ID, "employee"),
    }


@pytest.fixture
def file_request(service, actors):
    """File a request as the regular employee and return its id.

    Keyword overrides go straight to create().
    """

    def _file(**overrides):
        params = dict(
            actor=actors["employee"],
            employee_id=EMPLOYEE_ID,
            request_type="VACATION",
            start_date=date(2026, 3, 2),
            end_date=date(2026, 3, 6),
            reason="Family trip",
        )
        params.update(overrides)
        return service.create(**params).request_id

    return _file
