from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .absences.events import EventBus, log_workflow_event, RequestCreated, RequestDecided, StageAdvanced
from .absences.mysql_absence_repository import MySQLAbsenceRequestRepository
from .absences.overlap import OverlapDetector
from .absences.repository import AbsenceRequestRepository
from .absences.sequencer import StageSequencer
from .absences.service import AbsenceRequestService
from .authority.resolver import RoleAuthorityResolver
from .core.constants import MAX_LIST_LIMIT
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeDirectory
from .employees.repository import EmployeeDirectory
from .incidences.mysql_incidence_type_repository import MySQLIncidenceTypeCatalog
from .incidences.repository import IncidenceTypeCatalog


@dataclass(frozen=True)
class Container:
    employees: EmployeeDirectory
    incidence_types: IncidenceTypeCatalog
    absence_requests: AbsenceRequestRepository

    events: EventBus
    absence_service: AbsenceRequestService


def wire_container(
    *,
    employees: EmployeeDirectory,
    incidence_types: IncidenceTypeCatalog,
    absence_requests: AbsenceRequestRepository,
    events: Optional[EventBus] = None,
    max_list_limit: int = MAX_LIST_LIMIT,
    **service_options,
) -> Container:
    events = events or EventBus()
    for event_type in (RequestCreated, StageAdvanced, RequestDecided):
        events.subscribe(event_type, log_workflow_event)

    absence_service = AbsenceRequestService(
        absence_requests,
        employees,
        incidence_types,
        resolver=RoleAuthorityResolver(),
        sequencer=StageSequencer(),
        overlap_detector=OverlapDetector(),
        events=events,
        max_list_limit=max_list_limit,
        **service_options,
    )
    return Container(
        employees=employees,
        incidence_types=incidence_types,
        absence_requests=absence_requests,
        events=events,
        absence_service=absence_service,
    )


def build_container(*, db_config: dict, max_list_limit: int = MAX_LIST_LIMIT) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    return wire_container(
        employees=MySQLEmployeeDirectory(conn),
        incidence_types=MySQLIncidenceTypeCatalog(conn),
        absence_requests=MySQLAbsenceRequestRepository(conn),
        max_list_limit=max_list_limit,
    )
