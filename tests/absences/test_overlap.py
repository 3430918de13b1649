from __future__ import annotations

from datetime import date

from src.hr_workflow.hr_workflow.absences.overlap import OverlapDetector, intervals_overlap
from src.hr_workflow.hr_workflow.core.enums import IncidenceStatus
from src.hr_workflow.hr_workflow.incidences.model import Incidence

from conftest import EMPLOYEE_ID, OTHER_EMPLOYEE_ID, SICK_TYPE_ID


def _incidence(incidence_id, start, end, status=IncidenceStatus.APPROVED, employee_id=EMPLOYEE_ID, request_id=None):
    return Incidence(
        incidence_id=incidence_id,
        employee_id=employee_id,
        incidence_type_id=SICK_TYPE_ID,
        start_date=start,
        end_date=end,
        quantity=1,
        status=status,
        absence_request_id=request_id,
    )


def test_closed_intervals_sharing_one_day_overlap():
    assert intervals_overlap(date(2026, 3, 1), date(2026, 3, 5), date(2026, 3, 5), date(2026, 3, 9))
    assert intervals_overlap(date(2026, 3, 5), date(2026, 3, 5), date(2026, 3, 1), date(2026, 3, 9))
    assert not intervals_overlap(date(2026, 3, 1), date(2026, 3, 4), date(2026, 3, 5), date(2026, 3, 9))


def test_finds_requests_and_incidences(repo, file_request):
    rid = file_request(start_date=date(2026, 3, 2), end_date=date(2026, 3, 6))
    repo.add_incidence(_incidence(1, date(2026, 3, 10), date(2026, 3, 10)))
    repo.add_incidence(_incidence(2, date(2026, 3, 6), date(2026, 3, 6), status=IncidenceStatus.REJECTED))
    repo.add_incidence(_incidence(3, date(2026, 3, 6), date(2026, 3, 6), employee_id=OTHER_EMPLOYEE_ID))

    with repo.unit_of_work() as store:
        result = OverlapDetector().find_overlaps(
            store, employee_id=EMPLOYEE_ID, start_date=date(2026, 3, 6), end_date=date(2026, 3, 10)
        )

    assert result.has_overlap
    assert [r.request_id for r in result.overlapping_requests] == [rid]
    assert [i.incidence_id for i in result.overlapping_incidences] == [1]
    body = result.to_dict()
    assert body["has_overlap"] is True
    assert body["overlapping_requests"][0]["start_date"] == "2026-03-02"


def test_exclude_request_drops_it_and_its_incidences(repo, file_request):
    rid = file_request()
    repo.add_incidence(_incidence(1, date(2026, 3, 3), date(2026, 3, 3), request_id=rid))

    with repo.unit_of_work() as store:
        result = OverlapDetector().find_overlaps(
            store,
            employee_id=EMPLOYEE_ID,
            start_date=date(2026, 3, 1),
            end_date=date(2026, 3, 31),
            exclude_request_id=rid,
        )

    assert not result.has_overlap


def test_declined_and_archived_requests_do_not_block(repo, service, actors, file_request):
    declined = file_request(start_date=date(2026, 4, 1), end_date=date(2026, 4, 2))
    service.decide(actor=actors["supervisor"], request_id=declined, stage="SUPERVISOR", action="DECLINED")

    approved = file_request(start_date=date(2026, 5, 4), end_date=date(2026, 5, 4))
    service.decide(actor=actors["admin"], request_id=approved, stage="SUPERVISOR", action="APPROVED")
    service.archive(actor=actors["employee"], request_id=approved)

    with repo.unit_of_work() as store:
        detector = OverlapDetector()
        april = detector.find_overlaps(store, employee_id=EMPLOYEE_ID, start_date=date(2026, 4, 1), end_date=date(2026, 4, 30))
        may = detector.find_overlaps(store, employee_id=EMPLOYEE_ID, start_date=date(2026, 5, 1), end_date=date(2026, 5, 31))

    assert not april.has_overlap
    assert not may.has_overlap
