from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..common.datetime_utils import fmt_date
from ..incidences.model import Incidence
from .model import ACTIVE_STATUSES, AbsenceRequest
from .repository import AbsenceRequestStore


def intervals_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Closed intervals; sharing a single day counts."""
    return a_start <= b_end and a_end >= b_start


@dataclass(frozen=True)
class OverlapResult:
    overlapping_requests: tuple[AbsenceRequest, ...] = ()
    overlapping_incidences: tuple[Incidence, ...] = ()

    @property
    def has_overlap(self) -> bool:
        return bool(self.overlapping_requests or self.overlapping_incidences)

    def to_dict(self) -> dict:
        return {
            "has_overlap": self.has_overlap,
            "overlapping_requests": [
                {
                    "request_id": r.request_id,
                    "request_type": r.request_type.value,
                    "start_date": fmt_date(r.start_date),
                    "end_date": fmt_date(r.end_date),
                    "status": r.status.value,
                    "current_approval_stage": r.current_approval_stage.value,
                }
                for r in self.overlapping_requests
            ],
            "overlapping_incidences": [i.to_dict() for i in self.overlapping_incidences],
        }


class OverlapDetector:
    """Finds active requests and live incidences that share a day with a date range."""

    def find_overlaps(
        self,
        store: AbsenceRequestStore,
        *,
        employee_id: int,
        start_date: date,
        end_date: date,
        exclude_request_id: Optional[int] = None,
    ) -> OverlapResult:
        requests = store.find_overlapping_requests(
            employee_id=employee_id,
            start_date=start_date,
            end_date=end_date,
            statuses=ACTIVE_STATUSES,
            exclude_request_id=exclude_request_id,
        )
        incidences = store.find_overlapping_incidences(
            employee_id=employee_id,
            start_date=start_date,
            end_date=end_date,
            exclude_request_id=exclude_request_id,
        )
        # Stores filter in SQL already; the range check keeps the contract exact for any store.
        return OverlapResult(
            overlapping_requests=tuple(
                r for r in requests if intervals_overlap(start_date, end_date, r.start_date, r.end_date)
            ),
            overlapping_incidences=tuple(
                i for i in incidences if intervals_overlap(start_date, end_date, i.start_date, i.end_date)
            ),
        )
