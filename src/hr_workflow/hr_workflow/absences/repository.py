from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import ApprovalAction, ApprovalStage, RequestStatus
from ..incidences.model import Incidence
from .model import AbsenceRequest, ApprovalHistory, NewAbsenceRequest, RequestFilter


class AbsenceRequestStore(Protocol):
    """Reads and writes bound to one open transaction.

    Everything done through a store commits or rolls back together.
    """

    def lock_employee(self, employee_id: int) -> bool:
        """Lock the employee row so creates for the same employee run one at a time."""

        raise NotImplementedError

    def get_request(self, request_id: int, *, for_update: bool = False) -> Optional[AbsenceRequest]:
        raise NotImplementedError

    def find_overlapping_requests(
        self,
        *,
        employee_id: int,
        start_date: date,
        end_date: date,
        statuses: Sequence[RequestStatus],
        exclude_request_id: Optional[int] = None,
    ) -> Sequence[AbsenceRequest]:
        raise NotImplementedError

    def find_overlapping_incidences(
        self,
        *,
        employee_id: int,
        start_date: date,
        end_date: date,
        exclude_request_id: Optional[int] = None,
    ) -> Sequence[Incidence]:
        raise NotImplementedError

    def insert_request(self, draft: NewAbsenceRequest) -> int:
        raise NotImplementedError

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
        """Move the request only if it still holds the expected state. False when it does not."""

        raise NotImplementedError

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
        raise NotImplementedError

    def count_history(self, request_id: int) -> int:
        raise NotImplementedError

    def list_history(self, request_id: int) -> Sequence[ApprovalHistory]:
        raise NotImplementedError

    def mark_archived(self, *, request_id: int, archived_by: int, archived_at: datetime) -> bool:
        raise NotImplementedError

    def delete_request(self, request_id: int) -> bool:
        raise NotImplementedError


class AbsenceRequestRepository(Protocol):
    def unit_of_work(self) -> AbstractContextManager[AbsenceRequestStore]:
        raise NotImplementedError

    def list_requests(self, request_filter: RequestFilter) -> Sequence[AbsenceRequest]:
        """Newest first."""

        raise NotImplementedError

    def count_pending_by_stage(self) -> dict[ApprovalStage, int]:
        raise NotImplementedError

    def list_history(self, request_id: int) -> Sequence[ApprovalHistory]:
        raise NotImplementedError
