from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..common.datetime_utils import fmt_date, fmt_datetime
from ..common.validators import optional_number, optional_positive_int
from ..core.constants import DEFAULT_LIST_LIMIT, MAX_HOURS_PER_DAY, MAX_LIST_LIMIT
from ..core.enums import ApprovalAction, ApprovalStage, RequestStatus, RequestType
from ..core.exceptions import ValidationError
from ..incidences.model import category_for

TERMINAL_STATUSES = frozenset({RequestStatus.APPROVED, RequestStatus.DECLINED})
ACTIVE_STATUSES = (RequestStatus.PENDING, RequestStatus.APPROVED)


@dataclass(frozen=True)
class RequestDetails:
    """Optional structured data attached to a request."""

    hours_per_day: Optional[float] = None
    paid_days: Optional[float] = None
    unpaid_days: Optional[float] = None
    unpaid_comments: Optional[str] = None
    shift_details: Optional[str] = None
    new_shift_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "RequestDetails":
        data = data or {}
        return cls(
            hours_per_day=optional_number(data.get("hours_per_day"), "hours_per_day"),
            paid_days=optional_number(data.get("paid_days"), "paid_days"),
            unpaid_days=optional_number(data.get("unpaid_days"), "unpaid_days"),
            unpaid_comments=(str(data["unpaid_comments"]).strip() or None) if data.get("unpaid_comments") else None,
            shift_details=(str(data["shift_details"]).strip() or None) if data.get("shift_details") else None,
            new_shift_id=optional_positive_int(data.get("new_shift_id"), "new_shift_id"),
        )

    def validate(self, *, request_type: RequestType, total_days: float) -> None:
        if self.hours_per_day is not None and not (0 < self.hours_per_day <= MAX_HOURS_PER_DAY):
            raise ValidationError(f"hours_per_day must be greater than 0 and at most {MAX_HOURS_PER_DAY}")
        for name in ("paid_days", "unpaid_days"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValidationError(f"{name} cannot be negative")
        split = (self.paid_days or 0) + (self.unpaid_days or 0)
        if split > total_days:
            raise ValidationError(
                "paid_days plus unpaid_days cannot exceed total_days",
                details={"paid_days": self.paid_days, "unpaid_days": self.unpaid_days, "total_days": total_days},
            )
        if request_type == RequestType.SHIFT_CHANGE and not (self.new_shift_id or self.shift_details):
            raise ValidationError("A shift change needs new_shift_id or shift_details")

    def to_dict(self) -> dict:
        return {
            "hours_per_day": self.hours_per_day,
            "paid_days": self.paid_days,
            "unpaid_days": self.unpaid_days,
            "unpaid_comments": self.unpaid_comments,
            "shift_details": self.shift_details,
            "new_shift_id": self.new_shift_id,
        }


@dataclass(frozen=True)
class NewAbsenceRequest:
    """A validated request ready to be inserted."""

    employee_id: int
    request_type: RequestType
    incidence_type_id: Optional[int]
    start_date: date
    end_date: date
    total_days: float
    reason: str
    status: RequestStatus
    current_approval_stage: ApprovalStage
    requires_payroll: bool
    details: RequestDetails
    custom_fields: Optional[dict]
    created_by: int
    created_at: datetime


@dataclass(frozen=True)
class AbsenceRequest:
    request_id: int
    employee_id: int
    request_type: RequestType
    incidence_type_id: Optional[int]
    start_date: date
    end_date: date
    total_days: float
    reason: str
    status: RequestStatus
    current_approval_stage: ApprovalStage
    requires_payroll: bool
    created_by: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    details: RequestDetails = field(default_factory=RequestDetails)
    custom_fields: Optional[dict] = None
    is_archived: bool = False
    archived_at: Optional[datetime] = None
    archived_by: Optional[int] = None
    employee_name: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "request_type": self.request_type.value,
            "category": category_for(self.request_type).value,
            "incidence_type_id": self.incidence_type_id,
            "start_date": fmt_date(self.start_date),
            "end_date": fmt_date(self.end_date),
            "total_days": self.total_days,
            "reason": self.reason,
            "status": self.status.value,
            "current_approval_stage": self.current_approval_stage.value,
            "requires_payroll": self.requires_payroll,
            "details": self.details.to_dict(),
            "custom_fields": self.custom_fields,
            "is_archived": self.is_archived,
            "archived_at": fmt_datetime(self.archived_at),
            "archived_by": self.archived_by,
            "created_by": self.created_by,
            "created_at": fmt_datetime(self.created_at),
            "updated_at": fmt_datetime(self.updated_at),
        }


@dataclass(frozen=True)
class ApprovalHistory:
    history_id: int
    request_id: int
    approver_id: int
    approval_stage: ApprovalStage
    action: ApprovalAction
    comments: Optional[str]
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "history_id": self.history_id,
            "request_id": self.request_id,
            "approver_id": self.approver_id,
            "approval_stage": self.approval_stage.value,
            "action": self.action.value,
            "comments": self.comments,
            "created_at": fmt_datetime(self.created_at),
        }


@dataclass(frozen=True)
class RequestFilter:
    employee_id: Optional[int] = None
    statuses: tuple[RequestStatus, ...] = ()
    stages: tuple[ApprovalStage, ...] = ()
    request_type: Optional[RequestType] = None
    starts_on_or_after: Optional[date] = None
    ends_on_or_before: Optional[date] = None
    include_archived: bool = False
    limit: int = DEFAULT_LIST_LIMIT

    def __post_init__(self):
        if not 1 <= int(self.limit) <= MAX_LIST_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_LIST_LIMIT}")
        if self.starts_on_or_after and self.ends_on_or_before and self.ends_on_or_before < self.starts_on_or_after:
            raise ValidationError("end_date must be on or after start_date")

