from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Role identifiers as issued by the authentication layer."""

    ADMIN = "admin"
    HR = "hr"
    ACCOUNTANT = "accountant"
    PAYROLL_STAFF = "payroll_staff"
    VIEWER = "viewer"
    SUPERVISOR = "supervisor"
    MANAGER = "manager"
    EMPLOYEE = "employee"
    # Combined roles covering two adjacent stages
    HR_AND_PR = "hr_and_pr"
    SUP_AND_GM = "sup_and_gm"


class RequestType(str, Enum):
    PAID_LEAVE = "PAID_LEAVE"
    UNPAID_LEAVE = "UNPAID_LEAVE"
    VACATION = "VACATION"
    LATE_ENTRY = "LATE_ENTRY"
    EARLY_EXIT = "EARLY_EXIT"
    SHIFT_CHANGE = "SHIFT_CHANGE"
    TIME_FOR_TIME = "TIME_FOR_TIME"
    SICK_LEAVE = "SICK_LEAVE"
    PERSONAL = "PERSONAL"
    OTHER = "OTHER"


class RequestStatus(str, Enum):
    """Outcome of an absence request.

    ARCHIVED only appears on legacy rows; archival is tracked by a separate flag.
    """

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"
    ARCHIVED = "ARCHIVED"


class ApprovalStage(str, Enum):
    SUPERVISOR = "SUPERVISOR"
    MANAGER = "MANAGER"
    HR = "HR"
    PAYROLL = "PAYROLL"
    COMPLETED = "COMPLETED"


class ApprovalAction(str, Enum):
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"


class IncidenceEffect(str, Enum):
    """How an incidence type affects pay."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class IncidenceCategory(str, Enum):
    ABSENCE = "absence"
    SICK = "sick"
    VACATION = "vacation"
    OVERTIME = "overtime"
    DELAY = "delay"
    BONUS = "bonus"
    DEDUCTION = "deduction"
    OTHER = "other"


class IncidenceStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSED = "processed"
