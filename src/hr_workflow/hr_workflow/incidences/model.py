from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from ..common.datetime_utils import fmt_date
from ..core.enums import IncidenceCategory, IncidenceEffect, IncidenceStatus, RequestType


@dataclass(frozen=True)
class FormField:
    """One custom field an incidence type asks for when it is requested."""

    name: str
    type: str
    label: str
    required: bool = False
    min: Optional[float] = None
    max: Optional[float] = None
    options: tuple[str, ...] = ()
    display_order: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "FormField":
        options = []
        for opt in data.get("options") or ():
            options.append(str(opt["value"]) if isinstance(opt, dict) else str(opt))
        return cls(
            name=str(data["name"]),
            type=str(data.get("type", "text")),
            label=str(data.get("label") or data["name"]),
            required=bool(data.get("required", False)),
            min=float(data["min"]) if data.get("min") is not None else None,
            max=float(data["max"]) if data.get("max") is not None else None,
            options=tuple(options),
            display_order=int(data.get("display_order", 0)),
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.type,
            "label": self.label,
            "required": self.required,
            "min": self.min,
            "max": self.max,
            "options": list(self.options),
            "display_order": self.display_order,
        }


@dataclass(frozen=True)
class IncidenceType:
    incidence_type_id: int
    name: str
    category: IncidenceCategory
    effect: IncidenceEffect
    is_requestable: bool = False
    form_fields: tuple[FormField, ...] = field(default_factory=tuple)
    display_order: int = 0

    @property
    def requires_payroll_stage(self) -> bool:
        return self.effect != IncidenceEffect.NEUTRAL

    def to_dict(self) -> dict:
        return {
            "incidence_type_id": self.incidence_type_id,
            "name": self.name,
            "category": self.category.value,
            "effect": self.effect.value,
            "requires_payroll_stage": self.requires_payroll_stage,
            "is_requestable": self.is_requestable,
            "form_fields": [f.to_dict() for f in sorted(self.form_fields, key=lambda f: f.display_order)],
        }


@dataclass(frozen=True)
class Incidence:
    """A recorded pay-affecting event; only its dates and status matter to the workflow."""

    incidence_id: int
    employee_id: int
    incidence_type_id: int
    start_date: date
    end_date: date
    quantity: float
    status: IncidenceStatus
    absence_request_id: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "incidence_id": self.incidence_id,
            "employee_id": self.employee_id,
            "incidence_type_id": self.incidence_type_id,
            "start_date": fmt_date(self.start_date),
            "end_date": fmt_date(self.end_date),
            "quantity": self.quantity,
            "status": self.status.value,
            "absence_request_id": self.absence_request_id,
        }


# Only unpaid leave deducts pay when a request carries no linked incidence type.
_DEFAULT_EFFECTS = {
    RequestType.UNPAID_LEAVE: IncidenceEffect.NEGATIVE,
}

_CATEGORIES = {
    RequestType.VACATION: IncidenceCategory.VACATION,
    RequestType.SICK_LEAVE: IncidenceCategory.SICK,
    RequestType.PAID_LEAVE: IncidenceCategory.ABSENCE,
    RequestType.UNPAID_LEAVE: IncidenceCategory.ABSENCE,
    RequestType.PERSONAL: IncidenceCategory.ABSENCE,
    RequestType.OTHER: IncidenceCategory.ABSENCE,
    RequestType.LATE_ENTRY: IncidenceCategory.DELAY,
    RequestType.EARLY_EXIT: IncidenceCategory.DELAY,
    RequestType.SHIFT_CHANGE: IncidenceCategory.OTHER,
    RequestType.TIME_FOR_TIME: IncidenceCategory.OTHER,
}


def default_effect(request_type: RequestType) -> IncidenceEffect:
    return _DEFAULT_EFFECTS.get(request_type, IncidenceEffect.NEUTRAL)


def category_for(request_type: RequestType) -> IncidenceCategory:
    return _CATEGORIES.get(request_type, IncidenceCategory.ABSENCE)
