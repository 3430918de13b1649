from __future__ import annotations

import math
from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import parse_iso_date
from ..core.exceptions import ValidationError
from .model import FormField


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _check_number(form_field: FormField, value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{form_field.label} must be a number", details={"field": form_field.name})
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{form_field.label} must be a number", details={"field": form_field.name})
    if not math.isfinite(number):
        raise ValidationError(f"{form_field.label} must be a number", details={"field": form_field.name})
    if form_field.min is not None and number < form_field.min:
        raise ValidationError(f"{form_field.label} must be at least {form_field.min:g}", details={"field": form_field.name})
    if form_field.max is not None and number > form_field.max:
        raise ValidationError(f"{form_field.label} must be at most {form_field.max:g}", details={"field": form_field.name})
    return number


def _check_value(form_field: FormField, value: Any) -> Any:
    kind = form_field.type
    if kind == "number":
        return _check_number(form_field, value)
    if kind == "boolean":
        if not isinstance(value, bool):
            raise ValidationError(f"{form_field.label} must be true or false", details={"field": form_field.name})
        return value
    if kind == "date":
        try:
            parse_iso_date(str(value).strip())
        except ValueError:
            raise ValidationError(f"{form_field.label} must be a date (YYYY-MM-DD)", details={"field": form_field.name})
        return str(value).strip()
    if kind == "select":
        if form_field.options and str(value) not in form_field.options:
            raise ValidationError(
                f"{form_field.label} must be one of: {', '.join(form_field.options)}",
                details={"field": form_field.name},
            )
        return str(value)
    if kind == "multiselect":
        if not isinstance(value, (list, tuple)):
            raise ValidationError(f"{form_field.label} must be a list", details={"field": form_field.name})
        picked = [str(v) for v in value]
        invalid = [v for v in picked if form_field.options and v not in form_field.options]
        if invalid:
            raise ValidationError(
                f"{form_field.label} has invalid options: {', '.join(invalid)}",
                details={"field": form_field.name},
            )
        return picked
    # text, textarea, time, shift_select
    return value if not isinstance(value, str) else value.strip()


def validate_custom_fields(
    form_fields: Sequence[FormField],
    values: Optional[Mapping[str, Any]],
) -> dict[str, Any]:
    """Check submitted custom values against an incidence type's form schema.

    Returns the normalized values. Blank optional fields are dropped.
    """

    if values is None:
        values = {}
    if not isinstance(values, Mapping):
        raise ValidationError("custom_fields must be an object")
    known = {f.name: f for f in form_fields}

    unknown = sorted(set(values) - set(known))
    if unknown:
        raise ValidationError(
            f"Unknown custom fields: {', '.join(unknown)}",
            details={"fields": unknown},
        )

    cleaned: dict[str, Any] = {}
    for form_field in sorted(form_fields, key=lambda f: f.display_order):
        value = values.get(form_field.name)
        if _is_blank(value):
            if form_field.required:
                raise ValidationError(f"{form_field.label} is required", details={"field": form_field.name})
            continue
        cleaned[form_field.name] = _check_value(form_field, value)
    return cleaned
