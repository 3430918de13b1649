from __future__ import annotations

from typing import Optional, Protocol

from .model import Employee


class EmployeeDirectory(Protocol):
    """Read-only view of the employee directory."""

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        raise NotImplementedError
