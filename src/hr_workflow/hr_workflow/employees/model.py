from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Employee:
    """Directory entry for an employee.

    Employee ids and acting user ids share one id space.
    """

    employee_id: int
    full_name: str
    email: Optional[str]
    role: str
    supervisor_id: Optional[int]
    general_manager_id: Optional[int]
    is_active: bool = True
