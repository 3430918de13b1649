from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from ..core.enums import ApprovalStage, Role

DECIDABLE_STAGES = (
    ApprovalStage.SUPERVISOR,
    ApprovalStage.MANAGER,
    ApprovalStage.HR,
    ApprovalStage.PAYROLL,
)

STAGE_AUTHORITY: Mapping[Role, frozenset[ApprovalStage]] = {
    Role.SUPERVISOR: frozenset({ApprovalStage.SUPERVISOR}),
    Role.MANAGER: frozenset({ApprovalStage.MANAGER}),
    Role.HR: frozenset({ApprovalStage.HR}),
    Role.PAYROLL_STAFF: frozenset({ApprovalStage.PAYROLL}),
    Role.SUP_AND_GM: frozenset({ApprovalStage.SUPERVISOR, ApprovalStage.MANAGER}),
    Role.HR_AND_PR: frozenset({ApprovalStage.HR, ApprovalStage.PAYROLL}),
    Role.ADMIN: frozenset(DECIDABLE_STAGES),
}

# Roles allowed to file or inspect requests on behalf of another employee.
ON_BEHALF_ROLES = frozenset({Role.ADMIN, Role.HR, Role.HR_AND_PR})


def coerce_role(value) -> Optional[Role]:
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value or "").strip().lower())
    except ValueError:
        return None


def coerce_roles(values: Iterable) -> frozenset[Role]:
    roles = (coerce_role(v) for v in values or ())
    return frozenset(r for r in roles if r is not None)


@dataclass(frozen=True)
class RoleAuthorityResolver:
    """Single source of truth for "which stages may this actor decide"."""

    table: Mapping[Role, frozenset[ApprovalStage]] = field(default_factory=lambda: dict(STAGE_AUTHORITY))

    def authorized_stages(self, roles: Iterable) -> frozenset[ApprovalStage]:
        stages: set[ApprovalStage] = set()
        for role in coerce_roles(roles):
            stages |= self.table.get(role, frozenset())
        return frozenset(stages)

    def can_decide(self, roles: Iterable, stage: ApprovalStage) -> bool:
        return stage in self.authorized_stages(roles)

    def has_any_authority(self, roles: Iterable) -> bool:
        return bool(self.authorized_stages(roles))

    def is_admin(self, roles: Iterable) -> bool:
        return Role.ADMIN in coerce_roles(roles)

    def can_act_on_behalf(self, roles: Iterable) -> bool:
        return bool(coerce_roles(roles) & ON_BEHALF_ROLES)
