from __future__ import annotations

import pytest

from src.hr_workflow.hr_workflow.authority.actor import ActorContext
from src.hr_workflow.hr_workflow.authority.resolver import RoleAuthorityResolver
from src.hr_workflow.hr_workflow.core.enums import ApprovalStage, Role

S = ApprovalStage


@pytest.mark.parametrize(
    "roles,expected",
    [
        (["supervisor"], {S.SUPERVISOR}),
        (["manager"], {S.MANAGER}),
        (["hr"], {S.HR}),
        (["payroll_staff"], {S.PAYROLL}),
        (["sup_and_gm"], {S.SUPERVISOR, S.MANAGER}),
        (["hr_and_pr"], {S.HR, S.PAYROLL}),
        (["admin"], {S.SUPERVISOR, S.MANAGER, S.HR, S.PAYROLL}),
        (["employee"], set()),
        (["accountant"], set()),
        (["viewer"], set()),
    ],
)
def test_authorized_stages_per_role(roles, expected):
    assert RoleAuthorityResolver().authorized_stages(roles) == frozenset(expected)


def test_authorized_stages_is_union_of_roles():
    resolver = RoleAuthorityResolver()
    assert resolver.authorized_stages(["supervisor", "payroll_staff"]) == {S.SUPERVISOR, S.PAYROLL}


def test_unknown_roles_fail_closed():
    resolver = RoleAuthorityResolver()
    assert resolver.authorized_stages(["superuser", "", None]) == frozenset()
    assert not resolver.can_decide(["superuser"], S.SUPERVISOR)
    assert not resolver.has_any_authority(["superuser"])


def test_roles_are_matched_case_insensitively():
    assert RoleAuthorityResolver().authorized_stages(["HR"]) == {S.HR}


def test_completed_is_never_decidable():
    assert not RoleAuthorityResolver().can_decide(["admin"], S.COMPLETED)


def test_on_behalf_roles():
    resolver = RoleAuthorityResolver()
    assert resolver.can_act_on_behalf([Role.ADMIN])
    assert resolver.can_act_on_behalf(["hr"])
    assert resolver.can_act_on_behalf(["hr_and_pr"])
    assert not resolver.can_act_on_behalf(["supervisor", "manager", "payroll_staff"])
    assert resolver.is_admin(["admin"])
    assert not resolver.is_admin(["hr"])


def test_actor_from_session_accepts_roles_list_or_single_role():
    assert ActorContext.from_session({}) is None
    from_list = ActorContext.from_session({"user_id": "6", "roles": ["sup_and_gm", "bogus"]})
    assert from_list == ActorContext(user_id=6, roles=(Role.SUP_AND_GM,))
    from_single = ActorContext.from_session({"user_id": 4, "role": "hr"})
    assert from_single.roles == (Role.HR,)
    from_csv = ActorContext.from_session({"user_id": 1, "roles": "hr,admin"})
    assert set(from_csv.roles) == {Role.HR, Role.ADMIN}


def test_actor_from_session_with_unreadable_user_id_is_anonymous():
    assert ActorContext.from_session({"user_id": "abc", "role": "admin"}) is None
    assert ActorContext.from_session({"user_id": None, "role": "admin"}) is None
