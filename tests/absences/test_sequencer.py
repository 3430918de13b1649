from __future__ import annotations

import pytest

from src.hr_workflow.hr_workflow.absences.sequencer import StageSequencer
from src.hr_workflow.hr_workflow.core.enums import ApprovalStage

S = ApprovalStage


def test_stage_order_with_and_without_payroll():
    seq = StageSequencer()
    assert seq.stage_order(False) == (S.SUPERVISOR, S.MANAGER, S.HR, S.COMPLETED)
    assert seq.stage_order(True) == (S.SUPERVISOR, S.MANAGER, S.HR, S.PAYROLL, S.COMPLETED)
    assert seq.first_stage(True) == S.SUPERVISOR


def test_single_stage_authority_moves_one_step():
    adv = StageSequencer().advance(S.SUPERVISOR, False, {S.SUPERVISOR})
    assert adv.decided_stages == (S.SUPERVISOR,)
    assert adv.next_stage == S.MANAGER
    assert not adv.is_completed


def test_contiguous_authority_clears_the_whole_run():
    adv = StageSequencer().advance(S.SUPERVISOR, False, {S.SUPERVISOR, S.MANAGER})
    assert adv.decided_stages == (S.SUPERVISOR, S.MANAGER)
    assert adv.next_stage == S.HR


def test_hr_without_payroll_completes():
    adv = StageSequencer().advance(S.HR, False, {S.HR, S.PAYROLL})
    assert adv.decided_stages == (S.HR,)
    assert adv.is_completed


def test_hr_and_payroll_clears_both_when_payroll_required():
    adv = StageSequencer().advance(S.HR, True, {S.HR, S.PAYROLL})
    assert adv.decided_stages == (S.HR, S.PAYROLL)
    assert adv.next_stage == S.COMPLETED


def test_admin_goes_straight_to_completed():
    all_stages = {S.SUPERVISOR, S.MANAGER, S.HR, S.PAYROLL}
    adv = StageSequencer().advance(S.SUPERVISOR, True, all_stages)
    assert adv.decided_stages == (S.SUPERVISOR, S.MANAGER, S.HR, S.PAYROLL)
    assert adv.is_completed


def test_gap_in_authority_stops_advance():
    adv = StageSequencer().advance(S.SUPERVISOR, True, {S.SUPERVISOR, S.HR})
    assert adv.next_stage == S.MANAGER


def test_next_stage_never_moves_backward():
    seq = StageSequencer()
    for requires_payroll in (False, True):
        order = seq.stage_order(requires_payroll)
        for stage in order[:-1]:
            nxt = seq.next_stage(stage, requires_payroll, set(order))
            assert order.index(nxt) > order.index(stage)


def test_completed_and_unlisted_stages_have_no_follower():
    seq = StageSequencer()
    with pytest.raises(ValueError):
        seq.following_stage(S.COMPLETED, True)
    with pytest.raises(ValueError):
        seq.following_stage(S.PAYROLL, False)
