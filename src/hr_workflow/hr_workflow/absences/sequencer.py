from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet

from ..core.enums import ApprovalStage

_BASE_ORDER = (ApprovalStage.SUPERVISOR, ApprovalStage.MANAGER, ApprovalStage.HR)


@dataclass(frozen=True)
class StageAdvance:
    decided_stages: tuple[ApprovalStage, ...]
    next_stage: ApprovalStage

    @property
    def is_completed(self) -> bool:
        return self.next_stage == ApprovalStage.COMPLETED


@dataclass
class StageSequencer:
    """Canonical stage order and forward movement through it.

    PAYROLL only belongs to the order of requests whose effect touches pay.
    An actor holding a contiguous run of stages clears the whole run in one decision,
    and every stage cleared that way is reported so it can be audited on its own.
    """

    def stage_order(self, requires_payroll: bool) -> tuple[ApprovalStage, ...]:
        order = _BASE_ORDER + ((ApprovalStage.PAYROLL,) if requires_payroll else ())
        return order + (ApprovalStage.COMPLETED,)

    def first_stage(self, requires_payroll: bool) -> ApprovalStage:
        return self.stage_order(requires_payroll)[0]

    def following_stage(self, stage: ApprovalStage, requires_payroll: bool) -> ApprovalStage:
        order = self.stage_order(requires_payroll)
        if stage not in order or stage == ApprovalStage.COMPLETED:
            raise ValueError(f"{stage.value} has no following stage in this workflow")
        return order[order.index(stage) + 1]

    def advance(
        self,
        current_stage: ApprovalStage,
        requires_payroll: bool,
        authorized_stages: AbstractSet[ApprovalStage],
    ) -> StageAdvance:
        decided = [current_stage]
        nxt = self.following_stage(current_stage, requires_payroll)
        while nxt != ApprovalStage.COMPLETED and nxt in authorized_stages:
            decided.append(nxt)
            nxt = self.following_stage(nxt, requires_payroll)
        return StageAdvance(decided_stages=tuple(decided), next_stage=nxt)

    def next_stage(
        self,
        current_stage: ApprovalStage,
        requires_payroll: bool,
        authorized_stages: AbstractSet[ApprovalStage],
    ) -> ApprovalStage:
        return self.advance(current_stage, requires_payroll, authorized_stages).next_stage
