from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from ..authority.actor import ActorContext
from ..authority.resolver import DECIDABLE_STAGES, RoleAuthorityResolver
from ..common.datetime_utils import inclusive_days, now_local
from ..common.validators import (
    optional_number,
    optional_positive_int,
    require_date,
    require_enum,
    require_non_empty,
    require_positive_int,
)
from ..core.constants import MAX_LIST_LIMIT
from ..core.enums import ApprovalAction, ApprovalStage, IncidenceEffect, RequestStatus, RequestType
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..employees.repository import EmployeeDirectory
from ..incidences.custom_fields import validate_custom_fields
from ..incidences.model import IncidenceType, default_effect
from ..incidences.repository import IncidenceTypeCatalog
from .events import EventBus, RequestCreated, RequestDecided, StageAdvanced
from .model import AbsenceRequest, ApprovalHistory, NewAbsenceRequest, RequestDetails, RequestFilter
from .overlap import OverlapDetector, OverlapResult
from .repository import AbsenceRequestRepository
from .sequencer import StageSequencer

logger = logging.getLogger(__name__)


class AbsenceRequestService:
    """Absence request lifecycle: filing, staged approval, archival and removal.

    Every write runs in one store transaction. Events go out only after it commits.
    """

    def __init__(
        self,
        requests: AbsenceRequestRepository,
        employees: EmployeeDirectory,
        incidence_types: IncidenceTypeCatalog,
        *,
        resolver: RoleAuthorityResolver,
        sequencer: StageSequencer,
        overlap_detector: OverlapDetector,
        events: EventBus,
        clock: Callable[[], datetime] = now_local,
        max_list_limit: int = MAX_LIST_LIMIT,
    ):
        self._requests = requests
        self._employees = employees
        self._incidence_types = incidence_types
        self._resolver = resolver
        self._sequencer = sequencer
        self._overlaps = overlap_detector
        self._events = events
        self._clock = clock
        self._list_limit = max(1, min(int(max_list_limit), MAX_LIST_LIMIT))

    # ---------- helpers ----------
    def _is_owner(self, actor: ActorContext, req: AbsenceRequest) -> bool:
        return actor.user_id in (req.employee_id, req.created_by)

    def _resolve_incidence_type(self, incidence_type_id: Any) -> Optional[IncidenceType]:
        type_id = optional_positive_int(incidence_type_id, "incidence_type_id")
        if type_id is None:
            return None
        itype = self._incidence_types.get_by_id(type_id)
        if not itype:
            raise ValidationError("Incidence type not found", details={"incidence_type_id": type_id})
        if not itype.is_requestable:
            raise ValidationError("Incidence type cannot be requested", details={"incidence_type_id": type_id})
        return itype

    @staticmethod
    def _resolve_total_days(total_days: Any, span: int) -> float:
        value = optional_number(total_days, "total_days")
        if value is None:
            return float(span)
        if value < 0 or value > span:
            raise ValidationError(
                f"total_days must be between 0 and {span}",
                details={"total_days": value, "calendar_days": span},
            )
        return value

    # ---------- writes ----------
    def create(
        self,
        *,
        actor: ActorContext,
        employee_id: Any,
        start_date: Any,
        end_date: Any,
        reason: str,
        request_type: Any = None,
        incidence_type_id: Any = None,
        total_days: Any = None,
        details: Union[RequestDetails, Mapping[str, Any], None] = None,
        custom_fields: Optional[Mapping[str, Any]] = None,
    ) -> AbsenceRequest:
        employee_id = require_positive_int(employee_id, "employee_id")
        if actor.user_id != employee_id and not self._resolver.can_act_on_behalf(actor.roles):
            raise AuthorizationError("You can only file requests for yourself")

        start = require_date(start_date, "start_date")
        end = require_date(end_date, "end_date")
        if end < start:
            raise ValidationError("end_date must be on or after start_date")
        reason = require_non_empty(reason, "reason")

        itype = self._resolve_incidence_type(incidence_type_id)
        if request_type is None or request_type == "":
            if itype is None:
                raise ValidationError("request_type or incidence_type_id is required")
            rtype = RequestType.OTHER
        else:
            rtype = require_enum(RequestType, request_type, "request_type")

        days = self._resolve_total_days(total_days, inclusive_days(start, end))
        extra = details if isinstance(details, RequestDetails) else RequestDetails.from_dict(details)
        extra.validate(request_type=rtype, total_days=days)

        if itype is None:
            if custom_fields:
                raise ValidationError("custom_fields require an incidence type")
            cleaned_fields = None
        else:
            cleaned_fields = validate_custom_fields(itype.form_fields, custom_fields) or None

        effect = itype.effect if itype else default_effect(rtype)
        requires_payroll = effect != IncidenceEffect.NEUTRAL

        employee = self._employees.get_by_id(employee_id)
        if not employee:
            raise NotFoundError("Employee not found", details={"employee_id": employee_id})
        if not employee.is_active:
            raise ValidationError("Employee is not active", details={"employee_id": employee_id})
        if employee.supervisor_id is None:
            raise ValidationError("Employee has no supervisor assigned", details={"employee_id": employee_id})

        now = self._clock()
        first_stage = self._sequencer.first_stage(requires_payroll)
        draft = NewAbsenceRequest(
            employee_id=employee_id,
            request_type=rtype,
            incidence_type_id=itype.incidence_type_id if itype else None,
            start_date=start,
            end_date=end,
            total_days=days,
            reason=reason,
            status=RequestStatus.PENDING,
            current_approval_stage=first_stage,
            requires_payroll=requires_payroll,
            details=extra,
            custom_fields=cleaned_fields,
            created_by=actor.user_id,
            created_at=now,
        )

        with self._requests.unit_of_work() as store:
            if not store.lock_employee(employee_id):
                raise NotFoundError("Employee not found", details={"employee_id": employee_id})
            overlap = self._overlaps.find_overlaps(
                store, employee_id=employee_id, start_date=start, end_date=end
            )
            if overlap.has_overlap:
                raise ConflictError("The requested dates overlap existing absences", details=overlap.to_dict())
            request_id = store.insert_request(draft)
            created = store.get_request(request_id)

        logger.info(
            "absence request %s created for employee %s by %s (%s, %s..%s, payroll=%s)",
            request_id, employee_id, actor.user_id, rtype.value, start, end, requires_payroll,
        )
        self._events.publish(
            RequestCreated(
                request_id=request_id,
                employee_id=employee_id,
                created_by=actor.user_id,
                first_stage=first_stage,
            )
        )
        return created

    def decide(
        self,
        *,
        actor: ActorContext,
        request_id: Any,
        stage: Any,
        action: Any,
        comments: Optional[str] = None,
    ) -> AbsenceRequest:
        request_id = require_positive_int(request_id, "request_id")
        stage = require_enum(ApprovalStage, stage, "stage")
        if stage == ApprovalStage.COMPLETED:
            raise ValidationError("stage must be one of: " + ", ".join(s.value for s in DECIDABLE_STAGES))
        action = require_enum(ApprovalAction, action, "action")
        comments = (comments or "").strip() or None
        authorized = self._resolver.authorized_stages(actor.roles)

        with self._requests.unit_of_work() as store:
            req = store.get_request(request_id, for_update=True)
            if not req:
                raise NotFoundError("Absence request not found", details={"request_id": request_id})
            if req.is_archived or req.status != RequestStatus.PENDING:
                raise ConflictError(
                    "Absence request has already been decided",
                    details={"status": req.status.value, "is_archived": req.is_archived},
                )
            if stage != req.current_approval_stage:
                raise AuthorizationError(
                    "Absence request is not at this approval stage",
                    details={"current_stage": req.current_approval_stage.value, "stage": stage.value},
                )
            if not self._resolver.can_decide(actor.roles, stage):
                raise AuthorizationError(
                    f"Your role cannot decide the {stage.value} stage",
                    details={"stage": stage.value},
                )

            if action == ApprovalAction.DECLINED:
                decided_stages: tuple[ApprovalStage, ...] = (stage,)
                new_stage = stage
                new_status = RequestStatus.DECLINED
            else:
                advance = self._sequencer.advance(stage, req.requires_payroll, authorized)
                decided_stages = advance.decided_stages
                new_stage = advance.next_stage
                new_status = RequestStatus.APPROVED if advance.is_completed else RequestStatus.PENDING

            now = self._clock()
            moved = store.compare_and_set_state(
                request_id=request_id,
                expected_status=req.status,
                expected_stage=req.current_approval_stage,
                new_status=new_status,
                new_stage=new_stage,
                updated_at=now,
            )
            if not moved:
                raise ConflictError("Absence request was changed by someone else", details={"request_id": request_id})
            for decided in decided_stages:
                store.insert_history(
                    request_id=request_id,
                    approver_id=actor.user_id,
                    stage=decided,
                    action=action,
                    comments=comments,
                    created_at=now,
                )

        logger.info(
            "absence request %s %s by %s at %s -> %s@%s",
            request_id, action.value, actor.user_id,
            ",".join(s.value for s in decided_stages), new_status.value, new_stage.value,
        )
        if action == ApprovalAction.APPROVED:
            self._events.publish(
                StageAdvanced(
                    request_id=request_id,
                    actor_id=actor.user_id,
                    decided_stages=decided_stages,
                    next_stage=new_stage,
                )
            )
        if new_status != RequestStatus.PENDING:
            self._events.publish(
                RequestDecided(
                    request_id=request_id,
                    actor_id=actor.user_id,
                    status=new_status,
                    stage=stage if action == ApprovalAction.DECLINED else decided_stages[-1],
                    comments=comments,
                )
            )
        return replace(req, status=new_status, current_approval_stage=new_stage, updated_at=now)

    def archive(self, *, actor: ActorContext, request_id: Any) -> None:
        request_id = require_positive_int(request_id, "request_id")
        with self._requests.unit_of_work() as store:
            req = store.get_request(request_id, for_update=True)
            if not req:
                raise NotFoundError("Absence request not found", details={"request_id": request_id})
            if not self._is_owner(actor, req) and not self._resolver.is_admin(actor.roles):
                raise AuthorizationError("Only the owner or an admin can archive this request")
            if req.is_archived:
                return
            if not req.is_terminal:
                raise ConflictError(
                    "Only approved or declined requests can be archived",
                    details={"status": req.status.value},
                )
            store.mark_archived(request_id=request_id, archived_by=actor.user_id, archived_at=self._clock())
        logger.info("absence request %s archived by %s", request_id, actor.user_id)

    def delete(self, *, actor: ActorContext, request_id: Any) -> None:
        request_id = require_positive_int(request_id, "request_id")
        with self._requests.unit_of_work() as store:
            req = store.get_request(request_id, for_update=True)
            if not req:
                raise NotFoundError("Absence request not found", details={"request_id": request_id})
            if not self._is_owner(actor, req) and not self._resolver.is_admin(actor.roles):
                raise AuthorizationError("Only the owner or an admin can delete this request")
            if req.status != RequestStatus.PENDING or req.is_archived:
                raise ConflictError("Only pending requests can be deleted", details={"status": req.status.value})
            if store.count_history(request_id) > 0:
                raise ConflictError("Requests with recorded decisions cannot be deleted")
            store.delete_request(request_id)
        logger.info("absence request %s deleted by %s", request_id, actor.user_id)

    # ---------- reads ----------
    def list_pending_for_stage(self, *, actor: ActorContext, stage: Any = None) -> Sequence[AbsenceRequest]:
        authorized = self._resolver.authorized_stages(actor.roles)
        if stage is None or stage == "":
            stages = tuple(s for s in DECIDABLE_STAGES if s in authorized)
            if not stages:
                return []
        else:
            wanted = require_enum(ApprovalStage, stage, "stage")
            if wanted not in authorized:
                raise AuthorizationError(
                    f"Your role cannot review the {wanted.value} stage",
                    details={"stage": wanted.value},
                )
            stages = (wanted,)
        return self._requests.list_requests(
            RequestFilter(statuses=(RequestStatus.PENDING,), stages=stages, limit=self._list_limit)
        )

    def list_my_requests(self, *, actor: ActorContext, include_archived: bool = False) -> Sequence[AbsenceRequest]:
        return self._requests.list_requests(
            RequestFilter(employee_id=actor.user_id, include_archived=include_archived, limit=self._list_limit)
        )

    def get_request(self, *, actor: ActorContext, request_id: Any) -> tuple[AbsenceRequest, Sequence[ApprovalHistory]]:
        request_id = require_positive_int(request_id, "request_id")
        with self._requests.unit_of_work() as store:
            req = store.get_request(request_id)
            if not req:
                raise NotFoundError("Absence request not found", details={"request_id": request_id})
            visible = (
                self._is_owner(actor, req)
                or self._resolver.can_act_on_behalf(actor.roles)
                or self._resolver.has_any_authority(actor.roles)
            )
            if not visible:
                raise AuthorizationError("You cannot view this request")
            history = store.list_history(request_id)
        return req, history

    def find_overlaps(
        self,
        *,
        actor: ActorContext,
        start_date: Any,
        end_date: Any,
        employee_id: Any = None,
        exclude_request_id: Any = None,
    ) -> OverlapResult:
        target = optional_positive_int(employee_id, "employee_id") or actor.user_id
        if target != actor.user_id and not self._resolver.can_act_on_behalf(actor.roles):
            raise AuthorizationError("You can only check your own absences")
        start = require_date(start_date, "start_date")
        end = require_date(end_date, "end_date")
        if end < start:
            raise ValidationError("end_date must be on or after start_date")
        exclude = optional_positive_int(exclude_request_id, "exclude_request_id")
        with self._requests.unit_of_work() as store:
            return self._overlaps.find_overlaps(
                store,
                employee_id=target,
                start_date=start,
                end_date=end,
                exclude_request_id=exclude,
            )

    def pending_counts(self, *, actor: ActorContext) -> dict[str, int]:
        authorized = self._resolver.authorized_stages(actor.roles)
        counts = self._requests.count_pending_by_stage() if authorized else {}
        return {
            stage.value.lower(): (counts.get(stage, 0) if stage in authorized else 0)
            for stage in DECIDABLE_STAGES
        }

    def list_approved(self, *, actor: ActorContext, request_filter: RequestFilter) -> Sequence[AbsenceRequest]:
        if not (self._resolver.can_act_on_behalf(actor.roles) or self._resolver.has_any_authority(actor.roles)):
            raise AuthorizationError("You cannot list approved requests")
        f = replace(
            request_filter,
            statuses=(RequestStatus.APPROVED,),
            limit=min(request_filter.limit, self._list_limit),
        )
        return self._requests.list_requests(f)
