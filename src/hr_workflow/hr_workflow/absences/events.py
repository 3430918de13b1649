from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Optional

from ..core.enums import ApprovalStage, RequestStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestCreated:
    request_id: int
    employee_id: int
    created_by: int
    first_stage: ApprovalStage


@dataclass(frozen=True)
class StageAdvanced:
    request_id: int
    actor_id: int
    decided_stages: tuple[ApprovalStage, ...]
    next_stage: ApprovalStage


@dataclass(frozen=True)
class RequestDecided:
    request_id: int
    actor_id: int
    status: RequestStatus
    stage: ApprovalStage
    comments: Optional[str] = None


Handler = Callable[[object], None]


class EventBus:
    """In-process publish/subscribe. Handlers run synchronously after the write commits."""

    def __init__(self):
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    def publish(self, event: object) -> None:
        for handler in list(self._handlers.get(type(event), ())):
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler %r failed for %s", handler, type(event).__name__)


def log_workflow_event(event: object) -> None:
    logger.info("workflow event %s", event)
