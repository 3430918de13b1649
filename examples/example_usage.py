"""Drive the approval workflow through the service layer, without Flask.

Needs a database prepared with scripts/init_db.py and scripts/seed_db.py.
"""

import importlib
import logging

from dotenv import load_dotenv

from config import get_settings_module

from src.hr_workflow.hr_workflow.authority.actor import ActorContext
from src.hr_workflow.hr_workflow.common.logging_config import configure_logging
from src.hr_workflow.hr_workflow.container import build_container

logger = logging.getLogger("hr_workflow.example")


def main():
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(settings)
    service = build_container(db_config=settings.DB_CONFIG).absence_service

    employee = ActorContext.of(7, "employee")
    request_id = service.create(
        actor=employee,
        employee_id=7,
        request_type="VACATION",
        start_date="2026-03-02",
        end_date="2026-03-06",
        reason="Family trip",
    ).request_id

    for user_id, role, stage in ((3, "supervisor", "SUPERVISOR"), (2, "manager", "MANAGER"), (4, "hr", "HR")):
        updated = service.decide(
            actor=ActorContext.of(user_id, role),
            request_id=request_id,
            stage=stage,
            action="APPROVED",
        )
        logger.info("after %s: %s@%s", stage, updated.status.value, updated.current_approval_stage.value)

    req, history = service.get_request(actor=employee, request_id=request_id)
    logger.info("request %s is %s with %d history rows", req.request_id, req.status.value, len(history))


if __name__ == "__main__":
    main()
