"""Scripted application runs for a single catalog job.

A run walks a fixed six-step script without touching any external site. A
``live`` run files the application when the script succeeds; a ``dry-run``
only reports what would happen.
"""

from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import Session

from found.agents.schemas import (
    AutomationRunRecord,
    AutomationRunRequest,
    AutomationStep,
    parse_payload,
    row_fields,
)
from found.core.clock import Clock, system_clock
from found.core.enums import (
    ActivityType,
    ApplicationSource,
    AutomationMode,
    EventSource,
    RunStatus,
    StepStatus,
)
from found.core.errors import InvalidInputError, NotFoundError
from found.core.logging import get_logger
from found.db import crud
from found.db.models import Application, Job
from found.services.activity import add_activity
from found.services.automation_bus import AutomationBus, get_automation_bus

logger = get_logger(__name__)

SCRIPT = [
    ("discover_job", "Locate target role"),
    ("profile_sync", "Prepare profile + resume context"),
    ("form_fill", "Autofill application form"),
    ("submit_application", "Submit application"),
    ("find_contacts", "Find recruiters and hiring contacts"),
    ("send_outreach", "Draft and send outreach sequence"),
]

# Live runs against a weak match stall in the form parser.
FAILING_GAP_COUNT = 2
FAILING_SCORE_BELOW = 90
FORM_PARSER_ERROR = "Required fields missing in the application form parser."


@dataclass
class AutomationOutcome:
    run: AutomationRunRecord
    application: Optional[Application] = None


def _fails_in_form_parser(job: Job) -> bool:
    return len(job.skill_gap or []) >= FAILING_GAP_COUNT and job.match_score < FAILING_SCORE_BELOW


def build_steps(job: Job, mode: AutomationMode) -> list[AutomationStep]:
    steps = {step_id: AutomationStep(id=step_id, label=label, status=StepStatus.SUCCESS) for step_id, label in SCRIPT}

    if mode == AutomationMode.DRY_RUN:
        steps["send_outreach"].status = StepStatus.SKIPPED
    elif _fails_in_form_parser(job):
        steps["form_fill"].status = StepStatus.ERROR
        steps["form_fill"].error = FORM_PARSER_ERROR
        steps["submit_application"].status = StepStatus.BLOCKED
        steps["send_outreach"].status = StepStatus.BLOCKED

    return list(steps.values())


def create_automation_run(
    db: Session,
    payload: AutomationRunRequest | dict[str, Any] | None,
    *,
    bus: AutomationBus | None = None,
    clock: Clock = system_clock,
) -> AutomationOutcome:
    request: AutomationRunRequest = parse_payload(AutomationRunRequest, payload)
    if not request.job_id:
        raise InvalidInputError("Missing required field: jobId")
    job = crud.get_job(db, request.job_id)
    if job is None:
        raise NotFoundError("Job not found")
    bus = bus or get_automation_bus()

    steps = build_steps(job, request.mode)
    run = AutomationRunRecord(
        id=crud.create_id("run"),
        mode=request.mode,
        job_id=job.id,
        company=job.company,
        role=job.title,
        created_at=clock.now().isoformat(),
        status=RunStatus.ERROR if any(step.status == StepStatus.ERROR for step in steps) else RunStatus.SUCCESS,
        steps=steps,
    )
    crud.save_automation_run(db, **row_fields(run))

    application = None
    if run.status == RunStatus.ERROR:
        add_activity(
            db,
            type=ActivityType.APPLICATION,
            title=f"Automation failed for {run.role} at {run.company}",
            icon="alertTriangle",
            clock=clock,
        )
    elif run.mode == AutomationMode.LIVE:
        application = crud.find_application(db, company=job.company, job_title=job.title)
        if application is None:
            application = crud.create_application(
                db,
                job=job,
                today=clock.today(),
                next_step="Awaiting response",
                notes="Submitted via automation run.",
                source=ApplicationSource.AUTOMATION,
                automation_run_id=run.id,
            )
            add_activity(
                db,
                type=ActivityType.APPLICATION,
                title=f"Applied to {job.title} at {job.company}",
                icon="send",
                clock=clock,
            )

    bus.publish_run(EventSource.AUTOMATION, run)
    logger.info(
        "automation_run_finished",
        extra={
            "extra": {
                "run_id": run.id,
                "mode": run.mode.value,
                "status": run.status.value,
                "application_id": application.id if application else None,
            }
        },
    )
    return AutomationOutcome(run=run, application=application)


def list_automation_runs(db: Session, limit: int | None = None) -> list[AutomationRunRecord]:
    return [AutomationRunRecord.model_validate(row) for row in crud.list_automation_runs(db, limit=limit)]
