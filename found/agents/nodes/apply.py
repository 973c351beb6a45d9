from typing import Callable

from found.agents.policies.guardrails import remaining_quota, should_wait_for_approval
from found.agents.schemas import AgentStep
from found.agents.state import AgentRunState
from found.core.clock import Clock
from found.core.enums import ActivityType, ApplicationSource, QuotaKind, StepKind, StepStatus
from found.db import crud
from found.services.activity import add_activity
from found.services.drafting import build_application_checklist

LABEL = "Fill application form"


def make_node(db, clock: Clock) -> Callable[[AgentRunState], AgentStep]:
    def apply_node(state: AgentRunState) -> AgentStep:
        run = state["run"]
        job = state["job"]
        approvals = state["request"].approvals
        today = clock.today()
        config = crud.get_agent_config(db)
        checklist = build_application_checklist(job)

        def step(status: StepStatus, detail: str, **extra) -> AgentStep:
            return AgentStep(
                id=StepKind.FILL_APPLICATION,
                label=LABEL,
                status=status,
                detail=detail,
                output={**checklist, **extra},
            )

        if should_wait_for_approval(run.mode, config, approvals.submit_application):
            return step(
                StepStatus.PENDING_APPROVAL,
                "Application plan ready. Waiting for explicit approval to submit.",
            )

        if crud.find_application(db, company=job.company, job_title=job.title):
            return step(StepStatus.SKIPPED, "An application already exists for this role.")

        if remaining_quota(QuotaKind.APPLICATIONS, config, db, today) <= 0:
            return step(
                StepStatus.BLOCKED,
                f"Daily application limit reached ({config.daily_application_limit}).",
            )

        application = crud.create_application(
            db,
            job=job,
            today=today,
            next_step="Awaiting response",
            notes="Submitted via LinkedIn agent.",
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
        run.summary.applications_submitted += 1
        return step(StepStatus.SUCCESS, "Application filled and submitted.", application_id=application.id)

    return apply_node
