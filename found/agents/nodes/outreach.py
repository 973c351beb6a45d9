from typing import Callable

from found.agents.policies.guardrails import remaining_quota, should_wait_for_approval
from found.agents.schemas import AgentStep
from found.agents.state import AgentRunState
from found.core.clock import Clock
from found.core.enums import ConnectionStatus, OutreachKind, QuotaKind, StepKind, StepStatus
from found.db import crud
from found.services.drafting import OutreachTarget, draft_recruiter_message
from found.services.opportunities import recruiter_targets

LABEL = "Request recruiters and hiring managers"
DEFAULT_SENDER = "Job Seeker"


def make_node(db, clock: Clock) -> Callable[[AgentRunState], AgentStep]:
    def outreach_node(state: AgentRunState) -> AgentStep:
        run = state["run"]
        job = state["job"]
        approvals = state["request"].approvals
        today = clock.today()
        config = crud.get_agent_config(db)
        profile = crud.get_profile(db)
        sender = profile.name if profile else DEFAULT_SENDER

        targets = [OutreachTarget.from_connection(conn) for conn in recruiter_targets(db, job.company)]
        if not targets:
            targets = [OutreachTarget.talent_team(job.company)]

        drafts = [
            (
                target,
                draft_recruiter_message(
                    name=target.name,
                    company=target.company,
                    role=job.title,
                    tone=config.preferred_message_tone,
                    sender=sender,
                ),
            )
            for target in targets
        ]
        run.summary.recruiter_messages_prepared += len(drafts)
        drafted_names = [target.name for target, _ in drafts]

        if should_wait_for_approval(run.mode, config, approvals.send_outreach):
            return AgentStep(
                id=StepKind.CONTACT_RECRUITERS,
                label=LABEL,
                status=StepStatus.PENDING_APPROVAL,
                detail=f"{len(drafts)} recruiter messages drafted and ready for review.",
                output={"recruiters": drafted_names},
            )

        remaining = remaining_quota(QuotaKind.OUTREACH, config, db, today)
        to_send = drafts[:remaining]
        if not to_send:
            return AgentStep(
                id=StepKind.CONTACT_RECRUITERS,
                label=LABEL,
                status=StepStatus.BLOCKED,
                detail=f"Daily outreach limit reached ({config.daily_outreach_limit}).",
                output={"drafted": drafted_names},
            )

        sent_at = clock.now()
        for target, message in to_send:
            follow_up = crud.create_follow_up(
                db,
                contact_name=target.name,
                company=job.company,
                scheduled_date=today,
                type=f"Recruiter Outreach — {job.title}",
                ai_message=message,
            )
            # Anyone not already connected is reached through a connection request first.
            if target.status != ConnectionStatus.CONNECTED:
                crud.add_outreach_history(
                    db, follow_up=follow_up, sent_at=sent_at, kind=OutreachKind.CONNECTION_REQUEST
                )
            crud.add_outreach_history(db, follow_up=follow_up, sent_at=sent_at, kind=OutreachKind.MESSAGE)

        capped = " (limited by daily cap)." if len(to_send) < len(drafts) else "."
        return AgentStep(
            id=StepKind.CONTACT_RECRUITERS,
            label=LABEL,
            status=StepStatus.SUCCESS,
            detail=f"Queued {len(to_send)} recruiter messages{capped}",
            output={"recruiters": [target.name for target, _ in to_send]},
        )

    return outreach_node
