from typing import Callable

from found.agents.policies.guardrails import should_wait_for_approval
from found.agents.schemas import AgentStep
from found.agents.state import AgentRunState
from found.core.clock import Clock
from found.core.enums import StepKind, StepStatus
from found.db import crud
from found.services.drafting import draft_referral_message
from found.services.opportunities import referral_candidates

LABEL = "Request referral from network"


def make_node(db, clock: Clock) -> Callable[[AgentRunState], AgentStep]:
    def referral_node(state: AgentRunState) -> AgentStep:
        run = state["run"]
        job = state["job"]
        approvals = state["request"].approvals
        today = clock.today()
        config = crud.get_agent_config(db)

        # Referrals need a real connection; unlike outreach there is no stand-in.
        candidates = referral_candidates(db, job.company)
        if not candidates:
            return AgentStep(
                id=StepKind.REQUEST_REFERRALS,
                label=LABEL,
                status=StepStatus.SKIPPED,
                detail=f"No connected referrals found at {job.company}.",
            )

        if should_wait_for_approval(run.mode, config, approvals.request_referral):
            run.summary.referral_requests_prepared = len(candidates)
            return AgentStep(
                id=StepKind.REQUEST_REFERRALS,
                label=LABEL,
                status=StepStatus.PENDING_APPROVAL,
                detail=f"{len(candidates)} referral drafts prepared for review.",
                output={"candidates": [candidate.name for candidate in candidates]},
            )

        created = [
            crud.create_referral(
                db,
                target_company=job.company,
                target_role=job.title,
                referrer=candidate.name,
                referrer_title=candidate.headline,
                message=draft_referral_message(referrer=candidate.name, role=job.title, company=job.company),
                date_sent=today,
            )
            for candidate in candidates
        ]
        run.summary.referral_requests_prepared = len(created)
        return AgentStep(
            id=StepKind.REQUEST_REFERRALS,
            label=LABEL,
            status=StepStatus.SUCCESS,
            detail=f"{len(created)} referral requests prepared and logged.",
            output={"candidates": [referral.referrer for referral in created]},
        )

    return referral_node
