from typing import Any, Callable

from langgraph.graph import END, StateGraph
from sqlalchemy.orm import Session

from found.agents.nodes import apply, discover, outreach, referral
from found.agents.schemas import (
    AgentActions,
    AgentConfigUpdate,
    AgentRunRecord,
    AgentRunRequest,
    AgentStep,
    RunSummary,
    fold_run_status,
    parse_payload,
    row_fields,
)
from found.agents.state import AgentRunState
from found.core.clock import Clock, system_clock
from found.core.enums import ActivityType, EventSource, RunStatus, StepKind, StepStatus
from found.core.logging import get_logger
from found.db import crud
from found.db.models import AgentConfig
from found.services.activity import add_activity
from found.services.automation_bus import AutomationBus, get_automation_bus
from found.services.opportunities import Opportunity, discover_opportunities, resolve_primary_job

logger = get_logger(__name__)

DISCOVERY_LIMIT = 8

# Fixed pipeline order: (node name, step kind, label, action toggle).
PIPELINE = [
    ("discover", StepKind.DISCOVER_JOBS, discover.LABEL, "discover_jobs"),
    ("apply", StepKind.FILL_APPLICATION, apply.LABEL, "fill_application"),
    ("outreach", StepKind.CONTACT_RECRUITERS, outreach.LABEL, "contact_recruiters"),
    ("referral", StepKind.REQUEST_REFERRALS, referral.LABEL, "request_referrals"),
]


def _checkpoint(db: Session, bus: AutomationBus, run: AgentRunRecord) -> None:
    try:
        crud.save_agent_run(db, **row_fields(run))
    except Exception:
        db.rollback()
        logger.exception("agent_run_checkpoint_failed", extra={"extra": {"run_id": run.id}})
    bus.publish_run(EventSource.AGENT, run)


def _guarded(
    db: Session,
    bus: AutomationBus,
    *,
    kind: StepKind,
    label: str,
    toggle: str,
    node: Callable[[AgentRunState], AgentStep],
) -> Callable[[AgentRunState], AgentRunState]:
    def run_step(state: AgentRunState) -> AgentRunState:
        run = state["run"]
        actions: AgentActions = state["request"].actions

        if not getattr(actions, toggle):
            step = AgentStep(id=kind, label=label, status=StepStatus.SKIPPED, detail="Skipped by action settings.")
        else:
            try:
                step = node(state)
            except Exception as exc:
                # Steps are independent: a failure is recorded and the run moves on.
                db.rollback()
                logger.exception(
                    "agent_step_failed",
                    extra={"extra": {"run_id": run.id, "step": kind.value}},
                )
                state.setdefault("errors", []).append(f"{kind.value}: {exc}")
                step = AgentStep(
                    id=kind,
                    label=label,
                    status=StepStatus.ERROR,
                    detail=str(exc) or type(exc).__name__,
                )

        run.steps.append(step)
        logger.info(
            "agent_step_finished",
            extra={"extra": {"run_id": run.id, "step": kind.value, "status": step.status.value}},
        )
        _checkpoint(db, bus, run)
        return state

    return run_step


def make_finalize_node(db: Session, bus: AutomationBus, clock: Clock) -> Callable[[AgentRunState], AgentRunState]:
    def finalize_node(state: AgentRunState) -> AgentRunState:
        run = state["run"]
        run.status = fold_run_status(run.steps)
        _checkpoint(db, bus, run)
        try:
            add_activity(
                db,
                type=ActivityType.NETWORK,
                title=f"LinkedIn agent {run.status.value} for {run.role} at {run.company}",
                icon="sparkles",
                clock=clock,
            )
        except Exception:
            db.rollback()
            logger.exception("agent_run_activity_failed", extra={"extra": {"run_id": run.id}})
        logger.info(
            "agent_run_finished",
            extra={
                "extra": {
                    "run_id": run.id,
                    "status": run.status.value,
                    "errors": state.get("errors", []),
                    **run.summary.model_dump(),
                }
            },
        )
        return state

    return finalize_node


def build_pipeline(db: Session, *, bus: AutomationBus, clock: Clock):
    graph = StateGraph(AgentRunState)

    nodes = {
        "discover": discover.make_node(),
        "apply": apply.make_node(db, clock),
        "outreach": outreach.make_node(db, clock),
        "referral": referral.make_node(db, clock),
    }
    for name, kind, label, toggle in PIPELINE:
        graph.add_node(name, _guarded(db, bus, kind=kind, label=label, toggle=toggle, node=nodes[name]))
    graph.add_node("finalize", make_finalize_node(db, bus, clock))

    graph.set_entry_point("discover")
    graph.add_edge("discover", "apply")
    graph.add_edge("apply", "outreach")
    graph.add_edge("outreach", "referral")
    graph.add_edge("referral", "finalize")
    graph.add_edge("finalize", END)

    return graph.compile()


def run_linkedin_agent(
    db: Session,
    payload: AgentRunRequest | dict[str, Any] | None,
    *,
    bus: AutomationBus | None = None,
    clock: Clock = system_clock,
) -> AgentRunRecord:
    """Run discover, apply, outreach and referral for one target job.

    Invalid payloads and unknown targets raise before any run record exists.
    Once the placeholder ``running`` record is stored, every outcome is
    captured in the returned run instead of being raised.
    """
    request: AgentRunRequest = parse_payload(AgentRunRequest, payload)
    bus = bus or get_automation_bus()

    job = resolve_primary_job(db, request.job_id, request.search_query)
    opportunities: list[Opportunity] = discover_opportunities(db, request.search_query, DISCOVERY_LIMIT)

    run = AgentRunRecord(
        id=crud.create_id("lnrun"),
        mode=request.mode,
        job_id=job.id,
        company=job.company,
        role=job.title,
        created_at=clock.now().isoformat(),
        status=RunStatus.RUNNING,
        summary=RunSummary(job_matches_found=len(opportunities)),
    )
    crud.save_agent_run(db, **row_fields(run))
    bus.publish_run(EventSource.AGENT, run)
    logger.info(
        "agent_run_started",
        extra={"extra": {"run_id": run.id, "mode": run.mode.value, "job_id": job.id}},
    )

    pipeline = build_pipeline(db, bus=bus, clock=clock)
    final_state = pipeline.invoke(
        {
            "run": run,
            "request": request,
            "job": job,
            "opportunities": opportunities,
            "errors": [],
        }
    )
    return final_state["run"]


def list_agent_runs(db: Session, limit: int | None = None) -> list[AgentRunRecord]:
    return [AgentRunRecord.model_validate(row) for row in crud.list_agent_runs(db, limit=limit)]


def get_agent_run(db: Session, run_id: str) -> AgentRunRecord | None:
    row = crud.get_agent_run(db, run_id)
    return AgentRunRecord.model_validate(row) if row else None


def list_opportunities(db: Session, search_query: str | None = None, limit: int = DISCOVERY_LIMIT) -> list[Opportunity]:
    return discover_opportunities(db, search_query, limit if limit and limit > 0 else DISCOVERY_LIMIT)


def get_agent_config(db: Session) -> AgentConfig:
    return crud.get_agent_config(db)


def update_agent_config(db: Session, payload: AgentConfigUpdate | dict[str, Any]) -> AgentConfig:
    changes: AgentConfigUpdate = parse_payload(AgentConfigUpdate, payload)
    return crud.update_agent_config(db, **changes.model_dump(exclude_none=True))
