from typing import Callable

from found.agents.schemas import AgentStep
from found.agents.state import AgentRunState
from found.core.enums import StepKind, StepStatus

LABEL = "Find matching LinkedIn jobs"


def make_node() -> Callable[[AgentRunState], AgentStep]:
    def discover_node(state: AgentRunState) -> AgentStep:
        # Opportunities are computed before the pipeline starts; this step reports them.
        opportunities = state.get("opportunities", [])
        return AgentStep(
            id=StepKind.DISCOVER_JOBS,
            label=LABEL,
            status=StepStatus.SUCCESS,
            detail=f"{len(opportunities)} opportunities found.",
            output={
                "top_matches": [item.label() for item in opportunities[:3]],
                "opportunities": [item.to_dict() for item in opportunities],
            },
        )

    return discover_node
