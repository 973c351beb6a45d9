from typing import TypedDict

from found.agents.schemas import AgentRunRecord, AgentRunRequest
from found.db.models import Job
from found.services.opportunities import Opportunity


class AgentRunState(TypedDict, total=False):
    run: AgentRunRecord
    request: AgentRunRequest
    job: Job
    opportunities: list[Opportunity]
    errors: list[str]
