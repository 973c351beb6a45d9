from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from found.core.enums import AutomationMode, EventSource, MessageTone, RunMode, RunStatus, StepKind, StepStatus
from found.core.errors import InvalidInputError


class _Payload(BaseModel):
    # Accept both the dashboard's camelCase keys and snake_case.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class AgentActions(_Payload):
    discover_jobs: bool = True
    fill_application: bool = True
    contact_recruiters: bool = True
    request_referrals: bool = True


class AgentApprovals(_Payload):
    submit_application: bool = False
    send_outreach: bool = False
    request_referral: bool = False


class AgentRunRequest(_Payload):
    job_id: str | None = None
    search_query: str | None = None
    mode: RunMode = RunMode.ASSIST
    actions: AgentActions = Field(default_factory=AgentActions)
    approvals: AgentApprovals = Field(default_factory=AgentApprovals)


class BrowserApprovals(_Payload):
    submit_applications: bool = False
    send_messages: bool = False


class BrowserRunRequest(_Payload):
    search_query: str | None = None
    location: str | None = None
    company: str | None = None
    max_jobs: int | None = None
    submit_applications: bool = False
    send_recruiter_messages: bool = False
    approvals: BrowserApprovals = Field(default_factory=BrowserApprovals)
    dry_run: bool = False


class AgentConfigUpdate(_Payload):
    daily_application_limit: int | None = Field(default=None, ge=0)
    daily_outreach_limit: int | None = Field(default=None, ge=0)
    require_human_approval: bool | None = None
    preferred_message_tone: MessageTone | None = None


class AgentStep(BaseModel):
    id: StepKind
    label: str
    status: StepStatus
    detail: str
    output: dict[str, Any] | None = None


class RunSummary(BaseModel):
    job_matches_found: int = 0
    applications_submitted: int = 0
    recruiter_messages_prepared: int = 0
    referral_requests_prepared: int = 0


class AgentRunRecord(BaseModel):
    id: str
    mode: RunMode
    job_id: str
    company: str
    role: str
    created_at: str
    status: RunStatus
    summary: RunSummary = Field(default_factory=RunSummary)
    steps: list[AgentStep] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class DiscoveredJob(BaseModel):
    title: str
    company: str
    url: str


class BrowserRunRecord(BaseModel):
    id: str
    created_at: str
    query: str
    location: str
    status: RunStatus
    discovered_jobs: list[DiscoveredJob] = Field(default_factory=list)
    steps: list[AgentStep] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class AutomationRunRequest(_Payload):
    job_id: str | None = None
    mode: AutomationMode = AutomationMode.DRY_RUN


class AutomationStep(BaseModel):
    id: str
    label: str
    status: StepStatus
    error: str | None = None


class AutomationRunRecord(BaseModel):
    id: str
    mode: AutomationMode
    job_id: str
    company: str
    role: str
    created_at: str
    status: RunStatus
    steps: list[AutomationStep] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class AutomationEvent(BaseModel):
    source: EventSource
    run: AgentRunRecord | BrowserRunRecord | AutomationRunRecord


def row_fields(record: BaseModel) -> dict[str, Any]:
    """Column values for a record: enum members stay members, nested models become JSON."""
    fields = record.model_dump(mode="json")
    for name, value in record:
        if isinstance(value, Enum):
            fields[name] = value
    return fields


def parse_payload(model: type[BaseModel], payload: Any) -> Any:
    """Validate a caller payload, surfacing failures as ``InvalidInputError``."""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload or {})
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'payload'}: {err['msg']}" for err in exc.errors()
        )
        raise InvalidInputError(f"Invalid {model.__name__}: {problems}") from exc


def fold_run_status(steps: list[AgentStep]) -> RunStatus:
    statuses = {step.status for step in steps}
    if StepStatus.ERROR in statuses:
        return RunStatus.ERROR
    if StepStatus.BLOCKED in statuses or StepStatus.PENDING_APPROVAL in statuses:
        return RunStatus.PARTIAL
    return RunStatus.SUCCESS
