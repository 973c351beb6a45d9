from sqlalchemy.orm import Session

from found.core.config import Settings
from found.core.enums import QuotaKind, RunMode
from found.db import crud
from found.db.models import AgentConfig


def should_wait_for_approval(mode: RunMode, config: AgentConfig, explicit_approval: bool | None) -> bool:
    # Assist always hands the decision back to a human.
    if mode != RunMode.AUTOPILOT:
        return True
    return bool(config.require_human_approval) and explicit_approval is not True


def remaining_quota(kind: QuotaKind, config: AgentConfig, db: Session, today: str) -> int:
    if kind == QuotaKind.APPLICATIONS:
        used = crud.count_applications_on(db, today)
        limit = config.daily_application_limit
    elif kind == QuotaKind.OUTREACH:
        used = crud.count_follow_ups_on(db, today)
        limit = config.daily_outreach_limit
    else:
        raise ValueError(f"Unknown quota kind: {kind}")
    return max(0, int(limit) - used)


def browser_submit_allowed(settings: Settings, approved: bool | None) -> bool:
    return settings.linkedin_allow_auto_submit and approved is True


def browser_messages_allowed(approved: bool | None) -> bool:
    return approved is True
