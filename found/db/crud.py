import random
import string
import time
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from found.core.enums import (
    ApplicationSource,
    ApplicationStatus,
    ConnectionStatus,
    FollowUpStatus,
    OutreachKind,
    ReferralStatus,
)
from found.db import models

AGENT_CONFIG_FIELDS = (
    "daily_application_limit",
    "daily_outreach_limit",
    "require_human_approval",
    "preferred_message_tone",
)


def create_id(prefix: str) -> str:
    millis = int(time.time() * 1000)
    stamp = ""
    while millis:
        millis, rem = divmod(millis, 36)
        stamp = (string.digits + string.ascii_lowercase)[rem] + stamp
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"{prefix}{stamp}{suffix}"


def _persist(db: Session) -> None:
    db.commit()


def get_profile(db: Session) -> Optional[models.Profile]:
    return db.get(models.Profile, 1)


def save_profile(db: Session, **fields) -> models.Profile:
    profile = get_profile(db)
    if profile is None:
        profile = models.Profile(id=1, **fields)
        db.add(profile)
    else:
        for key, value in fields.items():
            setattr(profile, key, value)
    _persist(db)
    return profile


def get_agent_config(db: Session) -> models.AgentConfig:
    config = db.get(models.AgentConfig, 1)
    if config:
        return config

    config = models.AgentConfig(id=1)
    db.add(config)
    _persist(db)
    return config


def update_agent_config(db: Session, **changes) -> models.AgentConfig:
    config = get_agent_config(db)
    for field in AGENT_CONFIG_FIELDS:
        value = changes.get(field)
        if value is not None:
            setattr(config, field, value)
    _persist(db)
    return config


def add_job(db: Session, **fields) -> models.Job:
    fields.setdefault("id", create_id("j"))
    job = models.Job(**fields)
    db.add(job)
    _persist(db)
    return job


def get_job(db: Session, job_id: str) -> Optional[models.Job]:
    return db.get(models.Job, job_id)


def list_jobs(db: Session) -> list[models.Job]:
    stmt = select(models.Job).order_by(models.Job.created_at.desc(), models.Job.id)
    return list(db.scalars(stmt))


def add_connection(db: Session, **fields) -> models.Connection:
    fields.setdefault("id", create_id("c"))
    connection = models.Connection(**fields)
    db.add(connection)
    _persist(db)
    return connection


def list_connections(
    db: Session,
    *,
    company: str | None = None,
    status: ConnectionStatus | None = None,
) -> list[models.Connection]:
    stmt = select(models.Connection)
    if company is not None:
        stmt = stmt.where(models.Connection.company == company)
    if status is not None:
        stmt = stmt.where(models.Connection.status == status)
    stmt = stmt.order_by(models.Connection.relevance_score.desc(), models.Connection.id)
    return list(db.scalars(stmt))


def find_application(db: Session, *, company: str, job_title: str) -> Optional[models.Application]:
    stmt = select(models.Application).where(
        models.Application.company == company,
        models.Application.job_title == job_title,
    )
    return db.scalar(stmt.limit(1))


def find_application_ci(db: Session, *, company: str, job_title: str) -> Optional[models.Application]:
    stmt = select(models.Application).where(
        func.lower(models.Application.company) == company.lower(),
        func.lower(models.Application.job_title) == job_title.lower(),
    )
    return db.scalar(stmt.limit(1))


def count_applications_on(db: Session, day: str) -> int:
    stmt = select(func.count(models.Application.id)).where(models.Application.applied_date == day)
    return int(db.scalar(stmt) or 0)


def create_application(
    db: Session,
    *,
    job: models.Job,
    today: str,
    next_step: str,
    notes: str,
    source: ApplicationSource = ApplicationSource.MANUAL,
    automation_run_id: str | None = None,
) -> models.Application:
    application = models.Application(
        id=create_id("a"),
        job_title=job.title,
        company=job.company,
        logo=job.logo,
        status=ApplicationStatus.APPLIED,
        applied_date=today,
        last_update=today,
        next_step=next_step,
        notes=notes,
        match_score=job.match_score,
        source=source,
        automation_run_id=automation_run_id,
    )
    db.add(application)
    _persist(db)
    return application


def list_applications(db: Session) -> list[models.Application]:
    stmt = select(models.Application).order_by(models.Application.created_at.desc())
    return list(db.scalars(stmt))


def count_follow_ups_on(db: Session, day: str) -> int:
    stmt = select(func.count(models.FollowUp.id)).where(models.FollowUp.scheduled_date == day)
    return int(db.scalar(stmt) or 0)


def create_follow_up(
    db: Session,
    *,
    contact_name: str,
    company: str,
    scheduled_date: str,
    type: str,
    ai_message: str,
    status: FollowUpStatus = FollowUpStatus.PENDING,
) -> models.FollowUp:
    follow_up = models.FollowUp(
        id=create_id("f"),
        contact_name=contact_name,
        company=company,
        scheduled_date=scheduled_date,
        type=type,
        ai_message=ai_message,
        status=status,
    )
    db.add(follow_up)
    _persist(db)
    return follow_up


def list_follow_ups(db: Session) -> list[models.FollowUp]:
    stmt = select(models.FollowUp).order_by(models.FollowUp.created_at.desc())
    return list(db.scalars(stmt))


def add_outreach_history(
    db: Session,
    *,
    follow_up: models.FollowUp,
    sent_at: datetime,
    kind: OutreachKind = OutreachKind.MESSAGE,
) -> models.OutreachHistory:
    entry = models.OutreachHistory(
        follow_up_id=follow_up.id,
        kind=kind,
        contact_name=follow_up.contact_name,
        company=follow_up.company,
        scheduled_date=follow_up.scheduled_date,
        type=follow_up.type,
        ai_message=follow_up.ai_message,
        status=follow_up.status,
        sent_at=sent_at,
    )
    db.add(entry)
    _persist(db)
    return entry


def list_outreach_history(db: Session) -> list[models.OutreachHistory]:
    stmt = select(models.OutreachHistory).order_by(models.OutreachHistory.id.desc())
    return list(db.scalars(stmt))


def create_referral(
    db: Session,
    *,
    target_company: str,
    target_role: str,
    referrer: str,
    referrer_title: str,
    message: str,
    date_sent: str,
) -> models.Referral:
    referral = models.Referral(
        id=create_id("r"),
        target_company=target_company,
        target_role=target_role,
        referrer=referrer,
        referrer_title=referrer_title or "Connection",
        status=ReferralStatus.SENT,
        date_sent=date_sent,
        message=message,
    )
    db.add(referral)
    _persist(db)
    return referral


def list_referrals(db: Session) -> list[models.Referral]:
    stmt = select(models.Referral).order_by(models.Referral.created_at.desc())
    return list(db.scalars(stmt))


def _upsert_run(db: Session, model, update_fields: tuple[str, ...], fields: dict):
    row = db.scalar(select(model).where(model.id == fields["id"]))
    if row is None:
        row = model(**fields)
        db.add(row)
    else:
        # Identity columns (id, mode, created_at, target) never change after the first save.
        for key in update_fields:
            setattr(row, key, fields[key])
    _persist(db)
    return row


def _list_runs(db: Session, model, limit: int | None):
    stmt = select(model).order_by(model.seq.desc())
    if limit:
        stmt = stmt.limit(limit)
    return list(db.scalars(stmt))


def save_agent_run(db: Session, **fields) -> models.AgentRun:
    return _upsert_run(db, models.AgentRun, ("status", "summary", "steps"), fields)


def get_agent_run(db: Session, run_id: str) -> Optional[models.AgentRun]:
    return db.scalar(select(models.AgentRun).where(models.AgentRun.id == run_id))


def list_agent_runs(db: Session, limit: int | None = None) -> list[models.AgentRun]:
    return _list_runs(db, models.AgentRun, limit)


def save_browser_run(db: Session, **fields) -> models.BrowserRun:
    return _upsert_run(db, models.BrowserRun, ("status", "discovered_jobs", "steps"), fields)


def list_browser_runs(db: Session, limit: int | None = None) -> list[models.BrowserRun]:
    return _list_runs(db, models.BrowserRun, limit)


def save_automation_run(db: Session, **fields) -> models.AutomationRun:
    return _upsert_run(db, models.AutomationRun, ("status", "steps"), fields)


def list_automation_runs(db: Session, limit: int | None = None) -> list[models.AutomationRun]:
    return _list_runs(db, models.AutomationRun, limit)
