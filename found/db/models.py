from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from found.core.enums import (
    ActivityType,
    ApplicationSource,
    ApplicationStatus,
    AutomationMode,
    ConnectionStatus,
    FollowUpStatus,
    MessageTone,
    OutreachKind,
    ReferralStatus,
    RunMode,
    RunStatus,
)
from found.db.base import Base


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class Profile(Base, TimestampMixin):
    __tablename__ = "profile"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    headline: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    location: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    avatar: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    skills: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    target_roles: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    preferred_companies: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    preferred_locations: Mapped[list] = mapped_column(JSON, nullable=False, default=list)


class AgentConfig(Base, TimestampMixin):
    __tablename__ = "agent_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    daily_application_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=8)
    daily_outreach_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    require_human_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    preferred_message_tone: Mapped[MessageTone] = mapped_column(
        Enum(MessageTone, name="message_tone_enum"), nullable=False, default=MessageTone.PROFESSIONAL
    )


class Job(Base, TimestampMixin):
    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str] = mapped_column(String(255), nullable=False)
    logo: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    location: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    salary: Mapped[str] = mapped_column(String(255), nullable=False, default="Not disclosed")
    match_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    type: Mapped[str] = mapped_column(String(50), nullable=False, default="Full-time")
    level: Mapped[str] = mapped_column(String(50), nullable=False, default="Senior")
    posted: Mapped[str] = mapped_column(String(50), nullable=False, default="Recently")
    skills: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    match_reasons: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    skill_gap: Mapped[list] = mapped_column(JSON, nullable=False, default=list)


class Connection(Base, TimestampMixin):
    __tablename__ = "connections"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    headline: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    company: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    mutual_connections: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    relevance_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[ConnectionStatus] = mapped_column(
        Enum(ConnectionStatus, name="connection_status_enum"),
        nullable=False,
        default=ConnectionStatus.SUGGESTED,
    )
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)


class Application(Base, TimestampMixin):
    __tablename__ = "applications"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    job_title: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str] = mapped_column(String(255), nullable=False)
    logo: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, name="application_status_enum"),
        nullable=False,
        default=ApplicationStatus.APPLIED,
    )
    applied_date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    last_update: Mapped[str] = mapped_column(String(10), nullable=False)
    next_step: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    match_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    source: Mapped[ApplicationSource] = mapped_column(
        Enum(ApplicationSource, name="application_source_enum"),
        nullable=False,
        default=ApplicationSource.MANUAL,
    )
    automation_run_id: Mapped[str | None] = mapped_column(String(64), nullable=True)


class FollowUp(Base, TimestampMixin):
    __tablename__ = "follow_ups"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    contact_name: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str] = mapped_column(String(255), nullable=False)
    scheduled_date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(255), nullable=False)
    ai_message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[FollowUpStatus] = mapped_column(
        Enum(FollowUpStatus, name="follow_up_status_enum"),
        nullable=False,
        default=FollowUpStatus.PENDING,
    )


class OutreachHistory(Base):
    __tablename__ = "outreach_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    follow_up_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    kind: Mapped[OutreachKind] = mapped_column(
        Enum(OutreachKind, name="outreach_kind_enum"), nullable=False, default=OutreachKind.MESSAGE
    )
    contact_name: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str] = mapped_column(String(255), nullable=False)
    scheduled_date: Mapped[str] = mapped_column(String(10), nullable=False)
    type: Mapped[str] = mapped_column(String(255), nullable=False)
    ai_message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[FollowUpStatus] = mapped_column(
        Enum(FollowUpStatus, name="outreach_status_enum"), nullable=False, default=FollowUpStatus.PENDING
    )
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Referral(Base, TimestampMixin):
    __tablename__ = "referrals"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    target_company: Mapped[str] = mapped_column(String(255), nullable=False)
    target_role: Mapped[str] = mapped_column(String(255), nullable=False)
    referrer: Mapped[str] = mapped_column(String(255), nullable=False)
    referrer_title: Mapped[str] = mapped_column(String(512), nullable=False, default="Connection")
    status: Mapped[ReferralStatus] = mapped_column(
        Enum(ReferralStatus, name="referral_status_enum"), nullable=False, default=ReferralStatus.SENT
    )
    date_sent: Mapped[str] = mapped_column(String(10), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")


class Activity(Base):
    __tablename__ = "activity_feed"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    type: Mapped[ActivityType] = mapped_column(Enum(ActivityType, name="activity_type_enum"), nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    icon: Mapped[str] = mapped_column(String(64), nullable=False, default="sparkles")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class AgentRun(Base):
    __tablename__ = "agent_runs"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    mode: Mapped[RunMode] = mapped_column(Enum(RunMode, name="run_mode_enum"), nullable=False)
    job_id: Mapped[str] = mapped_column(String(64), nullable=False)
    company: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[str] = mapped_column(String(40), nullable=False)
    status: Mapped[RunStatus] = mapped_column(Enum(RunStatus, name="run_status_enum"), nullable=False)
    summary: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    steps: Mapped[list] = mapped_column(JSON, nullable=False, default=list)


class BrowserRun(Base):
    __tablename__ = "browser_runs"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    query: Mapped[str] = mapped_column(String(512), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[str] = mapped_column(String(40), nullable=False)
    status: Mapped[RunStatus] = mapped_column(Enum(RunStatus, name="browser_run_status_enum"), nullable=False)
    discovered_jobs: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    steps: Mapped[list] = mapped_column(JSON, nullable=False, default=list)


class AutomationRun(Base):
    __tablename__ = "automation_runs"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    mode: Mapped[AutomationMode] = mapped_column(Enum(AutomationMode, name="automation_mode_enum"), nullable=False)
    job_id: Mapped[str] = mapped_column(String(64), nullable=False)
    company: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[str] = mapped_column(String(40), nullable=False)
    status: Mapped[RunStatus] = mapped_column(Enum(RunStatus, name="automation_run_status_enum"), nullable=False)
    steps: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
