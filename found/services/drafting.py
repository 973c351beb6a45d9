import re
from dataclasses import dataclass, field
from typing import Any

from found.core.enums import ConnectionStatus, MessageTone
from found.db.models import Connection, Job

REQUIRED_APPLICATION_FIELDS = [
    "full_name",
    "email",
    "location",
    "resume",
    "work_authorization",
    "years_of_experience",
]


@dataclass
class OutreachTarget:
    name: str
    company: str
    headline: str
    relevance_score: int
    status: ConnectionStatus
    tags: list[str] = field(default_factory=list)
    connection_id: str | None = None

    @property
    def synthetic(self) -> bool:
        return self.connection_id is None

    @classmethod
    def from_connection(cls, connection: Connection) -> "OutreachTarget":
        return cls(
            name=connection.name,
            company=connection.company,
            headline=connection.headline,
            relevance_score=connection.relevance_score,
            status=connection.status,
            tags=list(connection.tags or []),
            connection_id=connection.id,
        )

    @classmethod
    def talent_team(cls, company: str) -> "OutreachTarget":
        """Stand-in recipient when nobody at the company is tagged as a recruiter."""
        return cls(
            name=f"{company} Talent Team",
            company=company,
            headline=f"Recruiting at {company}",
            relevance_score=70,
            status=ConnectionStatus.SUGGESTED,
            tags=["Recruiter"],
        )


def normalize_gap(skill: str) -> str:
    return "proof_of_" + re.sub(r"\s+", "_", skill.lower())


def build_application_checklist(job: Job) -> dict[str, Any]:
    gaps = list(job.skill_gap or [])
    return {
        "required_fields": list(REQUIRED_APPLICATION_FIELDS),
        "missing_fields": [normalize_gap(skill) for skill in gaps],
        "warnings": [f"Profile gaps detected for: {', '.join(gaps)}"] if gaps else [],
    }


def draft_recruiter_message(*, name: str, company: str, role: str, tone: MessageTone, sender: str) -> str:
    templates = {
        MessageTone.PROFESSIONAL: (
            f"Hi {name}, I am exploring the {role} role at {company} and would appreciate "
            "your guidance on the current hiring process."
        ),
        MessageTone.CASUAL: (
            f"Hi {name}, I saw the {role} opening at {company} and wanted to connect to learn "
            "how the team is hiring right now."
        ),
        MessageTone.FORMAL: (
            f"Hello {name}, I am writing regarding the {role} opportunity at {company}. "
            "I would value any direction on next steps in the process."
        ),
    }
    body = templates.get(MessageTone(tone), templates[MessageTone.PROFESSIONAL])
    return f"{body}\n\nBest regards,\n{sender}"


def draft_referral_message(*, referrer: str, role: str, company: str) -> str:
    return (
        f"Hi {referrer}, I noticed the {role} opening at {company}. If you are open to it, "
        "I would really appreciate a referral or guidance on the best application path."
    )
