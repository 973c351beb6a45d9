import re
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy.orm import Session

from found.core.enums import ConnectionStatus
from found.core.errors import NotFoundError
from found.db import crud
from found.db.models import Connection, Job

RECRUITER_TAG_PATTERN = re.compile(r"recruiter|hiring manager|talent", re.IGNORECASE)


@dataclass
class Opportunity:
    job: Job
    recruiter_matches: int
    referral_matches: int

    def label(self) -> str:
        return f"{self.job.title} @ {self.job.company}"

    def to_dict(self) -> dict:
        return {
            "job_id": self.job.id,
            "title": self.job.title,
            "company": self.job.company,
            "match_score": self.job.match_score,
            "recruiter_matches": self.recruiter_matches,
            "referral_matches": self.referral_matches,
        }


def job_matches_query(job: Job, query: str) -> bool:
    if not query:
        return True
    return (
        query in job.title.lower()
        or query in job.company.lower()
        or any(query in skill.lower() for skill in job.skills or [])
    )


def is_recruiter(connection: Connection) -> bool:
    return any(RECRUITER_TAG_PATTERN.search(tag) for tag in connection.tags or [])


def _ranked(jobs: Iterable[Job]) -> list[Job]:
    # sorted() is stable, so equal scores keep catalog order.
    return sorted(jobs, key=lambda job: job.match_score, reverse=True)


def discover_opportunities(db: Session, search_query: str | None = None, limit: int = 8) -> list[Opportunity]:
    query = (search_query or "").strip().lower()
    jobs = _ranked(job for job in crud.list_jobs(db) if job_matches_query(job, query))[:limit]
    connections = crud.list_connections(db)

    opportunities: list[Opportunity] = []
    for job in jobs:
        at_company = [conn for conn in connections if conn.company == job.company]
        opportunities.append(
            Opportunity(
                job=job,
                recruiter_matches=sum(1 for conn in at_company if is_recruiter(conn)),
                referral_matches=sum(1 for conn in at_company if conn.status == ConnectionStatus.CONNECTED),
            )
        )
    return opportunities


def resolve_primary_job(db: Session, job_id: str | None = None, search_query: str | None = None) -> Job:
    if job_id:
        job = crud.get_job(db, job_id)
        if job is None:
            raise NotFoundError("Job not found")
        return job

    catalog = crud.list_jobs(db)
    query = (search_query or "").strip().lower()
    if query:
        matches = _ranked(job for job in catalog if job_matches_query(job, query))
        if matches:
            return matches[0]

    ranked = _ranked(catalog)
    if not ranked:
        raise NotFoundError("No jobs available")
    return ranked[0]


def recruiter_targets(db: Session, company: str, limit: int = 5) -> list[Connection]:
    return [conn for conn in crud.list_connections(db, company=company) if is_recruiter(conn)][:limit]


def referral_candidates(db: Session, company: str, limit: int = 3) -> list[Connection]:
    return crud.list_connections(db, company=company, status=ConnectionStatus.CONNECTED)[:limit]
