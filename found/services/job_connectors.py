import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import httpx
from sqlalchemy.orm import Session

from found.core.clock import Clock, system_clock
from found.core.config import Settings
from found.core.enums import ActivityType
from found.core.errors import InvalidInputError
from found.core.logging import get_logger
from found.db import crud
from found.services.activity import add_activity

logger = get_logger(__name__)

GREENHOUSE_URL = "https://boards-api.greenhouse.io/v1/boards/{board}/jobs"
LEVER_URL = "https://api.lever.co/v0/postings/{site}?mode=json"

NO_SNIPPET = "No description snippet available from source feed."
SNIPPET_LENGTH = 220
BASE_MATCH_SCORE = 72
PREFERRED_COMPANY_BOOST = 12
TARGET_ROLE_BOOST = 8
MAX_MATCH_SCORE = 98

_TAG_RE = re.compile(r"<[^>]+>")
_NAME_SPLIT_RE = re.compile(r"[-_\s]+")


@dataclass
class ExternalJob:
    id: str
    source: str
    external_id: str
    title: str
    company: str
    location: str
    url: str
    posted_at: Optional[datetime]
    description_snippet: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "external_id": self.external_id,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "url": self.url,
            "posted_at": self.posted_at.isoformat() if self.posted_at else None,
            "description_snippet": self.description_snippet,
        }


def parse_list(raw: str | None) -> list[str]:
    return [value.strip() for value in (raw or "").split(",") if value.strip()]


def normalize_company_name(value: str) -> str:
    return " ".join(part[:1].upper() + part[1:] for part in _NAME_SPLIT_RE.split(value))


def plain_text_snippet(value: str | None, max_length: int = SNIPPET_LENGTH) -> str:
    if not value:
        return NO_SNIPPET
    stripped = " ".join(_TAG_RE.sub(" ", value).split())
    return f"{stripped[:max_length]}..." if len(stripped) > max_length else stripped


def infer_level(title: str) -> str:
    lowered = title.lower()
    for keyword in ("principal", "staff", "manager", "lead", "senior"):
        if keyword in lowered:
            return keyword.capitalize()
    return "Senior"


def _parse_iso(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _parse_millis(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def parse_greenhouse_jobs(board: str, payload: dict[str, Any]) -> list[ExternalJob]:
    company = normalize_company_name(board)
    jobs: list[ExternalJob] = []
    for item in payload.get("jobs") or []:
        jobs.append(
            ExternalJob(
                id=f"gh-{board}-{item.get('id')}",
                source="greenhouse",
                external_id=str(item.get("id")),
                title=item.get("title") or "Untitled role",
                company=company,
                location=(item.get("location") or {}).get("name") or "Unspecified",
                url=item.get("absolute_url") or "",
                posted_at=_parse_iso(item.get("updated_at")),
                description_snippet=plain_text_snippet(item.get("content")),
            )
        )
    return jobs


def parse_lever_jobs(site: str, payload: list[dict[str, Any]]) -> list[ExternalJob]:
    company = normalize_company_name(site)
    jobs: list[ExternalJob] = []
    for item in payload or []:
        jobs.append(
            ExternalJob(
                id=f"lev-{site}-{item.get('id')}",
                source="lever",
                external_id=str(item.get("id")),
                title=item.get("text") or "Untitled role",
                company=company,
                location=(item.get("categories") or {}).get("location") or "Unspecified",
                url=item.get("hostedUrl") or "",
                posted_at=_parse_millis(item.get("createdAt")),
                description_snippet=plain_text_snippet(item.get("descriptionPlain")),
            )
        )
    return jobs


def _fetch_feed(
    client: httpx.Client,
    source: str,
    name: str,
    url: str,
    parser: Callable[[str, Any], list[ExternalJob]],
) -> list[ExternalJob]:
    try:
        response = client.get(url)
        response.raise_for_status()
        return parser(name, response.json())
    except (httpx.HTTPError, ValueError, TypeError, AttributeError) as exc:
        # One broken feed never takes down the others.
        logger.warning(
            "external_feed_failed",
            extra={"extra": {"source": source, "feed": name, "error": str(exc)}},
        )
        return []


def require_connector_availability(settings: Settings) -> None:
    if not parse_list(settings.greenhouse_boards) and not parse_list(settings.lever_sites):
        raise InvalidInputError("No external job connectors configured. Set GREENHOUSE_BOARDS and/or LEVER_SITES.")


def discover_external_jobs(
    settings: Settings,
    query: str | None = None,
    company: str | None = None,
    limit: int = 60,
    client: httpx.Client | None = None,
) -> list[ExternalJob]:
    """Pull postings from every configured Greenhouse board and Lever site.

    Feeds are fetched concurrently but merged in configuration order before
    the newest-first sort, so equal dates keep a stable order.
    """
    feeds = [
        ("greenhouse", board, GREENHOUSE_URL.format(board=board), parse_greenhouse_jobs)
        for board in parse_list(settings.greenhouse_boards)
    ] + [
        ("lever", site, LEVER_URL.format(site=site), parse_lever_jobs)
        for site in parse_list(settings.lever_sites)
    ]
    if not feeds:
        return []

    owns_client = client is None
    client = client or httpx.Client(timeout=settings.external_feed_timeout_seconds, follow_redirects=True)
    try:
        workers = max(1, min(settings.external_feed_workers, len(feeds)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="job-feed") as executor:
            futures = [executor.submit(_fetch_feed, client, *feed) for feed in feeds]
            results = [future.result() for future in futures]
    finally:
        if owns_client:
            client.close()

    needle = (query or "").strip().lower()
    company_filter = (company or "").strip().lower()
    combined = [
        job
        for batch in results
        for job in batch
        if (not needle or needle in f"{job.title} {job.company} {job.location}".lower())
        and (not company_filter or company_filter in job.company.lower())
    ]
    combined.sort(key=lambda job: job.posted_at.timestamp() if job.posted_at else 0, reverse=True)

    logger.info(
        "external_jobs_discovered",
        extra={"extra": {"feeds": len(feeds), "jobs": len(combined), "query": needle}},
    )
    return combined[:limit]


def compute_match_score(title: str, company: str, profile) -> int:
    preferred = [name.lower() for name in (profile.preferred_companies or [])] if profile else []
    roles = list(profile.target_roles or []) if profile else []
    score = BASE_MATCH_SCORE
    if company.lower() in preferred:
        score += PREFERRED_COMPANY_BOOST
    lowered = title.lower()
    if any(role.split() and role.lower().split()[0] in lowered for role in roles):
        score += TARGET_ROLE_BOOST
    return min(MAX_MATCH_SCORE, score)


def posted_label(posted_at: Optional[datetime]) -> str:
    if posted_at is None:
        return "Recently"
    return f"{posted_at:%b} {posted_at.day}"


def import_external_jobs(
    db: Session,
    settings: Settings,
    query: str | None = None,
    company: str | None = None,
    limit: int = 60,
    *,
    client: httpx.Client | None = None,
    clock: Clock = system_clock,
) -> dict[str, Any]:
    discovered = discover_external_jobs(settings, query, company, limit, client=client)
    if not discovered:
        return {"imported": 0, "skipped": 0, "jobs": []}

    profile = crud.get_profile(db)
    known = {(job.title.lower(), job.company.lower()) for job in crud.list_jobs(db)}
    imported = 0
    skipped = 0
    for external in discovered:
        key = (external.title.lower(), external.company.lower())
        if key in known:
            skipped += 1
            continue
        known.add(key)
        crud.add_job(
            db,
            id=crud.create_id("extjob"),
            title=external.title,
            company=external.company,
            logo=external.company[:2].upper(),
            location=external.location,
            salary="Not disclosed",
            match_score=compute_match_score(external.title, external.company, profile),
            type="Full-time",
            level=infer_level(external.title),
            posted=posted_label(external.posted_at),
            skills=[],
            match_reasons=[
                "Imported from external ATS feed",
                f"Source: {external.source}",
                "AI can generate a tailored application package",
            ],
            description=f"{external.description_snippet}\n\nApply: {external.url}",
            skill_gap=[],
        )
        imported += 1

    if imported:
        add_activity(
            db,
            type=ActivityType.MATCH,
            title=f"Imported {imported} jobs from external connectors",
            icon="sparkles",
            clock=clock,
        )

    logger.info("external_jobs_imported", extra={"extra": {"imported": imported, "skipped": skipped}})
    return {"imported": imported, "skipped": skipped, "jobs": [job.to_dict() for job in discovered]}
