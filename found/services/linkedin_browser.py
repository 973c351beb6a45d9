"""LinkedIn automation driven through a real browser session.

The run moves through the ``BrowserPhase`` states. Its outcomes land in the
same step/run shape as the in-store agent pipeline, and a failure anywhere in
the session finalizes the run as ``error`` instead of propagating.
"""

from typing import Any, Callable
from urllib.parse import quote

from sqlalchemy.orm import Session

from found.agents.policies.guardrails import (
    browser_messages_allowed,
    browser_submit_allowed,
    remaining_quota,
)
from found.agents.schemas import (
    AgentStep,
    BrowserRunRecord,
    BrowserRunRequest,
    DiscoveredJob,
    fold_run_status,
    parse_payload,
    row_fields,
)
from found.core.clock import Clock, system_clock
from found.core.config import Settings, get_settings
from found.core.enums import (
    ActivityType,
    ApplicationSource,
    BrowserPhase,
    EventSource,
    OutreachKind,
    QuotaKind,
    RunStatus,
    StepKind,
    StepStatus,
)
from found.core.errors import CheckpointChallengeError, ExternalFailureError
from found.core.logging import get_logger
from found.db import crud
from found.services.activity import add_activity
from found.services.automation_bus import AutomationBus, get_automation_bus
from found.services.browser_session import BrowserSession, open_linkedin_session
from found.services.opportunities import is_recruiter

logger = get_logger(__name__)

LINKEDIN_BASE_URL = "https://www.linkedin.com"
FEED_URL = f"{LINKEDIN_BASE_URL}/feed/"
LOGIN_URL = f"{LINKEDIN_BASE_URL}/login"
JOB_LINK_SELECTOR = "a[href*='/jobs/view/']"
EASY_APPLY_SELECTOR = "button.jobs-apply-button, button[aria-label*='Easy Apply'], button:has-text('Easy Apply')"

COMPANY_SEPARATORS = ["·", "|", "-", " at "]
UNKNOWN_COMPANY = "Unknown Company"
DEFAULT_ROLE = "Software Engineer"
DEFAULT_LOCATION = "Remote"
DEFAULT_MAX_JOBS = 5
MAX_JOBS_CAP = 10
LINK_SCAN_LIMIT = 200
RECRUITER_LIMIT = 5

LABELS = {
    StepKind.PLAN: "Generate browser automation plan",
    StepKind.LINKEDIN_LOGIN: "Authenticate LinkedIn session",
    StepKind.DISCOVER_JOBS: "Discover jobs on LinkedIn",
    StepKind.SUBMIT_APPLICATION: "Submit LinkedIn application",
    StepKind.MESSAGE_RECRUITERS: "Message recruiters",
    StepKind.BROWSER_SESSION: "Browser execution",
}

SessionFactory = Callable[[Settings], BrowserSession]


def _step(kind: StepKind, status: StepStatus, detail: str, output: dict[str, Any] | None = None) -> AgentStep:
    return AgentStep(id=kind, label=LABELS[kind], status=status, detail=detail, output=output)


def _collapse(text: str) -> str:
    return " ".join((text or "").split())


def company_from_text(text: str) -> str:
    cleaned = _collapse(text)
    for separator in COMPANY_SEPARATORS:
        if separator in cleaned:
            parts = [part.strip() for part in cleaned.split(separator) if part.strip()]
            if len(parts) >= 2:
                return parts[1]
    return UNKNOWN_COMPANY


def resolve_search(db: Session, request: BrowserRunRequest) -> tuple[str, str]:
    profile = crud.get_profile(db)
    target_roles = list(profile.target_roles or []) if profile else []
    role_hint = target_roles[0] if target_roles else DEFAULT_ROLE

    query = (request.search_query or "").strip()
    if not query:
        company = (request.company or "").strip()
        query = f"{company} {role_hint}".strip() if company else role_hint

    location = (request.location or "").strip() or (profile.location if profile else "") or DEFAULT_LOCATION
    return query, location


def job_limit(max_jobs: int | None) -> int:
    if max_jobs and max_jobs > 0:
        return min(max_jobs, MAX_JOBS_CAP)
    return DEFAULT_MAX_JOBS


class LinkedInBrowserRun:
    """One pass over a live LinkedIn session for a single request."""

    def __init__(
        self,
        db: Session,
        request: BrowserRunRequest,
        run: BrowserRunRecord,
        *,
        session: BrowserSession,
        settings: Settings,
        clock: Clock,
    ) -> None:
        self.db = db
        self.request = request
        self.run = run
        self.session = session
        self.settings = settings
        self.clock = clock
        self.phase = BrowserPhase.UNAUTHENTICATED

    def _enter(self, phase: BrowserPhase) -> None:
        self.phase = phase
        logger.info("browser_phase", extra={"extra": {"run_id": self.run.id, "phase": phase.value}})

    def _on_login_page(self) -> bool:
        return "/login" in self.session.current_url()

    def authenticate(self) -> AgentStep:
        self._enter(BrowserPhase.AUTHENTICATING)
        settings = self.settings

        if settings.linkedin_storage_state_path.exists():
            self.session.goto(FEED_URL)
            if not self._on_login_page():
                self._enter(BrowserPhase.AUTHENTICATED)
                return _step(StepKind.LINKEDIN_LOGIN, StepStatus.SUCCESS, "Reused saved LinkedIn session.")

        if not settings.linkedin_email or not settings.linkedin_password:
            raise ExternalFailureError(
                "LinkedIn credentials not configured. Set LINKEDIN_EMAIL and LINKEDIN_PASSWORD."
            )

        self.session.goto(LOGIN_URL)
        self.session.fill("#username", settings.linkedin_email)
        self.session.fill("#password", settings.linkedin_password)
        self.session.click('button[type="submit"]')
        self.session.wait_for_load()

        url = self.session.current_url()
        if "/checkpoint" in url or "/challenge" in url:
            raise CheckpointChallengeError(
                "LinkedIn checkpoint/challenge triggered. Complete verification manually and retry."
            )
        if "/login" in url:
            raise ExternalFailureError("LinkedIn login failed. Verify credentials.")

        self._enter(BrowserPhase.AUTHENTICATED)
        return _step(StepKind.LINKEDIN_LOGIN, StepStatus.SUCCESS, "Logged in with configured credentials.")

    def discover(self, query: str, location: str) -> AgentStep:
        self._enter(BrowserPhase.DISCOVERING)
        self.session.goto(
            f"{LINKEDIN_BASE_URL}/jobs/search/?keywords={quote(query, safe='')}&location={quote(location, safe='')}"
        )
        self.session.wait(self.settings.browser_settle_ms)

        limit = job_limit(self.request.max_jobs)
        seen: set[str] = set()
        jobs: list[DiscoveredJob] = []
        for row in self.session.extract_links(JOB_LINK_SELECTOR, LINK_SCAN_LIMIT):
            href = (row.get("href") or "").strip()
            title = _collapse(row.get("text") or "")
            if not href or href in seen or not title:
                continue
            seen.add(href)
            jobs.append(
                DiscoveredJob(
                    title=title,
                    company=company_from_text(row.get("context") or ""),
                    url=href if href.startswith("http") else f"{LINKEDIN_BASE_URL}{href}",
                )
            )
            if len(jobs) >= limit:
                break

        self.run.discovered_jobs = jobs
        if not jobs:
            return _step(StepKind.DISCOVER_JOBS, StepStatus.BLOCKED, "No jobs discovered for this query.")
        return _step(
            StepKind.DISCOVER_JOBS,
            StepStatus.SUCCESS,
            f'Discovered {len(jobs)} jobs for query "{query}".',
        )

    def submit_application(self) -> AgentStep:
        self._enter(BrowserPhase.APPLYING)
        if not browser_submit_allowed(self.settings, self.request.approvals.submit_applications):
            return _step(
                StepKind.SUBMIT_APPLICATION,
                StepStatus.PENDING_APPROVAL,
                "Submission blocked by approval policy. "
                "Set LINKEDIN_ALLOW_AUTO_SUBMIT=true and approvals.submitApplications=true.",
            )

        today = self.clock.today()
        config = crud.get_agent_config(self.db)
        if remaining_quota(QuotaKind.APPLICATIONS, config, self.db, today) <= 0:
            return _step(
                StepKind.SUBMIT_APPLICATION,
                StepStatus.BLOCKED,
                f"Daily application limit reached ({config.daily_application_limit}).",
            )

        if not self.run.discovered_jobs:
            return _step(StepKind.SUBMIT_APPLICATION, StepStatus.BLOCKED, "No discovered jobs to apply against.")

        first = self.run.discovered_jobs[0]
        self.session.goto(first.url)
        if not self.session.click_first(EASY_APPLY_SELECTOR):
            return _step(
                StepKind.SUBMIT_APPLICATION,
                StepStatus.BLOCKED,
                "Easy Apply button not available on selected role.",
            )
        self.session.wait(self.settings.browser_action_settle_ms)

        output: dict[str, Any] = {"job_url": first.url}
        matched = self._catalog_job(first.title, first.company)
        if matched and not crud.find_application_ci(self.db, company=matched.company, job_title=matched.title):
            application = crud.create_application(
                self.db,
                job=matched,
                today=today,
                next_step="LinkedIn Easy Apply started",
                notes="LinkedIn browser automation opened Easy Apply workflow.",
                source=ApplicationSource.AUTOMATION,
                automation_run_id=self.run.id,
            )
            output["application_id"] = application.id

        return _step(
            StepKind.SUBMIT_APPLICATION,
            StepStatus.SUCCESS,
            "Opened Easy Apply workflow in browser. Final submission may still require additional manual fields.",
            output,
        )

    def _catalog_job(self, title: str, company: str):
        title, company = title.lower(), company.lower()
        for job in crud.list_jobs(self.db):
            if job.title.lower() == title and job.company.lower() == company:
                return job
        return None

    def message_recruiters(self, query: str) -> AgentStep:
        self._enter(BrowserPhase.MESSAGING)
        if not browser_messages_allowed(self.request.approvals.send_messages):
            return _step(
                StepKind.MESSAGE_RECRUITERS,
                StepStatus.PENDING_APPROVAL,
                "Messaging requires approvals.sendMessages=true.",
            )

        company_hint = (
            (self.request.company or "").strip()
            or (self.run.discovered_jobs[0].company if self.run.discovered_jobs else "")
            or company_from_text(query)
        ).lower()
        recruiters = [
            conn
            for conn in crud.list_connections(self.db)
            if company_hint in conn.company.lower() and is_recruiter(conn)
        ][:RECRUITER_LIMIT]

        if not recruiters:
            return _step(
                StepKind.MESSAGE_RECRUITERS,
                StepStatus.BLOCKED,
                "No matching recruiter contacts were found in your network.",
            )

        today = self.clock.today()
        config = crud.get_agent_config(self.db)
        remaining = remaining_quota(QuotaKind.OUTREACH, config, self.db, today)
        if remaining <= 0:
            return _step(
                StepKind.MESSAGE_RECRUITERS,
                StepStatus.BLOCKED,
                f"Daily outreach limit reached ({config.daily_outreach_limit}).",
            )

        sent_at = self.clock.now()
        contacted = recruiters[:remaining]
        for recruiter in contacted:
            follow_up = crud.create_follow_up(
                self.db,
                contact_name=recruiter.name,
                company=recruiter.company,
                scheduled_date=today,
                type="LinkedIn Recruiter Outreach",
                ai_message=(
                    f"Hi {recruiter.name}, I found a relevant opening and would appreciate guidance on the process."
                ),
            )
            crud.add_outreach_history(self.db, follow_up=follow_up, sent_at=sent_at, kind=OutreachKind.MESSAGE)

        capped = " (limited by daily cap)." if len(contacted) < len(recruiters) else "."
        return _step(
            StepKind.MESSAGE_RECRUITERS,
            StepStatus.SUCCESS,
            f"Prepared {len(contacted)} recruiter outreach messages{capped}",
            {"recruiters": [recruiter.name for recruiter in contacted]},
        )

    def execute(self, query: str, location: str) -> None:
        self.run.steps.append(self.authenticate())
        self.run.steps.append(self.discover(query, location))
        if self.request.submit_applications:
            self.run.steps.append(self.submit_application())
        if self.request.send_recruiter_messages:
            self.run.steps.append(self.message_recruiters(query))

        self._enter(BrowserPhase.FINALIZING)
        self.session.save_state(self.settings.linkedin_storage_state_path)


def _store_and_publish(db: Session, bus: AutomationBus, run: BrowserRunRecord) -> None:
    try:
        crud.save_browser_run(db, **row_fields(run))
    except Exception:
        db.rollback()
        logger.exception("browser_run_save_failed", extra={"extra": {"run_id": run.id}})
    bus.publish_run(EventSource.BROWSER, run)


def run_linkedin_browser_automation(
    db: Session,
    payload: BrowserRunRequest | dict[str, Any] | None,
    *,
    bus: AutomationBus | None = None,
    clock: Clock = system_clock,
    settings: Settings | None = None,
    session_factory: SessionFactory = open_linkedin_session,
) -> BrowserRunRecord:
    request: BrowserRunRequest = parse_payload(BrowserRunRequest, payload)
    bus = bus or get_automation_bus()
    settings = settings or get_settings()
    query, location = resolve_search(db, request)

    run = BrowserRunRecord(
        id=crud.create_id("lnbrowser"),
        created_at=clock.now().isoformat(),
        query=query,
        location=location,
        status=RunStatus.RUNNING,
    )

    if request.dry_run:
        run.status = RunStatus.PARTIAL
        run.steps.append(
            _step(
                StepKind.PLAN,
                StepStatus.SUCCESS,
                "Dry run mode. LinkedIn browser session was not started. Approve and rerun without dryRun.",
                {"query": query, "location": location, "max_jobs": job_limit(request.max_jobs)},
            )
        )
        _store_and_publish(db, bus, run)
        return run

    _store_and_publish(db, bus, run)
    logger.info(
        "browser_run_started",
        extra={"extra": {"run_id": run.id, "query": query, "location": location}},
    )

    session: BrowserSession | None = None
    automation: LinkedInBrowserRun | None = None
    try:
        session = session_factory(settings)
        automation = LinkedInBrowserRun(db, request, run, session=session, settings=settings, clock=clock)
        automation.execute(query, location)
        run.status = fold_run_status(run.steps)
    except Exception as exc:
        db.rollback()
        phase = automation.phase if automation else BrowserPhase.UNAUTHENTICATED
        logger.exception(
            "browser_run_failed",
            extra={"extra": {"run_id": run.id, "phase": phase.value}},
        )
        output: dict[str, Any] = {"phase": phase.value}
        if isinstance(exc, CheckpointChallengeError):
            output["requires_manual_intervention"] = True
        run.steps.append(
            _step(
                StepKind.BROWSER_SESSION,
                StepStatus.ERROR,
                str(exc) or "LinkedIn browser automation failed",
                output,
            )
        )
        run.status = RunStatus.ERROR
    finally:
        if session is not None:
            try:
                session.close()
            except Exception:
                logger.warning("browser_session_close_failed", extra={"extra": {"run_id": run.id}}, exc_info=True)

    _store_and_publish(db, bus, run)
    try:
        add_activity(
            db,
            type=ActivityType.NETWORK,
            title=f"LinkedIn browser automation {run.status.value} ({len(run.discovered_jobs)} jobs discovered)",
            icon="sparkles",
            clock=clock,
        )
    except Exception:
        db.rollback()
        logger.exception("browser_run_activity_failed", extra={"extra": {"run_id": run.id}})

    logger.info(
        "browser_run_finished",
        extra={"extra": {"run_id": run.id, "status": run.status.value, "jobs": len(run.discovered_jobs)}},
    )
    return run


def list_browser_runs(db: Session, limit: int | None = None) -> list[BrowserRunRecord]:
    return [BrowserRunRecord.model_validate(row) for row in crud.list_browser_runs(db, limit=limit)]
