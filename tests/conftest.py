from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from found.core.clock import Clock
from found.core.enums import ConnectionStatus
from found.db import crud
from found.db.session import init_db
from found.services.automation_bus import AutomationBus


class FixedClock(Clock):
    def __init__(self, moment: datetime | None = None) -> None:
        self.moment = moment or datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.moment


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def bus():
    return AutomationBus(max_subscribers=5, queue_size=50)


@pytest.fixture
def seed_catalog(db):
    """Profile, two Acme-centred jobs and (optionally) people at Acme."""

    def _seed(*, recruiters: bool = True, colleagues: bool = True, require_human_approval: bool = False):
        crud.save_profile(
            db,
            name="Alex Carter",
            headline="Senior Backend Engineer",
            location="Toronto, ON",
            email="alex@example.com",
            target_roles=["Staff Engineer"],
            preferred_companies=["Acme"],
        )
        config = crud.get_agent_config(db)
        config.require_human_approval = require_human_approval
        db.commit()

        staff = crud.add_job(
            db,
            id="job-acme",
            title="Staff Engineer",
            company="Acme",
            logo="AC",
            match_score=92,
            skills=["Go", "Kubernetes"],
            skill_gap=["Rust"],
        )
        crud.add_job(
            db,
            id="job-globex",
            title="Backend Engineer",
            company="Globex",
            logo="GL",
            match_score=70,
            skills=["Python"],
        )

        if recruiters:
            crud.add_connection(
                db,
                id="conn-priya",
                name="Priya Shah",
                headline="Technical Recruiter",
                company="Acme",
                relevance_score=94,
                status=ConnectionStatus.SUGGESTED,
                tags=["Recruiter"],
            )
            crud.add_connection(
                db,
                id="conn-marcus",
                name="Marcus Lee",
                headline="Engineering Manager",
                company="Acme",
                relevance_score=88,
                status=ConnectionStatus.CONNECTED,
                tags=["Hiring Manager"],
            )
        if colleagues:
            crud.add_connection(
                db,
                id="conn-dana",
                name="Dana Kim",
                headline="Senior Engineer",
                company="Acme",
                relevance_score=76,
                status=ConnectionStatus.CONNECTED,
                tags=["Engineering"],
            )
        return staff

    return _seed
