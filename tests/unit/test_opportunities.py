import pytest

from found.core.enums import ConnectionStatus, MessageTone
from found.core.errors import NotFoundError
from found.db import crud
from found.services.drafting import (
    OutreachTarget,
    build_application_checklist,
    draft_recruiter_message,
    normalize_gap,
)
from found.services.opportunities import (
    discover_opportunities,
    recruiter_targets,
    referral_candidates,
    resolve_primary_job,
)


def test_discover_ranks_by_match_score_and_counts_contacts(db, seed_catalog):
    seed_catalog()

    opportunities = discover_opportunities(db)

    assert [item.job.id for item in opportunities] == ["job-acme", "job-globex"]
    assert opportunities[0].recruiter_matches == 2
    assert opportunities[0].referral_matches == 2
    assert opportunities[0].label() == "Staff Engineer @ Acme"
    assert opportunities[1].recruiter_matches == 0


def test_discover_filters_by_title_company_or_skill(db, seed_catalog):
    seed_catalog()

    assert [item.job.id for item in discover_opportunities(db, "KUBERNETES")] == ["job-acme"]
    assert [item.job.id for item in discover_opportunities(db, "globex")] == ["job-globex"]
    assert discover_opportunities(db, "haskell") == []


def test_discover_respects_limit(db, seed_catalog):
    seed_catalog()

    assert len(discover_opportunities(db, limit=1)) == 1


def test_resolve_primary_job(db, seed_catalog):
    seed_catalog()

    assert resolve_primary_job(db, "job-globex").id == "job-globex"
    assert resolve_primary_job(db, search_query="python").id == "job-globex"
    # No match for the query falls back to the best job overall.
    assert resolve_primary_job(db, search_query="haskell").id == "job-acme"
    with pytest.raises(NotFoundError):
        resolve_primary_job(db, "nope")


def test_recruiter_and_referral_targets(db, seed_catalog):
    seed_catalog()
    crud.add_connection(
        db,
        name="Lee Wong",
        headline="Talent Acquisition",
        company="Globex",
        relevance_score=99,
        status=ConnectionStatus.CONNECTED,
        tags=["talent partner"],
    )

    assert [conn.name for conn in recruiter_targets(db, "Acme")] == ["Priya Shah", "Marcus Lee"]
    assert [conn.name for conn in referral_candidates(db, "Acme")] == ["Marcus Lee", "Dana Kim"]
    assert [conn.name for conn in recruiter_targets(db, "Globex")] == ["Lee Wong"]


def test_application_checklist_reports_skill_gaps(db, seed_catalog):
    job = seed_catalog()

    checklist = build_application_checklist(job)

    assert "resume" in checklist["required_fields"]
    assert checklist["missing_fields"] == ["proof_of_rust"]
    assert checklist["warnings"] == ["Profile gaps detected for: Rust"]
    assert normalize_gap("Service  Mesh") == "proof_of_service_mesh"


def test_recruiter_message_varies_by_tone():
    kwargs = {"name": "Priya", "company": "Acme", "role": "Staff Engineer", "sender": "Alex Carter"}

    professional = draft_recruiter_message(tone=MessageTone.PROFESSIONAL, **kwargs)
    casual = draft_recruiter_message(tone=MessageTone.CASUAL, **kwargs)
    formal = draft_recruiter_message(tone=MessageTone.FORMAL, **kwargs)

    assert len({professional, casual, formal}) == 3
    assert professional.startswith("Hi Priya")
    assert formal.startswith("Hello Priya")
    assert all(message.endswith("Best regards,\nAlex Carter") for message in (professional, casual, formal))


def test_talent_team_target_is_synthetic():
    target = OutreachTarget.talent_team("Acme")

    assert target.name == "Acme Talent Team"
    assert target.synthetic is True
    assert target.status == ConnectionStatus.SUGGESTED
