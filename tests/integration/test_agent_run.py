import logging

import pytest

from found.agents import graph
from found.agents.graph import get_agent_run, list_agent_runs, run_linkedin_agent
from found.core.enums import (
    ApplicationSource,
    EventSource,
    OutreachKind,
    RunStatus,
    StepKind,
    StepStatus,
)
from found.core.errors import InvalidInputError, NotFoundError
from found.db import crud
from found.services.activity import list_activity


def _steps(run):
    return {step.id: step for step in run.steps}


def _autopilot(**overrides):
    payload = {"jobId": "job-acme", "mode": "autopilot"}
    payload.update(overrides)
    return payload


def test_autopilot_without_human_approval_submits_and_succeeds(db, clock, bus, seed_catalog):
    seed_catalog()

    run = run_linkedin_agent(db, _autopilot(), bus=bus, clock=clock)

    assert run.status == RunStatus.SUCCESS
    assert [step.id for step in run.steps] == [
        StepKind.DISCOVER_JOBS,
        StepKind.FILL_APPLICATION,
        StepKind.CONTACT_RECRUITERS,
        StepKind.REQUEST_REFERRALS,
    ]
    assert all(step.status == StepStatus.SUCCESS for step in run.steps)
    assert run.company == "Acme"
    assert run.role == "Staff Engineer"

    applications = crud.list_applications(db)
    assert len(applications) == 1
    assert applications[0].applied_date == "2025-03-14"
    assert applications[0].source == ApplicationSource.AUTOMATION
    assert applications[0].automation_run_id == run.id

    assert run.summary.applications_submitted == 1
    assert run.summary.recruiter_messages_prepared == 2
    assert run.summary.referral_requests_prepared == 2
    assert run.summary.job_matches_found == 2

    checklist = _steps(run)[StepKind.FILL_APPLICATION].output
    assert checklist["missing_fields"] == ["proof_of_rust"]


def test_assist_mode_leaves_every_action_pending(db, clock, bus, seed_catalog):
    seed_catalog()

    run = run_linkedin_agent(db, {"jobId": "job-acme", "mode": "assist"}, bus=bus, clock=clock)

    steps = _steps(run)
    assert run.status == RunStatus.PARTIAL
    assert steps[StepKind.FILL_APPLICATION].status == StepStatus.PENDING_APPROVAL
    assert steps[StepKind.CONTACT_RECRUITERS].status == StepStatus.PENDING_APPROVAL
    assert steps[StepKind.REQUEST_REFERRALS].status == StepStatus.PENDING_APPROVAL
    assert crud.list_applications(db) == []
    assert crud.list_follow_ups(db) == []
    assert crud.list_referrals(db) == []
    assert run.summary.recruiter_messages_prepared == 2
    assert run.summary.referral_requests_prepared == 2


def test_autopilot_respects_configured_human_approval(db, clock, bus, seed_catalog):
    seed_catalog(require_human_approval=True)

    run = run_linkedin_agent(
        db,
        _autopilot(approvals={"submitApplication": True}),
        bus=bus,
        clock=clock,
    )

    steps = _steps(run)
    assert steps[StepKind.FILL_APPLICATION].status == StepStatus.SUCCESS
    assert steps[StepKind.CONTACT_RECRUITERS].status == StepStatus.PENDING_APPROVAL
    assert steps[StepKind.REQUEST_REFERRALS].status == StepStatus.PENDING_APPROVAL
    assert run.status == RunStatus.PARTIAL


def test_outreach_falls_back_to_talent_team(db, clock, bus, seed_catalog):
    seed_catalog(recruiters=False)

    run = run_linkedin_agent(db, _autopilot(), bus=bus, clock=clock)

    follow_ups = crud.list_follow_ups(db)
    assert [follow_up.contact_name for follow_up in follow_ups] == ["Acme Talent Team"]
    assert follow_ups[0].scheduled_date == "2025-03-14"
    kinds = sorted(entry.kind for entry in crud.list_outreach_history(db))
    assert kinds == [OutreachKind.CONNECTION_REQUEST, OutreachKind.MESSAGE]
    assert _steps(run)[StepKind.CONTACT_RECRUITERS].status == StepStatus.SUCCESS


def test_outreach_history_adds_connection_requests_for_unconnected_targets(db, clock, bus, seed_catalog):
    seed_catalog()

    run_linkedin_agent(db, _autopilot(), bus=bus, clock=clock)

    history = crud.list_outreach_history(db)
    by_contact = {}
    for entry in history:
        by_contact.setdefault(entry.contact_name, []).append(entry.kind)
    assert sorted(by_contact["Priya Shah"]) == [OutreachKind.CONNECTION_REQUEST, OutreachKind.MESSAGE]
    assert by_contact["Marcus Lee"] == [OutreachKind.MESSAGE]


def test_outreach_blocked_when_daily_limit_used(db, clock, bus, seed_catalog):
    seed_catalog()
    config = crud.get_agent_config(db)
    config.daily_outreach_limit = 1
    db.commit()
    crud.create_follow_up(
        db,
        contact_name="Someone Else",
        company="Globex",
        scheduled_date=clock.today(),
        type="Follow-up",
        ai_message="Checking in.",
    )

    run = run_linkedin_agent(db, _autopilot(), bus=bus, clock=clock)

    step = _steps(run)[StepKind.CONTACT_RECRUITERS]
    assert step.status == StepStatus.BLOCKED
    assert step.detail == "Daily outreach limit reached (1)."
    assert len(crud.list_follow_ups(db)) == 1
    assert run.status == RunStatus.PARTIAL


def test_outreach_partially_sent_under_daily_cap(db, clock, bus, seed_catalog):
    seed_catalog()
    config = crud.get_agent_config(db)
    config.daily_outreach_limit = 1
    db.commit()

    run = run_linkedin_agent(db, _autopilot(), bus=bus, clock=clock)

    step = _steps(run)[StepKind.CONTACT_RECRUITERS]
    assert step.status == StepStatus.SUCCESS
    assert step.detail == "Queued 1 recruiter messages (limited by daily cap)."
    assert [follow_up.contact_name for follow_up in crud.list_follow_ups(db)] == ["Priya Shah"]


def test_application_blocked_when_daily_quota_exhausted(db, clock, bus, seed_catalog):
    seed_catalog()
    config = crud.get_agent_config(db)
    config.daily_application_limit = 1
    db.commit()
    crud.create_application(
        db,
        job=crud.get_job(db, "job-globex"),
        today=clock.today(),
        next_step="Awaiting response",
        notes="",
    )

    run = run_linkedin_agent(db, _autopilot(), bus=bus, clock=clock)

    step = _steps(run)[StepKind.FILL_APPLICATION]
    assert step.status == StepStatus.BLOCKED
    assert step.detail == "Daily application limit reached (1)."
    assert len(crud.list_applications(db)) == 1
    assert run.summary.applications_submitted == 0


def test_second_run_skips_existing_application(db, clock, bus, seed_catalog):
    seed_catalog()

    run_linkedin_agent(db, _autopilot(), bus=bus, clock=clock)
    second = run_linkedin_agent(db, _autopilot(), bus=bus, clock=clock)

    step = _steps(second)[StepKind.FILL_APPLICATION]
    assert step.status == StepStatus.SKIPPED
    assert step.detail == "An application already exists for this role."
    assert len(crud.list_applications(db)) == 1
    assert second.summary.applications_submitted == 0


def test_disabled_actions_are_skipped(db, clock, bus, seed_catalog):
    seed_catalog()

    run = run_linkedin_agent(
        db,
        _autopilot(actions={"contactRecruiters": False, "requestReferrals": False}),
        bus=bus,
        clock=clock,
    )

    steps = _steps(run)
    assert steps[StepKind.CONTACT_RECRUITERS].status == StepStatus.SKIPPED
    assert steps[StepKind.CONTACT_RECRUITERS].detail == "Skipped by action settings."
    assert steps[StepKind.REQUEST_REFERRALS].status == StepStatus.SKIPPED
    assert run.status == RunStatus.SUCCESS
    assert crud.list_follow_ups(db) == []


def test_referral_skipped_without_connected_colleagues(db, clock, bus, seed_catalog):
    seed_catalog(recruiters=False, colleagues=False)

    run = run_linkedin_agent(db, _autopilot(), bus=bus, clock=clock)

    step = _steps(run)[StepKind.REQUEST_REFERRALS]
    assert step.status == StepStatus.SKIPPED
    assert step.detail == "No connected referrals found at Acme."


def test_search_query_picks_best_matching_job(db, clock, bus, seed_catalog):
    seed_catalog()

    run = run_linkedin_agent(db, {"searchQuery": "python", "mode": "assist"}, bus=bus, clock=clock)

    assert run.job_id == "job-globex"
    assert run.summary.job_matches_found == 1


def test_run_round_trips_through_store(db, clock, bus, seed_catalog):
    seed_catalog()

    run = run_linkedin_agent(db, _autopilot(), bus=bus, clock=clock)

    stored = get_agent_run(db, run.id)
    assert stored == run
    assert list_agent_runs(db)[0].id == run.id
    assert stored.created_at == clock.now().isoformat()


def test_runs_are_listed_most_recent_first(db, clock, bus, seed_catalog):
    seed_catalog()

    first = run_linkedin_agent(db, {"jobId": "job-acme"}, bus=bus, clock=clock)
    second = run_linkedin_agent(db, {"jobId": "job-globex"}, bus=bus, clock=clock)

    assert [run.id for run in list_agent_runs(db)] == [second.id, first.id]
    assert [run.id for run in list_agent_runs(db, limit=1)] == [second.id]


def test_unknown_job_raises_before_any_record(db, clock, bus, seed_catalog):
    seed_catalog()

    with pytest.raises(NotFoundError):
        run_linkedin_agent(db, {"jobId": "missing"}, bus=bus, clock=clock)

    assert list_agent_runs(db) == []


def test_empty_catalog_raises_not_found(db, clock, bus):
    with pytest.raises(NotFoundError):
        run_linkedin_agent(db, {}, bus=bus, clock=clock)


def test_invalid_payload_raises_before_any_record(db, clock, bus, seed_catalog):
    seed_catalog()

    with pytest.raises(InvalidInputError):
        run_linkedin_agent(db, {"jobId": "job-acme", "mode": "yolo"}, bus=bus, clock=clock)
    with pytest.raises(InvalidInputError):
        run_linkedin_agent(db, {"jobId": "job-acme", "unexpected": True}, bus=bus, clock=clock)

    assert list_agent_runs(db) == []


def test_failing_step_is_isolated(db, clock, bus, seed_catalog, monkeypatch, caplog):
    seed_catalog()

    def boom(*args, **kwargs):
        raise RuntimeError("network store unavailable")

    monkeypatch.setattr("found.agents.nodes.outreach.recruiter_targets", boom)

    with caplog.at_level(logging.INFO):
        run = run_linkedin_agent(db, _autopilot(), bus=bus, clock=clock)

    steps = _steps(run)
    assert steps[StepKind.CONTACT_RECRUITERS].status == StepStatus.ERROR
    assert steps[StepKind.CONTACT_RECRUITERS].detail == "network store unavailable"
    assert steps[StepKind.REQUEST_REFERRALS].status == StepStatus.SUCCESS
    assert run.status == RunStatus.ERROR
    assert get_agent_run(db, run.id).status == RunStatus.ERROR

    finished = [record for record in caplog.records if record.getMessage() == "agent_run_finished"]
    assert finished[-1].extra["errors"] == ["contact_recruiters: network store unavailable"]


def test_progress_is_published_after_every_step(db, clock, bus, seed_catalog):
    seed_catalog()
    subscription = bus.subscribe()

    run = run_linkedin_agent(db, _autopilot(), bus=bus, clock=clock)

    events = []
    while True:
        event = subscription.get(timeout=0.05)
        if event is None:
            break
        events.append(event)
    subscription.close()

    assert all(event.source == EventSource.AGENT for event in events)
    assert all(event.run.id == run.id for event in events)
    assert events[0].run.status == RunStatus.RUNNING
    assert events[0].run.steps == []
    assert [len(event.run.steps) for event in events[1:5]] == [1, 2, 3, 4]
    assert events[-1].run.status == RunStatus.SUCCESS
    assert len(events) == 6


def test_finished_run_appends_activity(db, clock, bus, seed_catalog):
    seed_catalog()

    run_linkedin_agent(db, _autopilot(), bus=bus, clock=clock)

    titles = [activity.title for activity in list_activity(db)]
    assert titles[0] == "LinkedIn agent success for Staff Engineer at Acme"
    assert "Applied to Staff Engineer at Acme" in titles


def test_config_update_round_trip(db):
    graph.update_agent_config(db, {"dailyApplicationLimit": 3, "preferredMessageTone": "casual"})

    config = graph.get_agent_config(db)
    assert config.daily_application_limit == 3
    assert config.preferred_message_tone.value == "casual"
    assert config.daily_outreach_limit == 20

    with pytest.raises(InvalidInputError):
        graph.update_agent_config(db, {"dailyOutreachLimit": -1})
