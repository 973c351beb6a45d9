import json
from pathlib import Path

import yaml
from sqlalchemy import delete

from found.agents.schemas import AgentConfigUpdate
from found.core.enums import ConnectionStatus
from found.db import crud, models
from found.db.session import SessionLocal, init_db

PROFILE_PATH = Path("data/demo_profile.yaml")
JOBS_PATH = Path("data/demo_jobs.json")


def _load_profile(profile_path: Path) -> dict:
    if profile_path.exists():
        return yaml.safe_load(profile_path.read_text(encoding="utf-8")) or {}
    return {}


def reset_demo_state(db) -> None:
    # Keep the profile and agent config rows but reset everything a run touches.
    for model in (
        models.OutreachHistory,
        models.FollowUp,
        models.Referral,
        models.Application,
        models.AgentRun,
        models.BrowserRun,
        models.AutomationRun,
        models.Activity,
        models.Connection,
        models.Job,
    ):
        db.execute(delete(model))
    db.commit()


def seed_profile(db, payload: dict) -> models.Profile:
    profile = payload.get("profile") or {}
    if not profile.get("name"):
        raise ValueError(f"Profile must include profile.name ({PROFILE_PATH})")
    return crud.save_profile(db, **profile)


def seed_agent_config(db, payload: dict) -> models.AgentConfig:
    return crud.update_agent_config(
        db, **AgentConfigUpdate.model_validate(payload.get("agent_config") or {}).model_dump(exclude_none=True)
    )


def seed_connections(db, payload: dict) -> int:
    rows = payload.get("connections") or []
    for row in rows:
        fields = dict(row)
        fields["status"] = ConnectionStatus(fields.get("status", ConnectionStatus.SUGGESTED.value))
        crud.add_connection(db, **fields)
    return len(rows)


def seed_jobs(db, jobs_path: Path) -> list[str]:
    payload = json.loads(jobs_path.read_text(encoding="utf-8"))
    return [crud.add_job(db, **job).id for job in payload]


def main() -> None:
    init_db()

    db = SessionLocal()
    try:
        payload = _load_profile(PROFILE_PATH)
        if not payload:
            raise ValueError(f"No profile data found. Provide {PROFILE_PATH}")

        reset_demo_state(db)
        profile = seed_profile(db, payload)
        seed_agent_config(db, payload)
        connection_count = seed_connections(db, payload)
        job_ids = seed_jobs(db, JOBS_PATH)

        print(f"Seed complete: profile={profile.name}, jobs={len(job_ids)}, connections={connection_count}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
