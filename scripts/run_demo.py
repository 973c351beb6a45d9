import json

from found.core.logging import setup_logging
from found.db import crud
from found.db.session import SessionLocal
from found.agents.graph import list_opportunities, run_linkedin_agent
from found.services.automation_bus import get_automation_bus


def main() -> None:
    setup_logging()
    db = SessionLocal()
    bus = get_automation_bus()
    subscription = bus.subscribe(
        lambda event: print(f"[{event.source.value}] run={event.run.id} status={event.run.status.value} steps={len(event.run.steps)}")
    )
    try:
        if crud.get_profile(db) is None:
            raise RuntimeError("No profile found. Run scripts/seed.py first")

        opportunities = list_opportunities(db)
        print(f"Top opportunities: {[opportunity.label() for opportunity in opportunities[:3]]}")

        print("Running LinkedIn agent in autopilot mode with explicit approvals...")
        run = run_linkedin_agent(
            db,
            {
                "mode": "autopilot",
                "approvals": {"submitApplication": True, "sendOutreach": True, "requestReferral": True},
            },
            bus=bus,
        )
        print(json.dumps(run.model_dump(mode="json"), indent=2))
        print("Demo flow completed.")
    finally:
        subscription.close()
        db.close()


if __name__ == "__main__":
    main()
