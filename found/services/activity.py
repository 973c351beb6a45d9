from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from found.core.clock import Clock, system_clock
from found.core.config import get_settings
from found.core.enums import ActivityType
from found.db import crud, models


def add_activity(
    db: Session,
    *,
    type: ActivityType,
    title: str,
    icon: str,
    clock: Clock = system_clock,
    limit: int | None = None,
) -> models.Activity:
    event = models.Activity(
        id=crud.create_id("act"),
        type=type,
        title=title,
        icon=icon,
        created_at=clock.now(),
    )
    db.add(event)
    db.flush()

    keep = limit if limit is not None else get_settings().activity_feed_limit
    stale = select(models.Activity.seq).order_by(models.Activity.seq.desc()).offset(keep)
    db.execute(delete(models.Activity).where(models.Activity.seq.in_(stale.scalar_subquery())))
    db.commit()
    return event


def list_activity(db: Session) -> list[models.Activity]:
    stmt = select(models.Activity).order_by(models.Activity.seq.desc())
    return list(db.scalars(stmt))
