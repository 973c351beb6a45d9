from datetime import date, datetime, timezone


class Clock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> str:
        return iso_date(self.now())


def iso_date(value: datetime | date) -> str:
    return value.isoformat()[:10]


system_clock = Clock()
