from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_month(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def days_ago(moment: datetime, days: int) -> datetime:
    return moment - timedelta(days=days)


def short_date(moment: datetime | None, placeholder: str = "") -> str:
    if moment is None:
        return placeholder
    return moment.strftime("%d/%m/%Y")
