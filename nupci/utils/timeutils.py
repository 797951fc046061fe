# nupci/utils/timeutils.py

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Hora actual en UTC como datetime naive (así se guarda en la BD)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime | None) -> datetime | None:
    """Convierte un datetime con zona a UTC naive; los naive se asumen ya en UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
