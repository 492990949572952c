from datetime import date, datetime

from rentify.utils.errors import ApiError


def today() -> date:
    """Current calendar date (UTC). Tests pin it through monkeypatch."""
    return datetime.utcnow().date()


def utcnow() -> datetime:
    return datetime.utcnow()


def parse_date(value, field_name: str) -> date:
    """Accepts YYYY-MM-DD or a full ISO timestamp; keeps only the date part."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    raw = str(value or "").strip()
    if not raw:
        raise ApiError(f"'{field_name}' is required", 400)
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        raise ApiError("Invalid date format", 400, errors={field_name: ["Use YYYY-MM-DD"]})


def iso(value) -> str | None:
    return value.isoformat() if value else None
