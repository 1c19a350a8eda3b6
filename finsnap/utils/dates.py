"""Calendar helpers."""

from datetime import date, timedelta


def month_end(value: date) -> date:
    next_month = value.replace(day=28) + timedelta(days=4)
    return next_month.replace(day=1) - timedelta(days=1)


def add_months(value: date, months: int) -> date:
    """Shift by whole months, clamping to the last day of shorter months."""
    year = value.year + (value.month - 1 + months) // 12
    month = (value.month - 1 + months) % 12 + 1
    day = min(value.day, month_end(date(year, month, 1)).day)
    return date(year, month, day)
