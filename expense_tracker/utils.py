# expense_tracker/utils.py
import calendar
from collections import defaultdict
from datetime import date, datetime

from expense_tracker.errors import ValidationError


def parse_date(value, field_name='date'):
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"Unrecognized {field_name}: {value!r} (expected YYYY-MM-DD)")


def parse_amount(value):
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Amount must be a number, got {value!r}") from None
    if amount <= 0:
        raise ValidationError("Amount must be positive.")
    return amount


def parse_month(month_str):
    """Return (year, month) for a YYYY-MM string."""
    try:
        year, month = map(int, month_str.split('-'))
        date(year, month, 1)
    except (AttributeError, ValueError):
        raise ValidationError(f"Invalid month '{month_str}' (expected YYYY-MM)") from None
    return year, month


def month_bounds(year, month):
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def previous_month(year, month):
    if month == 1:
        return year - 1, 12
    return year, month - 1


def month_summary(entries, year, month, budget=0):
    """
    Totals for one month: overall spend, entry count, per-category share
    and the change against the previous month. With a budget set, the
    remaining balance (negative when overspent) is included too.
    """
    current = [e for e in entries if (e.date.year, e.date.month) == (year, month)]
    prev_year, prev_month = previous_month(year, month)
    previous = [e for e in entries if (e.date.year, e.date.month) == (prev_year, prev_month)]

    total = sum(e.amount for e in current)
    previous_total = sum(e.amount for e in previous)

    by_category = defaultdict(float)
    for e in current:
        by_category[e.category] += e.amount
    categories = [
        {
            'category': cat,
            'total': cat_total,
            'share': cat_total / total if total else 0.0,
        }
        for cat, cat_total in sorted(by_category.items(), key=lambda kv: (-kv[1], kv[0]))
    ]

    change = (total - previous_total) / previous_total if previous_total else None
    return {
        'month': f"{year}-{month:02d}",
        'total': total,
        'entries': len(current),
        'previous_total': previous_total,
        'change': change,
        'categories': categories,
        'budget': budget,
        'balance': budget - total if budget else None,
    }
