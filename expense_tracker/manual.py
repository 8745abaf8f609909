# expense_tracker/manual.py
import yaml

from expense_tracker.core.models import RecurringTemplate
from expense_tracker.core.schedule import build_schedule, parse_weekday
from expense_tracker.errors import ValidationError
from expense_tracker.utils import parse_amount, parse_date


def template_from_entry(entry, user_id):
    """Build a RecurringTemplate from one mapping of a recurring YAML file.

    Recognized keys: category, amount, description, frequency, weekday,
    day, month, active, last_generated.
    """
    category = str(entry.get('category') or '').strip()
    if not category:
        raise ValidationError(f"Missing 'category' in recurring entry: {entry}")
    if 'frequency' not in entry:
        raise ValidationError(f"Missing 'frequency' in recurring entry: {entry}")

    active = entry.get('active', True)
    if not isinstance(active, bool):
        raise ValidationError(f"'active' must be true or false, got {active!r}")

    weekday = entry.get('weekday')
    schedule = build_schedule(
        entry['frequency'],
        weekday=parse_weekday(weekday) if weekday is not None else None,
        day=entry.get('day'),
        month=entry.get('month'),
    )
    return RecurringTemplate(
        user_id=user_id,
        category=category,
        amount=parse_amount(entry.get('amount')),
        description=str(entry.get('description') or ''),
        schedule=schedule,
        active=active,
        last_generated=parse_date(entry.get('last_generated'), 'last_generated'),
    )


def load_recurring_templates(path, user_id):
    """Load recurring templates from a YAML list."""
    with open(path) as f:
        data = yaml.safe_load(f) or []
    if not isinstance(data, list):
        raise ValidationError(f"{path} must contain a list of recurring entries")
    return [template_from_entry(entry, user_id) for entry in data]
