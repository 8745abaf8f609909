# expense_tracker/cli.py
import functools
import logging
from datetime import date

import click
from dotenv import load_dotenv

from expense_tracker.config import DEFAULT_CONFIG, load_config, save_config
from expense_tracker.core.models import LedgerEntry, RecurringTemplate
from expense_tracker.core.schedule import Frequency, build_schedule, describe, parse_weekday
from expense_tracker.errors import ExpenseTrackerError, ValidationError
from expense_tracker.manual import load_recurring_templates
from expense_tracker.recurring import MaterializationService
from expense_tracker.stores import get_stores
from expense_tracker.utils import (
    month_bounds,
    month_summary,
    parse_amount,
    parse_month,
)

_DATE = click.DateTime(formats=['%Y-%m-%d'])


class Context:
    def __init__(self, config):
        self.config = config
        self.user_id = config['user_id']
        self.categories = list(config.get('categories') or [])
        self.template_store, self.ledger_store = get_stores(config)
        self.service = MaterializationService(self.template_store, self.ledger_store)

    def refresh(self, today=None):
        """Run the recurring engine, as the expense view does whenever it opens."""
        report = self.service.run_once(self.user_id, today)
        for result in report.materialized:
            entry = result.entry
            click.echo(
                f"Logged recurring {entry.category} {entry.amount:.2f} on "
                f"{entry.date.isoformat()} {entry.description}".rstrip()
            )
        for result in report.failed:
            click.echo(
                f"⚠️  Recurring item {result.template.id} ({result.template.category}) "
                f"failed: {result.error}",
                err=True,
            )
        return report


def handle_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ExpenseTrackerError as e:
            raise click.ClickException(str(e))
    return wrapper


def _schedule_options(func):
    func = click.option('--month', type=int, default=None,
                        help='Month 1-12 (yearly)')(func)
    func = click.option('--day', type=int, default=None,
                        help='Day of month 1-28 (monthly, yearly)')(func)
    func = click.option('--weekday', default=None,
                        help='Day of week: 0=Sunday..6=Saturday or a name (weekly)')(func)
    return func


def _to_date(value):
    return value.date() if value is not None else None


def _format_template(t):
    status = 'active' if t.active else 'paused'
    last = t.last_generated.isoformat() if t.last_generated else 'never'
    return (
        f"{t.id:>4}  {status:<6}  {t.category:<14} {t.amount:>10.2f}  "
        f"{describe(t.schedule):<22} last: {last:<10}  {t.description}"
    ).rstrip()


def _format_entry(e):
    marker = ' (recurring)' if e.template_id is not None else ''
    return (
        f"{e.id:>4}  {e.date.isoformat()}  {e.category:<14} {e.amount:>10.2f}  "
        f"{e.description}{marker}"
    ).rstrip()


def _require_category(category, allowed=()):
    """Strip and check a category; an empty allowed list accepts any name."""
    category = (category or '').strip()
    if not category:
        raise ValidationError('Category cannot be empty.')
    if allowed and category not in allowed:
        raise ValidationError(
            f"Unknown category '{category}'. Expected one of: {', '.join(allowed)}. "
            "Add it under 'categories' in the config to use it."
        )
    return category


@click.group()
@click.option(
    '--config', 'config_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='Path to config.yaml (defaults are used when missing)'
)
@click.option(
    '--db', 'db_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='SQLite database file (overrides config)'
)
@click.option('--user', 'user_id', default=None, help='User id to act as (overrides config)')
@click.option(
    '--env-file', 'env_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Optional .env file with DUEBOOK_* settings'
)
@click.pass_context
def main(ctx, config_path, db_path, user_id, env_file):
    """
    Track expenses and let recurring ones log themselves: every view of the
    ledger first materializes whatever recurring items have come due.
    """
    if env_file:
        load_dotenv(env_file)
    try:
        cfg = load_config(config_path)
    except ValueError as e:
        raise click.ClickException(str(e))
    if db_path:
        cfg['db_path'] = db_path
    if user_id:
        cfg['user_id'] = user_id

    try:
        logging.basicConfig(level=str(cfg['log_level']).upper(), force=True)
    except ValueError as e:
        raise click.ClickException(f"Invalid log_level: {e}")
    ctx.obj = Context(cfg)


@main.command('init-config')
@click.argument('path', type=click.Path(dir_okay=False))
def init_config(path):
    """Write a config file with the default settings."""
    save_config(DEFAULT_CONFIG, path)
    click.echo(f"Wrote default config to {path}.")


@main.command('run')
@click.option('--today', type=_DATE, default=None, help='Evaluate as of this date (YYYY-MM-DD)')
@click.pass_obj
@handle_errors
def run(obj, today):
    """Materialize recurring expenses that have come due."""
    report = obj.refresh(_to_date(today))
    click.echo(report.summary())


@main.command('add-recurring')
@click.option('--category', required=True)
@click.option('--amount', required=True)
@click.option('--description', default='')
@click.option(
    '--frequency',
    required=True,
    type=click.Choice([f.value for f in Frequency]),
)
@_schedule_options
@click.pass_obj
@handle_errors
def add_recurring(obj, category, amount, description, frequency, weekday, day, month):
    """Create a recurring expense."""
    schedule = build_schedule(
        frequency,
        weekday=parse_weekday(weekday) if weekday is not None else None,
        day=day,
        month=month,
    )
    template = obj.template_store.create(
        RecurringTemplate(
            user_id=obj.user_id,
            category=_require_category(category, obj.categories),
            amount=parse_amount(amount),
            description=description,
            schedule=schedule,
        )
    )
    click.echo(
        f"Added recurring expense {template.id}: {template.amount:.2f} "
        f"{template.category} {describe(template.schedule)}."
    )


@main.command('edit-recurring')
@click.argument('template_id', type=int)
@click.option('--category', default=None)
@click.option('--amount', default=None)
@click.option('--description', default=None)
@click.option(
    '--frequency',
    default=None,
    type=click.Choice([f.value for f in Frequency]),
)
@_schedule_options
@click.pass_obj
@handle_errors
def edit_recurring(obj, template_id, category, amount, description, frequency, weekday, day, month):
    """Change a recurring expense; unspecified fields keep their value."""
    template = obj.template_store.get(template_id)
    if category is not None:
        template.category = _require_category(category, obj.categories)
    if amount is not None:
        template.amount = parse_amount(amount)
    if description is not None:
        template.description = description
    if any(v is not None for v in (frequency, weekday, day, month)):
        current = template.schedule
        template.schedule = build_schedule(
            frequency or template.frequency,
            weekday=parse_weekday(weekday) if weekday is not None else getattr(current, 'weekday', None),
            day=day if day is not None else getattr(current, 'day', None),
            month=month if month is not None else getattr(current, 'month', None),
        )
    template = obj.template_store.update(template)
    click.echo(_format_template(template))


@main.command('list-recurring')
@click.pass_obj
@handle_errors
def list_recurring(obj):
    """List recurring expenses."""
    templates = obj.template_store.list_all(obj.user_id)
    if not templates:
        click.echo('No recurring expenses.')
        return
    for t in templates:
        click.echo(_format_template(t))


@main.command('pause')
@click.argument('template_id', type=int)
@click.pass_obj
@handle_errors
def pause(obj, template_id):
    """Stop a recurring expense from being logged."""
    obj.template_store.set_active(template_id, False)
    click.echo(f"Recurring expense {template_id} paused.")


@main.command('resume')
@click.argument('template_id', type=int)
@click.pass_obj
@handle_errors
def resume(obj, template_id):
    """Start logging a paused recurring expense again."""
    obj.template_store.set_active(template_id, True)
    click.echo(f"Recurring expense {template_id} activated.")


@main.command('delete-recurring')
@click.argument('template_id', type=int)
@click.pass_obj
@handle_errors
def delete_recurring(obj, template_id):
    """Delete a recurring expense. Entries it already logged are kept."""
    obj.template_store.delete(template_id)
    click.echo(f"Recurring expense {template_id} deleted.")


@main.command('import-recurring')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
@handle_errors
def import_recurring(obj, path):
    """Create recurring expenses from a YAML file."""
    templates = load_recurring_templates(path, obj.user_id)
    # check the whole file before creating anything
    for t in templates:
        _require_category(t.category, obj.categories)
    for t in templates:
        obj.template_store.create(t)
    click.echo(f"Imported {len(templates)} recurring expense(s).")


@main.command('categories')
@click.pass_obj
def categories(obj):
    """List the categories expenses can be filed under."""
    if not obj.categories:
        click.echo('Any category is accepted.')
        return
    for name in obj.categories:
        click.echo(name)


@main.command('add-expense')
@click.option('--category', required=True)
@click.option('--amount', required=True)
@click.option('--description', default='')
@click.option('--date', 'on', type=_DATE, default=None, help='YYYY-MM-DD, defaults to today')
@click.pass_obj
@handle_errors
def add_expense(obj, category, amount, description, on):
    """Log a one-off expense."""
    entry = obj.ledger_store.insert(
        LedgerEntry(
            user_id=obj.user_id,
            category=_require_category(category, obj.categories),
            amount=parse_amount(amount),
            description=description,
            date=_to_date(on) or date.today(),
        )
    )
    click.echo(f"Added expense {entry.id}: {entry.amount:.2f} to {entry.category}.")


@main.command('delete-expense')
@click.argument('entry_id', type=int)
@click.pass_obj
@handle_errors
def delete_expense(obj, entry_id):
    """Delete a ledger entry."""
    obj.ledger_store.delete(entry_id)
    click.echo(f"Expense {entry_id} deleted.")


@main.command('expenses')
@click.option('--month', default=None, help='Only show YYYY-MM')
@click.option('--category', default=None)
@click.option('--today', type=_DATE, default=None, help='Evaluate recurring items as of YYYY-MM-DD')
@click.pass_obj
@handle_errors
def expenses(obj, month, category, today):
    """Log due recurring expenses, then list the ledger."""
    obj.refresh(_to_date(today))
    start = end = None
    if month:
        start, end = month_bounds(*parse_month(month))
    entries = obj.ledger_store.list_entries(obj.user_id, start, end, category)
    if not entries:
        click.echo('No expenses.')
        return
    for e in entries:
        click.echo(_format_entry(e))
    click.echo(f"Total: {sum(e.amount for e in entries):.2f}")


@main.command('summary')
@click.option('--month', default=None, help='YYYY-MM, defaults to the current month')
@click.option('--today', type=_DATE, default=None, help='Evaluate recurring items as of YYYY-MM-DD')
@click.pass_obj
@handle_errors
def summary(obj, month, today):
    """Log due recurring expenses, then summarize a month."""
    report = obj.refresh(_to_date(today))
    year, mon = parse_month(month) if month else (report.today.year, report.today.month)
    entries = obj.ledger_store.list_entries(obj.user_id)
    stats = month_summary(entries, year, mon, obj.config['budget'])

    click.echo(f"{stats['month']}: {stats['total']:.2f} across {stats['entries']} expense(s)")
    if stats['balance'] is not None:
        state = 'left' if stats['balance'] >= 0 else 'over budget'
        click.echo(
            f"Budget: {stats['budget']:.2f}, balance: {stats['balance']:.2f} ({state})"
        )
    if stats['change'] is None:
        click.echo('No spending recorded the previous month.')
    else:
        click.echo(f"Change vs previous month: {stats['change'] * 100:+.1f}%")
    for row in stats['categories']:
        click.echo(f"  {row['category']:<14} {row['total']:>10.2f}  {row['share'] * 100:5.1f}%")


if __name__ == '__main__':
    main()
