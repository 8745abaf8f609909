# expense_tracker/recurring.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterable, List, Optional

from expense_tracker.core.due import is_due, period_label
from expense_tracker.core.models import LedgerEntry, RecurringTemplate
from expense_tracker.errors import DuplicateOccurrenceError, PersistenceError

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    NOT_DUE = "not_due"
    MATERIALIZED = "materialized"
    # the ledger already had this occurrence; bookkeeping was caught up
    ALREADY_RECORDED = "already_recorded"
    # nothing written, template untouched
    LEDGER_FAILED = "ledger_failed"
    # entry written but last_generated is stale; next run heals it
    BOOKKEEPING_FAILED = "bookkeeping_failed"

    @property
    def failed(self) -> bool:
        return self in (Outcome.LEDGER_FAILED, Outcome.BOOKKEEPING_FAILED)


@dataclass
class TemplateResult:
    template: RecurringTemplate
    outcome: Outcome
    occurrence: Optional[date] = None
    entry: Optional[LedgerEntry] = None
    error: Optional[Exception] = None


@dataclass
class RunReport:
    today: date
    results: List[TemplateResult] = field(default_factory=list)

    @property
    def materialized(self) -> List[TemplateResult]:
        return [r for r in self.results if r.outcome is Outcome.MATERIALIZED]

    @property
    def failed(self) -> List[TemplateResult]:
        return [r for r in self.results if r.outcome.failed]

    @property
    def processed(self) -> int:
        return len(self.results) - len(self.failed)

    def summary(self) -> str:
        return (
            f"{self.processed} of {len(self.results)} recurring items processed, "
            f"{len(self.failed)} failed"
        )


def build_entry(template: RecurringTemplate, occurrence: date) -> LedgerEntry:
    return LedgerEntry(
        user_id=template.user_id,
        category=template.category,
        amount=template.amount,
        description=template.description,
        date=occurrence,
        template_id=template.id,
        period=period_label(template.frequency, occurrence),
    )


class MaterializationService:
    """Turns due recurring templates into ledger entries.

    Each due template gets a ledger insert followed, only once the insert is
    confirmed, by a last_generated update. A failure on one template is
    recorded in the report and the batch carries on.
    """

    def __init__(self, template_store, ledger_store):
        self.template_store = template_store
        self.ledger_store = ledger_store

    def run_once(self, user_id: str, today: Optional[date] = None) -> RunReport:
        today = today or date.today()
        # a failure here is fatal: nothing can be evaluated without the list
        templates = self.template_store.list_active(user_id)
        report = self.run(templates, today)
        logger.info("Recurring run for %s on %s: %s", user_id, today, report.summary())
        return report

    def run(self, templates: Iterable[RecurringTemplate], today: date) -> RunReport:
        report = RunReport(today=today)
        for template in templates:
            if not template.active:
                continue
            report.results.append(self._materialize(template, today))
        return report

    def _materialize(self, template: RecurringTemplate, today: date) -> TemplateResult:
        occurrence = is_due(template.schedule, template.last_generated, today)
        if occurrence is None:
            return TemplateResult(template, Outcome.NOT_DUE)

        entry = build_entry(template, occurrence)
        outcome = Outcome.MATERIALIZED
        try:
            entry = self.ledger_store.insert(entry)
        except DuplicateOccurrenceError:
            logger.info(
                "Template %s already has an entry for %s", template.id, entry.period
            )
            entry = None
            outcome = Outcome.ALREADY_RECORDED
        except PersistenceError as exc:
            logger.warning("Could not record template %s for %s: %s", template.id, occurrence, exc)
            return TemplateResult(template, Outcome.LEDGER_FAILED, occurrence, error=exc)

        try:
            self.template_store.update_last_generated(template.id, occurrence)
        except PersistenceError as exc:
            logger.warning(
                "Recorded template %s for %s but could not update it: %s",
                template.id, occurrence, exc,
            )
            return TemplateResult(template, Outcome.BOOKKEEPING_FAILED, occurrence, entry, exc)

        if outcome is Outcome.MATERIALIZED:
            logger.info(
                "Materialized template %s (%s %.2f) on %s",
                template.id, template.category, template.amount, occurrence,
            )
        return TemplateResult(template, outcome, occurrence, entry)
