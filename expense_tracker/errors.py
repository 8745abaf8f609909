# expense_tracker/errors.py


class ExpenseTrackerError(Exception):
    """Base class for every error raised by expense_tracker."""


class ValidationError(ExpenseTrackerError, ValueError):
    """Malformed user input: schedule, frequency, amount or date."""


class PersistenceError(ExpenseTrackerError):
    """A store failed to read or write."""


class DuplicateOccurrenceError(PersistenceError):
    """The ledger already holds an entry for this template and period."""

    def __init__(self, template_id, period):
        super().__init__(
            f"Ledger already has an entry for template {template_id} in {period}"
        )
        self.template_id = template_id
        self.period = period


class TemplateNotFoundError(PersistenceError):
    def __init__(self, template_id):
        super().__init__(f"Recurring template not found: {template_id}")
        self.template_id = template_id
