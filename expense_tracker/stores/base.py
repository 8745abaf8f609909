# expense_tracker/stores/base.py
from abc import ABC, abstractmethod


class TemplateStore(ABC):
    @abstractmethod
    def list_active(self, user_id):
        """Return the user's active RecurringTemplate objects."""
        pass

    @abstractmethod
    def list_all(self, user_id):
        pass

    @abstractmethod
    def get(self, template_id):
        """Return the template or raise TemplateNotFoundError."""
        pass

    @abstractmethod
    def create(self, template):
        """Store a new template and return it with its id set."""
        pass

    @abstractmethod
    def update(self, template):
        """Replace payload, schedule and active flag; last_generated is kept."""
        pass

    @abstractmethod
    def update_last_generated(self, template_id, generated_on):
        pass

    @abstractmethod
    def set_active(self, template_id, active):
        pass

    @abstractmethod
    def delete(self, template_id):
        pass


class LedgerStore(ABC):
    @abstractmethod
    def insert(self, entry):
        """
        Store a LedgerEntry and return it with its id set.
        Raises DuplicateOccurrenceError if an entry with the same
        (template_id, period) already exists.
        """
        pass

    @abstractmethod
    def list_entries(self, user_id, start_date=None, end_date=None, category=None):
        """Return entries ordered by date, oldest first."""
        pass

    @abstractmethod
    def delete(self, entry_id):
        pass
