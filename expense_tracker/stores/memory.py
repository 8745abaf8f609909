# expense_tracker/stores/memory.py
from dataclasses import replace
from itertools import count

from expense_tracker.errors import DuplicateOccurrenceError, TemplateNotFoundError
from expense_tracker.stores.base import LedgerStore, TemplateStore


class MemoryTemplateStore(TemplateStore):
    """Keeps templates in a dict; copies go in and out so callers can't mutate state."""

    def __init__(self):
        self._templates = {}
        self._ids = count(1)

    def list_active(self, user_id):
        return [t for t in self.list_all(user_id) if t.active]

    def list_all(self, user_id):
        return [
            replace(t)
            for t in self._templates.values()
            if t.user_id == user_id
        ]

    def get(self, template_id):
        try:
            return replace(self._templates[template_id])
        except KeyError:
            raise TemplateNotFoundError(template_id) from None

    def create(self, template):
        stored = replace(template, id=next(self._ids))
        self._templates[stored.id] = stored
        return replace(stored)

    def update(self, template):
        current = self._require(template.id)
        self._templates[template.id] = replace(
            template, last_generated=current.last_generated
        )
        return self.get(template.id)

    def update_last_generated(self, template_id, generated_on):
        current = self._require(template_id)
        self._templates[template_id] = replace(current, last_generated=generated_on)

    def set_active(self, template_id, active):
        current = self._require(template_id)
        self._templates[template_id] = replace(current, active=bool(active))

    def delete(self, template_id):
        self._require(template_id)
        del self._templates[template_id]

    def _require(self, template_id):
        if template_id not in self._templates:
            raise TemplateNotFoundError(template_id)
        return self._templates[template_id]


class MemoryLedgerStore(LedgerStore):
    def __init__(self):
        self._entries = {}
        self._ids = count(1)

    def insert(self, entry):
        if entry.template_id is not None and entry.period is not None:
            for existing in self._entries.values():
                if (existing.template_id, existing.period) == (entry.template_id, entry.period):
                    raise DuplicateOccurrenceError(entry.template_id, entry.period)
        stored = entry.with_id(next(self._ids))
        self._entries[stored.id] = stored
        return replace(stored)

    def list_entries(self, user_id, start_date=None, end_date=None, category=None):
        entries = [
            replace(e)
            for e in self._entries.values()
            if e.user_id == user_id
            and (start_date is None or e.date >= start_date)
            and (end_date is None or e.date <= end_date)
            and (category is None or e.category == category)
        ]
        return sorted(entries, key=lambda e: (e.date, e.id))

    def delete(self, entry_id):
        self._entries.pop(entry_id, None)
