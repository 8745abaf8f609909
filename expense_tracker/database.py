import logging
import sqlite3
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from expense_tracker.core.models import LedgerEntry, RecurringTemplate
from expense_tracker.core.schedule import decode
from expense_tracker.errors import (
    DuplicateOccurrenceError,
    PersistenceError,
    TemplateNotFoundError,
)
from expense_tracker.stores.base import LedgerStore, TemplateStore

logger = logging.getLogger(__name__)


def _init_db(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS recurring_templates (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            category TEXT NOT NULL,
            amount REAL NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            frequency TEXT NOT NULL,
            schedule INTEGER NOT NULL,
            active INTEGER NOT NULL DEFAULT 1,
            last_generated TEXT
        )
        """
    )
    # template_id is a plain column, not a foreign key: deleting a template
    # leaves its past entries in place. Template ids are never reused
    # (AUTOINCREMENT) so those entries can't collide with a newer template.
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS ledger_entries (
            id INTEGER PRIMARY KEY,
            user_id TEXT NOT NULL,
            category TEXT NOT NULL,
            amount REAL NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            date TEXT NOT NULL,
            template_id INTEGER,
            period TEXT,
            UNIQUE(template_id, period)
        )
        """
    )
    conn.commit()


@contextmanager
def connect(db_path: str) -> Iterator[sqlite3.Connection]:
    """Open the database, creating the file and schema when missing.

    sqlite3 errors are re-raised as PersistenceError.
    """
    try:
        path = Path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(path)
    except (OSError, sqlite3.Error) as exc:
        raise PersistenceError(f"Could not open database {db_path}: {exc}") from exc
    try:
        _init_db(conn)
        yield conn
    except sqlite3.Error as exc:
        raise PersistenceError(f"Database error on {db_path}: {exc}") from exc
    finally:
        conn.close()


def _row_to_template(row) -> RecurringTemplate:
    return RecurringTemplate(
        id=row[0],
        user_id=row[1],
        category=row[2],
        amount=float(row[3]),
        description=row[4],
        schedule=decode(row[5], int(row[6])),
        active=bool(row[7]),
        last_generated=date.fromisoformat(row[8]) if row[8] else None,
    )


def _row_to_entry(row) -> LedgerEntry:
    return LedgerEntry(
        id=row[0],
        user_id=row[1],
        category=row[2],
        amount=float(row[3]),
        description=row[4],
        date=date.fromisoformat(row[5]),
        template_id=row[6],
        period=row[7],
    )


_TEMPLATE_COLUMNS = (
    "id, user_id, category, amount, description, frequency, schedule, "
    "active, last_generated"
)
_ENTRY_COLUMNS = "id, user_id, category, amount, description, date, template_id, period"


class SQLiteTemplateStore(TemplateStore):
    def __init__(self, db_path: str):
        self.db_path = str(db_path)

    def list_active(self, user_id):
        with connect(self.db_path) as conn:
            rows = conn.execute(
                f"SELECT {_TEMPLATE_COLUMNS} FROM recurring_templates "
                "WHERE user_id = ? AND active = 1 ORDER BY id",
                (user_id,),
            ).fetchall()
        return [_row_to_template(r) for r in rows]

    def list_all(self, user_id):
        with connect(self.db_path) as conn:
            rows = conn.execute(
                f"SELECT {_TEMPLATE_COLUMNS} FROM recurring_templates "
                "WHERE user_id = ? ORDER BY id",
                (user_id,),
            ).fetchall()
        return [_row_to_template(r) for r in rows]

    def get(self, template_id):
        with connect(self.db_path) as conn:
            row = conn.execute(
                f"SELECT {_TEMPLATE_COLUMNS} FROM recurring_templates WHERE id = ?",
                (template_id,),
            ).fetchone()
        if row is None:
            raise TemplateNotFoundError(template_id)
        return _row_to_template(row)

    def create(self, template):
        with connect(self.db_path) as conn:
            cursor = conn.execute(
                """
                INSERT INTO recurring_templates
                (user_id, category, amount, description, frequency, schedule,
                 active, last_generated)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    template.user_id,
                    template.category.strip(),
                    float(template.amount),
                    template.description.strip(),
                    template.frequency.value,
                    template.encoded_schedule,
                    1 if template.active else 0,
                    template.last_generated.isoformat() if template.last_generated else None,
                ),
            )
            conn.commit()
            template_id = cursor.lastrowid
        return self.get(template_id)

    def update(self, template):
        self._execute(
            """
            UPDATE recurring_templates
            SET category = ?, amount = ?, description = ?, frequency = ?,
                schedule = ?, active = ?
            WHERE id = ?
            """,
            (
                template.category.strip(),
                float(template.amount),
                template.description.strip(),
                template.frequency.value,
                template.encoded_schedule,
                1 if template.active else 0,
                template.id,
            ),
            template.id,
        )
        return self.get(template.id)

    def update_last_generated(self, template_id, generated_on):
        self._execute(
            "UPDATE recurring_templates SET last_generated = ? WHERE id = ?",
            (generated_on.isoformat(), template_id),
            template_id,
        )

    def set_active(self, template_id, active):
        self._execute(
            "UPDATE recurring_templates SET active = ? WHERE id = ?",
            (1 if active else 0, template_id),
            template_id,
        )

    def delete(self, template_id):
        self._execute(
            "DELETE FROM recurring_templates WHERE id = ?",
            (template_id,),
            template_id,
        )

    def _execute(self, sql, params, template_id):
        with connect(self.db_path) as conn:
            cursor = conn.execute(sql, params)
            conn.commit()
            if cursor.rowcount == 0:
                raise TemplateNotFoundError(template_id)


class SQLiteLedgerStore(LedgerStore):
    def __init__(self, db_path: str):
        self.db_path = str(db_path)

    def insert(self, entry):
        with connect(self.db_path) as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO ledger_entries
                (user_id, category, amount, description, date, template_id, period)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.user_id,
                    entry.category.strip(),
                    float(entry.amount),
                    entry.description.strip(),
                    entry.date.isoformat(),
                    entry.template_id,
                    entry.period,
                ),
            )
            conn.commit()
            if cursor.rowcount == 0:
                raise DuplicateOccurrenceError(entry.template_id, entry.period)
            entry_id = cursor.lastrowid
        logger.debug("Inserted ledger entry %s on %s", entry_id, entry.date)
        return entry.with_id(entry_id)

    def list_entries(self, user_id, start_date=None, end_date=None, category=None):
        where, params = _build_filters(user_id, start_date, end_date, category)
        with connect(self.db_path) as conn:
            rows = conn.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM ledger_entries{where} ORDER BY date, id",
                params,
            ).fetchall()
        return [_row_to_entry(r) for r in rows]

    def delete(self, entry_id):
        with connect(self.db_path) as conn:
            conn.execute("DELETE FROM ledger_entries WHERE id = ?", (entry_id,))
            conn.commit()


def _build_filters(
    user_id: str,
    start_date: Optional[date],
    end_date: Optional[date],
    category: Optional[str],
) -> Tuple[str, list]:
    conditions: List[str] = ["user_id = ?"]
    params: list = [user_id]
    if start_date:
        conditions.append("date >= ?")
        params.append(start_date.isoformat())
    if end_date:
        conditions.append("date <= ?")
        params.append(end_date.isoformat())
    if category:
        conditions.append("category = ?")
        params.append(category)
    return " WHERE " + " AND ".join(conditions), params
