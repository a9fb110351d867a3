"""Database package - async SQLite with mixin-based composition.

A single Database object is created by ``core.bootstrap()`` and handed to
the services that need it: ``Database(path)`` then ``await db.init_db()``.
"""
from database.helpers import DatabaseError  # noqa: F401
from database.core import DatabaseCore
from database.tasks import TasksMixin
from database.ledger import LedgerMixin
from database.alarms import AlarmsMixin


class Database(DatabaseCore, TasksMixin, LedgerMixin, AlarmsMixin):
    """Composed database class combining all mixins."""
    pass
