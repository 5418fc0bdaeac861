"""Persistence for analysed email records.

Records are stored in a local SQLite database and read back newest first for
the history view.
"""

from .repository import DEFAULT_HISTORY_LIMIT, EmailRecordRepository

__all__ = ["DEFAULT_HISTORY_LIMIT", "EmailRecordRepository"]
