"""Recently run commands, newest first, for 'lz last'"""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from dataclasses import dataclass

from logger import get_logger
from exceptions import StoreError
from config import get_config_dir
from constants import HISTORY_DB, MAX_HISTORY_ENTRIES


@dataclass
class HistoryEntry:
    """A fully resolved command that was run"""
    id: Optional[int] = None
    timestamp: str = ""
    name: str = ""
    command: str = ""

    @property
    def ran_at(self) -> datetime:
        return datetime.fromisoformat(self.timestamp)


def format_relative_time(moment: datetime, now: Optional[datetime] = None) -> str:
    """'just now', '5m ago', '3h ago', '2d ago'"""
    seconds = int(((now or datetime.now()) - moment).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


class CommandHistory:
    """Keeps a short recency list of resolved commands in SQLite"""

    def __init__(self, db_path: Optional[str] = None, max_entries: int = MAX_HISTORY_ENTRIES):
        self.logger = get_logger(self.__class__.__name__)
        if db_path is None:
            config_dir = get_config_dir()
            config_dir.mkdir(parents=True, exist_ok=True)
            db_path = config_dir / HISTORY_DB
        else:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.db_path = str(db_path)
        self.max_entries = max_entries
        self._init_database()

    def _init_database(self):
        """Initialize the SQLite database"""
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS recent_commands (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        timestamp TEXT NOT NULL,
                        name TEXT NOT NULL,
                        command TEXT NOT NULL
                    )
                """)
                conn.execute("""
                    CREATE INDEX IF NOT EXISTS idx_recent_command
                    ON recent_commands(command)
                """)
                conn.commit()
                self.logger.debug(f"Initialized history database at {self.db_path}")
        except sqlite3.Error as e:
            self.logger.error(f"Failed to initialize history database: {e}")
            raise StoreError(f"Cannot open history database {self.db_path}: {e}")

    def add_entry(self, command: str, name: str) -> int:
        """Record a run; an identical command moves to the top instead of repeating"""
        timestamp = datetime.now().isoformat()
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("DELETE FROM recent_commands WHERE command = ?", (command,))
                cursor = conn.execute(
                    "INSERT INTO recent_commands (timestamp, name, command) VALUES (?, ?, ?)",
                    (timestamp, name, command),
                )
                entry_id = cursor.lastrowid
                # Keep only the newest max_entries rows
                conn.execute("""
                    DELETE FROM recent_commands WHERE id NOT IN (
                        SELECT id FROM recent_commands ORDER BY id DESC LIMIT ?
                    )
                """, (self.max_entries,))
                conn.commit()
                self.logger.debug(f"Added history entry {entry_id}")
                return entry_id
        except sqlite3.Error as e:
            self.logger.error(f"Failed to add history entry: {e}")
            raise StoreError(f"Cannot record history: {e}")

    def get_recent(self, limit: Optional[int] = None) -> List[HistoryEntry]:
        """Most recent entries first"""
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.row_factory = sqlite3.Row
                cursor = conn.execute(
                    "SELECT * FROM recent_commands ORDER BY id DESC LIMIT ?",
                    (limit or self.max_entries,),
                )
                entries = [
                    HistoryEntry(
                        id=row['id'],
                        timestamp=row['timestamp'],
                        name=row['name'],
                        command=row['command'],
                    )
                    for row in cursor.fetchall()
                ]
                self.logger.debug(f"Found {len(entries)} history entries")
                return entries
        except sqlite3.Error as e:
            self.logger.error(f"Failed to read history: {e}")
            return []

    def clear(self) -> int:
        """Remove all entries and return how many were deleted"""
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.execute("DELETE FROM recent_commands")
                conn.commit()
                self.logger.info(f"Deleted {cursor.rowcount} history entries")
                return cursor.rowcount
        except sqlite3.Error as e:
            self.logger.error(f"Failed to clear history: {e}")
            raise StoreError(f"Cannot clear history: {e}")
