"""Database utilities for the boarding & ICU occupancy engine."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


SCHEMA_VERSION = 1


def dict_factory(cursor: sqlite3.Cursor, row: sqlite3.Row) -> dict:
    """Return rows as dictionaries rather than tuples."""

    return {description[0]: row[idx] for idx, description in enumerate(cursor.description)}


def get_connection(path: str | Path) -> sqlite3.Connection:
    """Return a SQLite connection with sensible defaults."""

    conn = sqlite3.connect(path)
    conn.row_factory = dict_factory
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA busy_timeout = 5000")
    return conn


@contextmanager
def immediate_transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run the block under SQLite's write lock, committing on success.

    ``BEGIN IMMEDIATE`` takes the database-wide reserved lock up front, so a
    read-then-write sequence inside the block cannot interleave with another
    connection's writer.
    """

    if conn.in_transaction:
        conn.commit()
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    conn.commit()


def initialize_database(conn: sqlite3.Connection) -> None:
    """Create the database schema if it does not yet exist."""

    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS metadata (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT UNIQUE NOT NULL,
            name TEXT,
            role TEXT NOT NULL DEFAULT 'staff',
            is_active INTEGER DEFAULT 1,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS owners (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            first_name TEXT NOT NULL,
            last_name TEXT NOT NULL,
            phone TEXT,
            email TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS pets (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id INTEGER NOT NULL,
            name TEXT NOT NULL,
            species TEXT NOT NULL,
            breed TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(owner_id) REFERENCES owners(id)
        );

        CREATE TABLE IF NOT EXISTS boarding_slot_configs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name_en TEXT NOT NULL,
            name_ar TEXT NOT NULL,
            type TEXT NOT NULL CHECK (type IN ('BOARDING', 'ICU')),
            species TEXT NOT NULL,
            total_slots INTEGER NOT NULL CHECK (total_slots >= 1),
            price_per_day REAL,
            notes TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        );

        CREATE INDEX IF NOT EXISTS ix_boarding_slot_configs_type
            ON boarding_slot_configs(type);
        CREATE INDEX IF NOT EXISTS ix_boarding_slot_configs_species
            ON boarding_slot_configs(species);

        CREATE TABLE IF NOT EXISTS boarding_sessions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            config_id INTEGER NOT NULL,
            pet_id INTEGER NOT NULL,
            slot_number INTEGER NOT NULL CHECK (slot_number >= 1),
            check_in_date TEXT NOT NULL,
            expected_check_out_date TEXT,
            check_out_date TEXT,
            status TEXT NOT NULL DEFAULT 'ACTIVE'
                CHECK (status IN ('ACTIVE', 'COMPLETED', 'CANCELLED')),
            notes TEXT,
            check_out_notes TEXT,
            daily_rate REAL,
            total_amount REAL,
            assigned_staff_id INTEGER,
            created_by INTEGER,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            CHECK ((status = 'ACTIVE') = (check_out_date IS NULL)),
            FOREIGN KEY(config_id) REFERENCES boarding_slot_configs(id),
            FOREIGN KEY(pet_id) REFERENCES pets(id),
            FOREIGN KEY(assigned_staff_id) REFERENCES users(id),
            FOREIGN KEY(created_by) REFERENCES users(id)
        );

        CREATE INDEX IF NOT EXISTS ix_boarding_sessions_config
            ON boarding_sessions(config_id);
        CREATE INDEX IF NOT EXISTS ix_boarding_sessions_status
            ON boarding_sessions(status);
        CREATE UNIQUE INDEX IF NOT EXISTS uq_boarding_sessions_active_slot
            ON boarding_sessions(config_id, slot_number)
            WHERE status = 'ACTIVE';

        CREATE TABLE IF NOT EXISTS boarding_notifications (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            session_id INTEGER NOT NULL,
            type TEXT NOT NULL CHECK (type IN ('RED_ALERT', 'YELLOW_WARNING')),
            is_read INTEGER NOT NULL DEFAULT 0,
            read_at TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(session_id, type),
            FOREIGN KEY(session_id) REFERENCES boarding_sessions(id) ON DELETE CASCADE
        );
        """
    )

    conn.execute(
        "INSERT INTO metadata(key, value) VALUES (?, ?)"
        " ON CONFLICT(key) DO UPDATE SET value = excluded.value",
        ("schema_version", str(SCHEMA_VERSION)),
    )
    conn.commit()

