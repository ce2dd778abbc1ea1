"""Core orchestration logic for boarding & ICU occupancy."""

from __future__ import annotations

import datetime as dt
import logging
import sqlite3
from typing import Any

from . import settlement, urgency
from .database import get_connection, immediate_transaction, initialize_database
from .timeutil import Instant, parse_instant, to_iso

logger = logging.getLogger(__name__)

BOARDING_TYPES = ("BOARDING", "ICU")
SPECIES = (
    "DOG",
    "CAT",
    "BIRD",
    "RABBIT",
    "HAMSTER",
    "GUINEA_PIG",
    "TURTLE",
    "FISH",
    "OTHER",
    "HORSE",
    "GOAT",
)
# Species that always get a dashboard tile, even when no pool exists yet.
DASHBOARD_SPECIES = ("DOG", "CAT")
SESSION_STATUSES = ("ACTIVE", "COMPLETED", "CANCELLED")

CONFIG_EDITABLE_FIELDS = {"name_en", "name_ar", "total_slots", "price_per_day", "notes", "is_active"}
CONFIG_IMMUTABLE_FIELDS = {"type", "species"}
SESSION_EDITABLE_FIELDS = {"expected_check_out_date", "notes", "assigned_staff_id"}

ALERT_TYPES = (("red", "RED_ALERT"), ("yellow", "YELLOW_WARNING"))


class BoardingError(RuntimeError):
    """Base class for failures callers can tell apart by ``code``."""

    code = "BOARDING_ERROR"


class ValidationError(BoardingError):
    """Raised when incoming data fails validation."""

    code = "VALIDATION_ERROR"


class NotFoundError(BoardingError):
    """Raised when a referenced configuration, session or record is missing."""

    code = "NOT_FOUND"


class CapacityError(BoardingError):
    """Raised when a configuration has no slot left for a new check-in."""

    code = "CAPACITY_EXCEEDED"


class ConflictError(BoardingError):
    """Raised when a slot is already held, or a record is still referenced."""

    code = "CONFLICT"


class InvalidStateError(BoardingError):
    """Raised when a session is no longer active."""

    code = "INVALID_STATE"


SESSION_SELECT = """
    SELECT boarding_sessions.*,
           pets.name AS pet_name,
           pets.species AS pet_species,
           pets.owner_id AS owner_id,
           owners.first_name || ' ' || owners.last_name AS owner_name,
           owners.phone AS owner_phone,
           boarding_slot_configs.name_en AS config_name_en,
           boarding_slot_configs.name_ar AS config_name_ar,
           boarding_slot_configs.type AS config_type,
           boarding_slot_configs.species AS config_species
    FROM boarding_sessions
    JOIN pets ON pets.id = boarding_sessions.pet_id
    JOIN owners ON owners.id = pets.owner_id
    JOIN boarding_slot_configs ON boarding_slot_configs.id = boarding_sessions.config_id
"""

CONFIG_SELECT = """
    SELECT boarding_slot_configs.*,
           (
               SELECT COUNT(*) FROM boarding_sessions
               WHERE boarding_sessions.config_id = boarding_slot_configs.id
                 AND boarding_sessions.status = 'ACTIVE'
           ) AS occupied_slots
    FROM boarding_slot_configs
"""


def first_free_slot(in_use: set[int], total_slots: int) -> int | None:
    """Lowest slot number in ``[1, total_slots]`` not held by an active stay."""

    for slot in range(1, total_slots + 1):
        if slot not in in_use:
            return slot
    return None


def _require_text(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required")
    return value.strip()


def _positive_int(value: Any, label: str) -> int:
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"{label} must be a positive whole number")
    return value


def _money(value: Any, label: str) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a number")
    try:
        amount = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{label} must be a number") from exc
    if amount < 0:
        raise ValidationError(f"{label} cannot be negative")
    return round(amount, 2)


def _flag(value: Any, label: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in ("true", "1", "yes"):
            return True
        if normalized in ("false", "0", "no"):
            return False
    raise ValidationError(f"{label} must be true or false")


def _choice(value: Any, allowed: tuple[str, ...], label: str) -> str:
    normalized = value.strip().upper() if isinstance(value, str) else None
    if normalized not in allowed:
        raise ValidationError(f"{label} must be one of: {', '.join(allowed)}")
    return normalized


def _timestamp(value: Instant, label: str) -> str:
    try:
        return to_iso(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{label} is not a valid date") from exc


def _optional_timestamp(value: Instant | None, label: str) -> str | None:
    if value is None or value == "":
        return None
    return _timestamp(value, label)


def _integrity_error(exc: sqlite3.IntegrityError) -> BoardingError:
    message = str(exc)
    if "UNIQUE" in message:
        return ConflictError("Slot is already occupied by another active session")
    if "FOREIGN KEY" in message:
        return NotFoundError("Referenced pet, staff member or configuration not found")
    return ValidationError(message)


class BoardingSystem:
    """High level façade over boarding pools and the stays held in them."""

    def __init__(self, db_path: str = ":memory:", *, initialize: bool = True) -> None:
        self.conn = get_connection(db_path)
        if initialize:
            initialize_database(self.conn)

    # ------------------------------------------------------------------
    # Directory: owners, pets, staff
    # ------------------------------------------------------------------
    def register_owner(
        self,
        *,
        first_name: str,
        last_name: str,
        phone: str | None = None,
        email: str | None = None,
    ) -> dict:
        cur = self.conn.execute(
            "INSERT INTO owners(first_name, last_name, phone, email) VALUES (?, ?, ?, ?)",
            (
                _require_text(first_name, "First name"),
                _require_text(last_name, "Last name"),
                phone,
                email.lower() if email else None,
            ),
        )
        self.conn.commit()
        return self.conn.execute("SELECT * FROM owners WHERE id = ?", (cur.lastrowid,)).fetchone()

    def add_pet(
        self,
        *,
        owner_id: int,
        name: str,
        species: str,
        breed: str | None = None,
    ) -> dict:
        try:
            cur = self.conn.execute(
                "INSERT INTO pets(owner_id, name, species, breed) VALUES (?, ?, ?, ?)",
                (owner_id, _require_text(name, "Pet name"), _choice(species, SPECIES, "Species"), breed),
            )
        except sqlite3.IntegrityError as exc:
            raise NotFoundError("Owner not found") from exc
        self.conn.commit()
        return self.get_pet(cur.lastrowid)

    def get_pet(self, pet_id: int) -> dict:
        row = self.conn.execute("SELECT * FROM pets WHERE id = ?", (pet_id,)).fetchone()
        if not row:
            raise NotFoundError("Pet not found")
        return row

    def register_user(self, *, email: str, name: str | None = None, role: str = "staff") -> dict:
        cur = self.conn.execute(
            "INSERT INTO users(email, name, role) VALUES (?, ?, ?)",
            (_require_text(email, "Email").lower(), name, role),
        )
        self.conn.commit()
        return self.get_user(cur.lastrowid)

    def get_user(self, user_id: int) -> dict:
        row = self.conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if not row:
            raise NotFoundError("User not found")
        return row

    # ------------------------------------------------------------------
    # Slot configurations
    # ------------------------------------------------------------------
    @staticmethod
    def _config_row(row: dict) -> dict:
        row["is_active"] = bool(row["is_active"])
        row["available_slots"] = max(0, row["total_slots"] - row["occupied_slots"])
        return row

    def create_configuration(
        self,
        *,
        name_en: str,
        name_ar: str,
        type: str,
        species: str,
        total_slots: int,
        price_per_day: float | None = None,
        notes: str | None = None,
    ) -> dict:
        values = (
            _require_text(name_en, "English name"),
            _require_text(name_ar, "Arabic name"),
            _choice(type, BOARDING_TYPES, "Boarding type"),
            _choice(species, SPECIES, "Species"),
            _positive_int(total_slots, "Total slots"),
            _money(price_per_day, "Price per day"),
            notes,
        )
        cur = self.conn.execute(
            """
            INSERT INTO boarding_slot_configs(
                name_en, name_ar, type, species, total_slots, price_per_day, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            values,
        )
        self.conn.commit()
        config = self.get_configuration(cur.lastrowid)
        logger.info(
            "Created %s/%s configuration %s with %s slots",
            config["type"],
            config["species"],
            config["id"],
            config["total_slots"],
        )
        return config

    def get_configuration(self, config_id: int) -> dict:
        row = self.conn.execute(
            CONFIG_SELECT + " WHERE boarding_slot_configs.id = ?", (config_id,)
        ).fetchone()
        if not row:
            raise NotFoundError("Configuration not found")
        return self._config_row(row)

    def get_configuration_detail(self, config_id: int) -> dict:
        """Return a configuration with the active stays it currently holds."""

        config = self.get_configuration(config_id)
        config["sessions"] = self.list_active(config_id=config_id)
        return config

    def list_configurations(
        self,
        *,
        type: str | None = None,
        species: str | None = None,
        is_active: bool | None = None,
    ) -> list[dict]:
        conditions: list[str] = []
        params: list[Any] = []
        if type is not None:
            conditions.append("boarding_slot_configs.type = ?")
            params.append(_choice(type, BOARDING_TYPES, "Boarding type"))
        if species is not None:
            conditions.append("boarding_slot_configs.species = ?")
            params.append(_choice(species, SPECIES, "Species"))
        if is_active is not None:
            conditions.append("boarding_slot_configs.is_active = ?")
            params.append(int(is_active))
        where_clause = ""
        if conditions:
            where_clause = " WHERE " + " AND ".join(conditions)
        rows = self.conn.execute(
            CONFIG_SELECT + where_clause + " ORDER BY type, species, name_en, id",
            params,
        ).fetchall()
        return [self._config_row(row) for row in rows]

    def update_configuration(self, config_id: int, /, **changes: Any) -> dict:
        """Apply a partial update; type and species are fixed at creation."""

        if CONFIG_IMMUTABLE_FIELDS & changes.keys():
            raise ValidationError("Type and species cannot be changed after creation")
        unknown = changes.keys() - CONFIG_EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown configuration fields: {', '.join(sorted(unknown))}")

        with immediate_transaction(self.conn):
            config = self.get_configuration(config_id)
            values: dict[str, Any] = {}
            if "name_en" in changes:
                values["name_en"] = _require_text(changes["name_en"], "English name")
            if "name_ar" in changes:
                values["name_ar"] = _require_text(changes["name_ar"], "Arabic name")
            if "total_slots" in changes:
                total_slots = _positive_int(changes["total_slots"], "Total slots")
                if total_slots < config["occupied_slots"]:
                    raise ValidationError(
                        "Cannot reduce slots below current occupancy "
                        f"({config['occupied_slots']} active sessions)"
                    )
                values["total_slots"] = total_slots
            if "price_per_day" in changes:
                values["price_per_day"] = _money(changes["price_per_day"], "Price per day")
            if "notes" in changes:
                values["notes"] = changes["notes"]
            if "is_active" in changes:
                values["is_active"] = int(_flag(changes["is_active"], "Active flag"))
            if values:
                assignments = ", ".join(f"{column} = ?" for column in values)
                self.conn.execute(
                    f"UPDATE boarding_slot_configs SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    [*values.values(), config_id],
                )
        if values:
            logger.info("Updated configuration %s: %s", config_id, ", ".join(sorted(values)))
        return self.get_configuration(config_id)

    def deactivate_configuration(self, config_id: int) -> dict:
        """Hide a pool from new check-ins; stays already in it are untouched."""

        return self.update_configuration(config_id, is_active=False)

    def delete_configuration(self, config_id: int) -> None:
        with immediate_transaction(self.conn):
            self.get_configuration(config_id)
            referenced = self.conn.execute(
                "SELECT COUNT(*) AS total FROM boarding_sessions WHERE config_id = ?",
                (config_id,),
            ).fetchone()["total"]
            if referenced:
                raise ConflictError(
                    "Configuration has boarding sessions and cannot be deleted; deactivate it instead"
                )
            self.conn.execute("DELETE FROM boarding_slot_configs WHERE id = ?", (config_id,))
        logger.info("Deleted configuration %s", config_id)

    # ------------------------------------------------------------------
    # Occupancy
    # ------------------------------------------------------------------
    def get_occupancy(self, config_id: int) -> dict:
        config = self.get_configuration(config_id)
        return {
            "config_id": config["id"],
            "total": config["total_slots"],
            "occupied": config["occupied_slots"],
            "available": config["available_slots"],
        }

    def get_aggregate_stats(self) -> dict:
        """Return ``{type: {species: {total, occupied, available}}}`` tiles.

        Pools sharing a type and species are summed together; inactive pools
        contribute no capacity but their remaining stays still count.
        """

        stats: dict[str, dict[str, dict[str, int]]] = {
            boarding_type: {
                species: {"total": 0, "occupied": 0, "available": 0}
                for species in DASHBOARD_SPECIES
            }
            for boarding_type in BOARDING_TYPES
        }

        def tile(boarding_type: str, species: str) -> dict[str, int]:
            return stats[boarding_type].setdefault(
                species, {"total": 0, "occupied": 0, "available": 0}
            )

        capacity_rows = self.conn.execute(
            """
            SELECT type, species, SUM(total_slots) AS total
            FROM boarding_slot_configs
            WHERE is_active = 1
            GROUP BY type, species
            """
        ).fetchall()
        for row in capacity_rows:
            tile(row["type"], row["species"])["total"] = row["total"]

        occupied_rows = self.conn.execute(
            """
            SELECT boarding_slot_configs.type AS type,
                   boarding_slot_configs.species AS species,
                   COUNT(boarding_sessions.id) AS occupied
            FROM boarding_sessions
            JOIN boarding_slot_configs ON boarding_slot_configs.id = boarding_sessions.config_id
            WHERE boarding_sessions.status = 'ACTIVE'
            GROUP BY boarding_slot_configs.type, boarding_slot_configs.species
            """
        ).fetchall()
        for row in occupied_rows:
            tile(row["type"], row["species"])["occupied"] = row["occupied"]

        for by_species in stats.values():
            for counts in by_species.values():
                counts["available"] = max(0, counts["total"] - counts["occupied"])
        return stats

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    def check_in(
        self,
        *,
        config_id: int,
        pet_id: int,
        check_in_date: Instant,
        expected_check_out_date: Instant | None,
        slot_number: int | None = None,
        notes: str | None = None,
        assigned_staff_id: int | None = None,
        daily_rate: float | None = None,
        created_by: int | None = None,
    ) -> dict:
        check_in_at = _timestamp(check_in_date, "Check-in date")
        expected_at = _optional_timestamp(expected_check_out_date, "Expected checkout date")
        if expected_at is not None and parse_instant(expected_at) < parse_instant(check_in_at):
            raise ValidationError("Expected checkout date cannot be before the check-in date")
        requested_slot = _positive_int(slot_number, "Slot number") if slot_number is not None else None
        rate_override = _money(daily_rate, "Daily rate")

        with immediate_transaction(self.conn):
            config = self.get_configuration(config_id)
            if not config["is_active"]:
                logger.warning("Rejected check-in to inactive configuration %s", config_id)
                raise CapacityError("Configuration is not accepting new check-ins")
            active = self.conn.execute(
                "SELECT slot_number FROM boarding_sessions WHERE config_id = ? AND status = 'ACTIVE'",
                (config_id,),
            ).fetchall()
            if len(active) >= config["total_slots"]:
                logger.warning(
                    "Rejected check-in to configuration %s: %s/%s slots occupied",
                    config_id,
                    len(active),
                    config["total_slots"],
                )
                raise CapacityError("No available slots for this configuration")
            in_use = {row["slot_number"] for row in active}
            if requested_slot is None:
                slot = first_free_slot(in_use, config["total_slots"])
                if slot is None:
                    raise CapacityError("No available slots for this configuration")
            else:
                if requested_slot > config["total_slots"]:
                    raise ValidationError(
                        f"Slot number must be between 1 and {config['total_slots']}"
                    )
                if requested_slot in in_use:
                    logger.warning(
                        "Slot %s of configuration %s is already occupied", requested_slot, config_id
                    )
                    raise ConflictError("Slot is already occupied by another active session")
                slot = requested_slot
            rate = rate_override if rate_override is not None else config["price_per_day"]
            try:
                cur = self.conn.execute(
                    """
                    INSERT INTO boarding_sessions(
                        config_id, pet_id, slot_number, check_in_date, expected_check_out_date,
                        notes, daily_rate, assigned_staff_id, created_by
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        config_id,
                        pet_id,
                        slot,
                        check_in_at,
                        expected_at,
                        notes,
                        rate,
                        assigned_staff_id,
                        created_by,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise _integrity_error(exc) from exc

        session = self.get_session(cur.lastrowid)
        logger.info(
            "Checked in pet %s to configuration %s slot %s (session %s)",
            pet_id,
            config_id,
            slot,
            session["id"],
        )
        return session

    def get_session(self, session_id: int) -> dict:
        row = self.conn.execute(
            SESSION_SELECT + " WHERE boarding_sessions.id = ?", (session_id,)
        ).fetchone()
        if not row:
            raise NotFoundError("Session not found")
        return row

    @staticmethod
    def _require_active(session: dict, action: str) -> None:
        if session["status"] != "ACTIVE":
            raise InvalidStateError(
                f"Cannot {action} a session that is {session['status'].lower()}"
            )

    def update_session(self, session_id: int, /, **changes: Any) -> dict:
        unknown = changes.keys() - SESSION_EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown session fields: {', '.join(sorted(unknown))}")

        with immediate_transaction(self.conn):
            session = self.get_session(session_id)
            self._require_active(session, "update")
            values: dict[str, Any] = {}
            if "expected_check_out_date" in changes:
                expected_at = _optional_timestamp(
                    changes["expected_check_out_date"], "Expected checkout date"
                )
                if expected_at is not None and parse_instant(expected_at) < parse_instant(
                    session["check_in_date"]
                ):
                    raise ValidationError("Expected checkout date cannot be before the check-in date")
                values["expected_check_out_date"] = expected_at
            if "notes" in changes:
                values["notes"] = changes["notes"]
            if "assigned_staff_id" in changes:
                values["assigned_staff_id"] = changes["assigned_staff_id"]
            if values:
                assignments = ", ".join(f"{column} = ?" for column in values)
                try:
                    self.conn.execute(
                        f"UPDATE boarding_sessions SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                        [*values.values(), session_id],
                    )
                except sqlite3.IntegrityError as exc:
                    raise _integrity_error(exc) from exc
        return self.get_session(session_id)

    def checkout(
        self,
        session_id: int,
        *,
        check_out_notes: str | None = None,
        check_out_date: Instant | None = None,
    ) -> dict:
        """Complete an active stay and settle its charge.

        The returned session carries a ``settlement`` payload for invoicing.
        Settlement happens once; checking out again raises InvalidStateError.
        """

        with immediate_transaction(self.conn):
            session = self.get_session(session_id)
            self._require_active(session, "check out")
            if check_out_date is None:
                check_out_at = dt.datetime.now().isoformat(timespec="seconds")
            else:
                check_out_at = _timestamp(check_out_date, "Checkout date")
            if parse_instant(check_out_at) < parse_instant(session["check_in_date"]):
                raise ValidationError("Checkout date cannot be before the check-in date")
            payload = settlement.settle(session, check_out_at)
            self.conn.execute(
                """
                UPDATE boarding_sessions
                SET status = 'COMPLETED', check_out_date = ?, check_out_notes = ?,
                    total_amount = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND status = 'ACTIVE'
                """,
                (check_out_at, check_out_notes, payload["total_amount"], session_id),
            )
        logger.info(
            "Checked out session %s after %s day(s), total %s",
            session_id,
            payload["stay_duration_days"],
            payload["total_amount"],
        )
        result = self.get_session(session_id)
        result["settlement"] = payload
        return result

    def cancel(self, session_id: int, *, reason: str | None = None) -> dict:
        with immediate_transaction(self.conn):
            session = self.get_session(session_id)
            self._require_active(session, "cancel")
            self.conn.execute(
                """
                UPDATE boarding_sessions
                SET status = 'CANCELLED', check_out_date = ?, check_out_notes = ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND status = 'ACTIVE'
                """,
                (dt.datetime.now().isoformat(timespec="seconds"), reason, session_id),
            )
        logger.info("Cancelled session %s", session_id)
        return self.get_session(session_id)

    def list_sessions(
        self,
        *,
        config_id: int | None = None,
        type: str | None = None,
        status: str | None = None,
    ) -> list[dict]:
        conditions: list[str] = []
        params: list[Any] = []
        if config_id is not None:
            conditions.append("boarding_sessions.config_id = ?")
            params.append(config_id)
        if type is not None:
            conditions.append("boarding_slot_configs.type = ?")
            params.append(_choice(type, BOARDING_TYPES, "Boarding type"))
        if status is not None:
            conditions.append("boarding_sessions.status = ?")
            params.append(_choice(status, SESSION_STATUSES, "Status"))
        where_clause = ""
        if conditions:
            where_clause = " WHERE " + " AND ".join(conditions)
        return self.conn.execute(
            SESSION_SELECT
            + where_clause
            + " ORDER BY boarding_sessions.check_in_date DESC, boarding_sessions.id DESC",
            params,
        ).fetchall()

    def list_active(self, *, config_id: int | None = None, type: str | None = None) -> list[dict]:
        return self.list_sessions(config_id=config_id, type=type, status="ACTIVE")

    # ------------------------------------------------------------------
    # Board & alerts
    # ------------------------------------------------------------------
    def get_kanban(
        self,
        *,
        type: str | None = None,
        config_id: int | None = None,
        today: Instant | None = None,
    ) -> dict:
        if today is not None:
            today = _timestamp(today, "Today")
        return urgency.build_kanban(self.list_active(config_id=config_id, type=type), today)

    def record_band_alerts(self, *, today: Instant | None = None) -> list[dict]:
        """Record a notification the first time a stay reaches red or yellow.

        One notification per session and alert type; repeated calls only
        add alerts for stays that newly crossed a threshold.
        """

        board = self.get_kanban(today=today)
        created: list[int] = []
        with immediate_transaction(self.conn):
            for column, alert_type in ALERT_TYPES:
                for session in board[column]:
                    cur = self.conn.execute(
                        "INSERT OR IGNORE INTO boarding_notifications(session_id, type) VALUES (?, ?)",
                        (session["id"], alert_type),
                    )
                    if cur.rowcount:
                        created.append(cur.lastrowid)
        if created:
            logger.info("Recorded %s boarding alert(s)", len(created))
        return [self._get_notification(notification_id) for notification_id in created]

    def _get_notification(self, notification_id: int) -> dict:
        row = self.conn.execute(
            """
            SELECT boarding_notifications.*,
                   pets.name AS pet_name,
                   boarding_slot_configs.type AS config_type,
                   boarding_slot_configs.name_en AS config_name_en,
                   boarding_slot_configs.name_ar AS config_name_ar,
                   boarding_sessions.expected_check_out_date AS expected_check_out_date
            FROM boarding_notifications
            JOIN boarding_sessions ON boarding_sessions.id = boarding_notifications.session_id
            JOIN pets ON pets.id = boarding_sessions.pet_id
            JOIN boarding_slot_configs ON boarding_slot_configs.id = boarding_sessions.config_id
            WHERE boarding_notifications.id = ?
            """,
            (notification_id,),
        ).fetchone()
        if not row:
            raise NotFoundError("Notification not found")
        row["is_read"] = bool(row["is_read"])
        return row

    def list_notifications(self, *, unread_only: bool = False) -> dict:
        where = " WHERE is_read = 0" if unread_only else ""
        ids = self.conn.execute(
            "SELECT id FROM boarding_notifications" + where + " ORDER BY created_at DESC, id DESC"
        ).fetchall()
        unread = self.conn.execute(
            "SELECT COUNT(*) AS total FROM boarding_notifications WHERE is_read = 0"
        ).fetchone()["total"]
        return {
            "notifications": [self._get_notification(row["id"]) for row in ids],
            "unread_count": unread,
        }

    def mark_all_notifications_read(self) -> int:
        cur = self.conn.execute(
            "UPDATE boarding_notifications SET is_read = 1, read_at = CURRENT_TIMESTAMP WHERE is_read = 0"
        )
        self.conn.commit()
        return cur.rowcount

    def close(self) -> None:
        self.conn.close()
