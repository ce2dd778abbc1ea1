"""Flask application exposing the boarding & ICU engine as a JSON API."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Mapping

from flask import Flask, current_app, g, jsonify, request

from vetboarding import config as settings
from vetboarding.boarding.system import (
    BoardingError,
    BoardingSystem,
    CapacityError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    CapacityError: 409,
    ConflictError: 409,
    InvalidStateError: 409,
}

# Arabic copy shown next to the English message, keyed by error code.
ERROR_MESSAGES_AR = {
    ValidationError.code: "البيانات المدخلة غير صالحة",
    NotFoundError.code: "العنصر المطلوب غير موجود",
    CapacityError.code: "لا توجد أماكن متاحة في هذا القسم",
    ConflictError.code: "المكان مشغول أو مرتبط بجلسات أخرى",
    InvalidStateError.code: "لا يمكن تنفيذ العملية على جلسة غير نشطة",
}


def get_system() -> BoardingSystem:
    """Return the request's BoardingSystem, opening a connection on first use."""

    if "boarding" not in g:
        g.boarding = BoardingSystem(current_app.config["DATABASE_PATH"], initialize=False)
    return g.boarding


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None and not request.get_data():
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _require_fields(payload: Mapping[str, Any], *names: str) -> None:
    missing = [name for name in names if payload.get(name) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def _bool_arg(name: str) -> bool | None:
    value = request.args.get(name)
    if value is None or value == "":
        return None
    return value.lower() in ("1", "true", "yes")


def _ok(data: Any, status: int = 200, **extra: Any) -> Any:
    return jsonify({"success": True, "data": data, **extra}), status


def create_app(database_path: str | None = None, config: Mapping[str, Any] | None = None) -> Flask:
    """Create and configure the Flask application."""

    app = Flask(__name__)
    app.config.from_mapping(
        SECRET_KEY=settings.SECRET_KEY,
        DATABASE_PATH=database_path or settings.DATABASE_PATH,
    )
    if config:
        app.config.update(config)
    app.json.ensure_ascii = False

    # Create the schema once; requests then open plain connections.
    BoardingSystem(app.config["DATABASE_PATH"]).close()

    @app.teardown_appcontext
    def close_system(_exc: BaseException | None) -> None:
        system = g.pop("boarding", None)
        if system is not None:
            system.close()

    @app.errorhandler(BoardingError)
    def handle_boarding_error(exc: BoardingError) -> Any:
        status = next(
            (ERROR_STATUS[cls] for cls in type(exc).__mro__ if cls in ERROR_STATUS),
            400,
        )
        logger.info("%s %s rejected (%s): %s", request.method, request.path, exc.code, exc)
        return (
            jsonify(
                {
                    "success": False,
                    "code": exc.code,
                    "error": str(exc),
                    "errorAr": ERROR_MESSAGES_AR.get(exc.code, "تعذر تنفيذ الطلب"),
                }
            ),
            status,
        )

    @app.get("/health")
    def health() -> Any:
        return jsonify({"status": "ok"})

    # ------------------------------------------------------------------
    # Slot configuration
    # ------------------------------------------------------------------
    @app.get("/api/boarding/config")
    def list_configs() -> Any:
        configs = get_system().list_configurations(
            type=request.args.get("type") or None,
            species=request.args.get("species") or None,
            is_active=_bool_arg("isActive"),
        )
        return _ok(configs)

    @app.get("/api/boarding/config/stats")
    def config_stats() -> Any:
        return _ok(get_system().get_aggregate_stats())

    @app.get("/api/boarding/config/<int:config_id>")
    def get_config(config_id: int) -> Any:
        return _ok(get_system().get_configuration_detail(config_id))

    @app.get("/api/boarding/config/<int:config_id>/occupancy")
    def config_occupancy(config_id: int) -> Any:
        return _ok(get_system().get_occupancy(config_id))

    @app.post("/api/boarding/config")
    def create_config() -> Any:
        payload = _json_body()
        _require_fields(payload, "name_en", "name_ar", "type", "species", "total_slots")
        created = get_system().create_configuration(
            name_en=payload["name_en"],
            name_ar=payload["name_ar"],
            type=payload["type"],
            species=payload["species"],
            total_slots=payload["total_slots"],
            price_per_day=payload.get("price_per_day"),
            notes=payload.get("notes"),
        )
        return _ok(created, 201, message="Configuration created successfully")

    @app.put("/api/boarding/config/<int:config_id>")
    def update_config(config_id: int) -> Any:
        updated = get_system().update_configuration(config_id, **_json_body())
        return _ok(updated, message="Configuration updated successfully")

    @app.post("/api/boarding/config/<int:config_id>/deactivate")
    def deactivate_config(config_id: int) -> Any:
        return _ok(get_system().deactivate_configuration(config_id))

    @app.delete("/api/boarding/config/<int:config_id>")
    def delete_config(config_id: int) -> Any:
        get_system().delete_configuration(config_id)
        return _ok(None, message="Configuration deleted successfully")

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    @app.get("/api/boarding/sessions/kanban")
    def kanban() -> Any:
        system = get_system()
        board = system.get_kanban(
            type=request.args.get("type") or None,
            config_id=request.args.get("configId", type=int),
            today=request.args.get("today") or None,
        )
        # Alerts always follow the server clock, never the previewed date.
        system.record_band_alerts(today=dt.date.today())
        counts = board.pop("counts")
        return _ok(board, counts=counts)

    @app.get("/api/boarding/sessions")
    def list_sessions() -> Any:
        sessions = get_system().list_sessions(
            config_id=request.args.get("configId", type=int),
            type=request.args.get("type") or None,
            status=request.args.get("status") or None,
        )
        return _ok(sessions)

    @app.get("/api/boarding/sessions/<int:session_id>")
    def get_session(session_id: int) -> Any:
        return _ok(get_system().get_session(session_id))

    @app.post("/api/boarding/sessions")
    def check_in() -> Any:
        payload = _json_body()
        _require_fields(payload, "config_id", "pet_id", "check_in_date", "expected_check_out_date")
        session = get_system().check_in(
            config_id=payload["config_id"],
            pet_id=payload["pet_id"],
            check_in_date=payload["check_in_date"],
            expected_check_out_date=payload["expected_check_out_date"],
            slot_number=payload.get("slot_number"),
            notes=payload.get("notes"),
            assigned_staff_id=payload.get("assigned_staff_id"),
            daily_rate=payload.get("daily_rate"),
            created_by=payload.get("created_by"),
        )
        return _ok(session, 201, message="Pet checked in")

    @app.put("/api/boarding/sessions/<int:session_id>")
    def update_session(session_id: int) -> Any:
        return _ok(get_system().update_session(session_id, **_json_body()))

    @app.post("/api/boarding/sessions/<int:session_id>/checkout")
    def checkout(session_id: int) -> Any:
        payload = _json_body()
        session = get_system().checkout(
            session_id,
            check_out_notes=payload.get("check_out_notes"),
            check_out_date=payload.get("check_out_date"),
        )
        return _ok(session, message="Pet checked out")

    @app.post("/api/boarding/sessions/<int:session_id>/cancel")
    def cancel(session_id: int) -> Any:
        payload = _json_body()
        return _ok(get_system().cancel(session_id, reason=payload.get("reason")))

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    @app.get("/api/boarding/notifications")
    def notifications() -> Any:
        result = get_system().list_notifications(unread_only=bool(_bool_arg("unreadOnly")))
        return _ok(result["notifications"], unreadCount=result["unread_count"])

    @app.put("/api/boarding/notifications/read-all")
    def read_all_notifications() -> Any:
        marked = get_system().mark_all_notifications_read()
        return _ok({"marked": marked})

    return app


__all__ = ["create_app", "get_system"]
