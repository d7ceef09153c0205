"""Helpers shared by the API blueprints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from flask import current_app, request
from flask_wtf import FlaskForm
from werkzeug.datastructures import ImmutableMultiDict

from hrdesk.attendance import AttendanceLedger, RosterEntry, local_now, parse_clock
from hrdesk.balances import BalanceLedger
from hrdesk.catalog import CatalogService
from hrdesk.corrections import CorrectionService
from hrdesk.errors import ValidationError
from hrdesk.extensions import db
from hrdesk.leaves import LeaveService
from hrdesk.models import AttendanceRecord, CorrectionRequest, Holiday, LeaveRequest, LeaveType, WeeklyOff
from hrdesk.notifications import NotificationDispatcher


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def json_formdata() -> ImmutableMultiDict:
    """Flatten a JSON object body into form data; ``null`` counts as absent.

    A list becomes one form value per item, the way a multi-select posts.
    """
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")

    items = []
    for key, value in payload.items():
        if value is None:
            continue
        values = value if isinstance(value, list) else [value]
        items.extend((key, _form_value(item)) for item in values if item is not None)
    return ImmutableMultiDict(items)


def validated(form: FlaskForm) -> FlaskForm:
    if not form.validate_on_submit():
        raise ValidationError("Invalid request payload.", details={"fields": form.errors})
    return form


def optional_iso_date(name: str) -> date | None:
    raw_value = (request.args.get(name) or "").strip()
    if not raw_value:
        return None
    try:
        return date.fromisoformat(raw_value)
    except ValueError as exc:
        raise ValidationError(f"Invalid date for '{name}': {raw_value!r}.") from exc


def local_today() -> date:
    return local_now(current_app.config["APP_TIMEZONE"]).date()


def attendance_ledger() -> AttendanceLedger:
    config = current_app.config
    return AttendanceLedger(
        db.session,
        day_shift_start=parse_clock(config["DAY_SHIFT_START"]),
        evening_shift_start=parse_clock(config["EVENING_SHIFT_START"]),
        tz_name=config["APP_TIMEZONE"],
    )


def balance_ledger() -> BalanceLedger:
    return BalanceLedger(db.session)


def notification_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher(db.session)


def correction_service() -> CorrectionService:
    return CorrectionService(
        db.session,
        attendance=attendance_ledger(),
        notifications=notification_dispatcher(),
        today=local_today,
    )


def leave_service() -> LeaveService:
    return LeaveService(
        db.session,
        balances=balance_ledger(),
        notifications=notification_dispatcher(),
        reject_overlap=current_app.config["LEAVE_REJECT_OVERLAP"],
        count_working_days=current_app.config["LEAVE_COUNT_WORKING_DAYS"],
    )


def catalog_service() -> CatalogService:
    return CatalogService(db.session)


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def attendance_to_dict(record: AttendanceRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "employee_id": record.employee_id,
        "date": record.work_date.isoformat(),
        "check_in": _iso(record.check_in),
        "check_out": _iso(record.check_out),
        "status": record.status.value,
        "late_minutes": record.late_minutes,
        "worked_minutes": record.worked_minutes,
        "corrected_by_request_id": record.corrected_by_request_id,
    }


def correction_to_dict(correction: CorrectionRequest) -> dict[str, Any]:
    check_out = correction.requested_check_out
    return {
        "id": correction.id,
        "employee_id": correction.employee_id,
        "date": correction.work_date.isoformat(),
        "requested_check_in": correction.requested_check_in.strftime("%H:%M"),
        "requested_check_out": check_out.strftime("%H:%M") if check_out is not None else None,
        "reason": correction.reason,
        "status": correction.status.value,
        "admin_comment": correction.admin_comment,
        "reviewed_by_id": correction.reviewed_by_id,
        "reviewed_at": _iso(correction.reviewed_at),
        "created_at": _iso(correction.created_at),
    }


def leave_to_dict(leave_request: LeaveRequest) -> dict[str, Any]:
    return {
        "id": leave_request.id,
        "employee_id": leave_request.employee_id,
        "leave_type_id": leave_request.leave_type_id,
        "from_date": leave_request.from_date.isoformat(),
        "to_date": leave_request.to_date.isoformat(),
        "is_half_day": leave_request.is_half_day,
        "days": str(leave_request.days),
        "reason": leave_request.reason,
        "status": leave_request.status.value,
        "admin_comment": leave_request.admin_comment,
        "decided_by_id": leave_request.decided_by_id,
        "decided_at": _iso(leave_request.decided_at),
        "created_at": _iso(leave_request.created_at),
    }


def leave_type_to_dict(leave_type: LeaveType) -> dict[str, Any]:
    default_days = leave_type.default_days_per_year
    return {
        "id": leave_type.id,
        "name": leave_type.name,
        "description": leave_type.description,
        "is_paid": leave_type.is_paid,
        "default_days_per_year": str(default_days) if default_days is not None else None,
    }


def holiday_to_dict(holiday: Holiday) -> dict[str, Any]:
    return {"id": holiday.id, "date": holiday.holiday_date.isoformat(), "name": holiday.name}


def weekly_off_to_dict(weekly_off: WeeklyOff) -> dict[str, Any]:
    return {
        "id": weekly_off.id,
        "employee_id": weekly_off.employee_id,
        "weekly_off_days": list(weekly_off.weekly_off_days),
        "effective_date": weekly_off.effective_date.isoformat(),
        "end_date": _iso(weekly_off.end_date),
    }


def roster_entry_to_dict(entry: RosterEntry) -> dict[str, Any]:
    record = entry.record
    return {
        "employee_id": entry.employee.id,
        "employee_code": entry.employee.employee_code,
        "name": entry.employee.name,
        "shift_type": entry.employee.shift_type.value,
        "status": entry.status.value,
        "on_leave": entry.on_leave,
        "attendance": attendance_to_dict(record) if record is not None else None,
    }
