"""Employee self-service routes."""

from __future__ import annotations

from flask import Blueprint, current_app, request
from flask_login import current_user, login_required

from hrdesk.authorization import self_service_required
from hrdesk.forms import CorrectionRequestForm, LeaveRequestForm
from hrdesk.web import (
    attendance_ledger,
    attendance_to_dict,
    balance_ledger,
    correction_service,
    correction_to_dict,
    json_formdata,
    leave_service,
    leave_to_dict,
    notification_dispatcher,
    optional_iso_date,
    validated,
)


bp = Blueprint("employee", __name__)


@bp.post("/me/attendance/check-in")
@login_required
@self_service_required
def attendance_check_in():
    record = attendance_ledger().record_check_in(current_user)
    return {"attendance": attendance_to_dict(record)}, 201


@bp.post("/me/attendance/check-out")
@login_required
@self_service_required
def attendance_check_out():
    record = attendance_ledger().record_check_out(current_user)
    return {"attendance": attendance_to_dict(record)}, 200


@bp.get("/me/attendance")
@login_required
@self_service_required
def attendance_list():
    records = attendance_ledger().list_for_employee(
        current_user.id,
        optional_iso_date("from"),
        optional_iso_date("to"),
    )
    return {"attendance": [attendance_to_dict(record) for record in records]}


@bp.post("/me/corrections")
@login_required
@self_service_required
def correction_create():
    form = validated(CorrectionRequestForm(formdata=json_formdata()))
    correction = correction_service().submit(
        current_user,
        form.work_date.data,
        form.requested_check_in.data,
        form.requested_check_out.data,
        form.reason.data,
    )
    return {"correction": correction_to_dict(correction)}, 201


@bp.get("/me/corrections")
@login_required
@self_service_required
def correction_list():
    corrections = correction_service().list_for_employee(current_user.id)
    return {"corrections": [correction_to_dict(item) for item in corrections]}


@bp.post("/me/leaves")
@login_required
@self_service_required
def leave_create():
    form = validated(LeaveRequestForm(formdata=json_formdata()))
    leave_request = leave_service().apply(
        current_user,
        form.leave_type_id.data,
        form.from_date.data,
        form.to_date.data,
        form.reason.data,
        is_half_day=bool(form.is_half_day.data),
    )
    return {"leave": leave_to_dict(leave_request)}, 201


@bp.get("/me/leaves")
@login_required
@self_service_required
def leave_list():
    return {"leaves": [leave_to_dict(item) for item in leave_service().list_for_employee(current_user.id)]}


@bp.post("/me/leaves/<int:leave_request_id>/cancel")
@login_required
@self_service_required
def leave_cancel(leave_request_id: int):
    leave_request = leave_service().cancel(leave_request_id, requester=current_user)
    return {"leave": leave_to_dict(leave_request)}


@bp.get("/me/leave-balances")
@login_required
@self_service_required
def leave_balances():
    snapshots = balance_ledger().list_for_employee(current_user.id)
    return {"balances": [snapshot.to_dict() for snapshot in snapshots]}


@bp.get("/me/notifications")
@login_required
def notification_list():
    unread_only = request.args.get("unread", "").strip().lower() in {"1", "true", "yes"}
    views = notification_dispatcher().list_for(current_user, unread_only=unread_only)
    return {"notifications": [view.to_dict() for view in views]}


@bp.post("/me/notifications/<int:notification_id>/read")
@login_required
def notification_mark_read(notification_id: int):
    view = notification_dispatcher().mark_read(notification_id, current_user)
    current_app.logger.debug("Notification %s read by %s", notification_id, current_user.id)
    return {"notification": view.to_dict()}
