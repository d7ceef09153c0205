"""Administrator routes."""

from __future__ import annotations

from flask import Blueprint, current_app, request
from flask_login import current_user, login_required

from hrdesk.authorization import (
    allocate_balances_required,
    broadcast_required,
    decide_leaves_required,
    manage_catalog_required,
    review_corrections_required,
    view_team_attendance_required,
)
from hrdesk.forms import (
    BroadcastForm,
    HolidayForm,
    LeaveAllocationForm,
    LeaveTypeForm,
    ReviewForm,
    TargetedNotificationForm,
    WeeklyOffForm,
)
from hrdesk.notifications import notification_to_dict
from hrdesk.web import (
    attendance_ledger,
    balance_ledger,
    catalog_service,
    correction_service,
    correction_to_dict,
    holiday_to_dict,
    json_formdata,
    leave_service,
    leave_to_dict,
    leave_type_to_dict,
    local_today,
    notification_dispatcher,
    optional_iso_date,
    roster_entry_to_dict,
    validated,
    weekly_off_to_dict,
)


bp = Blueprint("admin", __name__, url_prefix="/admin")


@bp.get("/corrections")
@login_required
@review_corrections_required
def corrections_list():
    corrections = correction_service().list(
        status=request.args.get("status") or None,
        employee_id=request.args.get("employee_id", type=int),
    )
    return {"corrections": [correction_to_dict(item) for item in corrections]}


@bp.post("/corrections/<int:correction_id>/review")
@login_required
@review_corrections_required
def correction_review(correction_id: int):
    form = validated(ReviewForm(formdata=json_formdata()))
    correction = correction_service().review(
        correction_id,
        form.decision.data,
        form.admin_comment.data,
        reviewer=current_user,
    )
    return {"correction": correction_to_dict(correction)}


@bp.get("/leaves")
@login_required
@decide_leaves_required
def leaves_list():
    leaves = leave_service().list(status=request.args.get("status") or None)
    return {"leaves": [leave_to_dict(item) for item in leaves]}


@bp.post("/leaves/<int:leave_request_id>/decide")
@login_required
@decide_leaves_required
def leave_decide(leave_request_id: int):
    form = validated(ReviewForm(formdata=json_formdata()))
    leave_request = leave_service().decide(
        leave_request_id,
        form.decision.data,
        form.admin_comment.data,
        decider=current_user,
    )
    return {"leave": leave_to_dict(leave_request)}


@bp.put("/leave-balances/<int:employee_id>/<int:leave_type_id>")
@login_required
@allocate_balances_required
def leave_balance_allocate(employee_id: int, leave_type_id: int):
    form = validated(LeaveAllocationForm(formdata=json_formdata()))
    snapshot = balance_ledger().allocate(
        employee_id,
        leave_type_id,
        form.total_days_allocated.data,
        actor_id=current_user.id,
    )
    return {"balance": snapshot.to_dict()}


@bp.post("/notifications/global")
@login_required
@broadcast_required
def notification_broadcast():
    form = validated(BroadcastForm(formdata=json_formdata()))
    notification = notification_dispatcher().send_global(form.message.data, actor_id=current_user.id)
    current_app.logger.info("Global notification %s sent by %s", notification.id, current_user.id)
    return {"notification": notification_to_dict(notification)}, 201


@bp.post("/notifications/send")
@login_required
@broadcast_required
def notification_send():
    form = validated(TargetedNotificationForm(formdata=json_formdata()))
    notification = notification_dispatcher().send_to(
        form.employee_id.data,
        form.message.data,
        actor_id=current_user.id,
    )
    return {"notification": notification_to_dict(notification)}, 201


@bp.get("/holidays")
@login_required
@manage_catalog_required
def holidays_list():
    year = request.args.get("year", type=int)
    return {"holidays": [holiday_to_dict(item) for item in catalog_service().list_holidays(year)]}


@bp.post("/holidays")
@login_required
@manage_catalog_required
def holiday_create():
    form = validated(HolidayForm(formdata=json_formdata()))
    holiday = catalog_service().add_holiday(form.holiday_date.data, form.name.data, actor_id=current_user.id)
    return {"holiday": holiday_to_dict(holiday)}, 201


@bp.delete("/holidays/<int:holiday_id>")
@login_required
@manage_catalog_required
def holiday_delete(holiday_id: int):
    catalog_service().delete_holiday(holiday_id, actor_id=current_user.id)
    return {"deleted": holiday_id}


@bp.post("/leave-types")
@login_required
@manage_catalog_required
def leave_type_create():
    form = validated(LeaveTypeForm(formdata=json_formdata()))
    leave_type = catalog_service().add_leave_type(
        form.name.data,
        form.description.data,
        is_paid=bool(form.is_paid.data),
        default_days_per_year=form.default_days_per_year.data,
        actor_id=current_user.id,
    )
    return {"leave_type": leave_type_to_dict(leave_type)}, 201


@bp.delete("/leave-types/<int:leave_type_id>")
@login_required
@manage_catalog_required
def leave_type_delete(leave_type_id: int):
    catalog_service().delete_leave_type(leave_type_id, actor_id=current_user.id)
    return {"deleted": leave_type_id}


@bp.get("/leave-balances")
@login_required
@allocate_balances_required
def leave_balances_list():
    balances = balance_ledger().list_all(employee_id=request.args.get("employee_id", type=int))
    return {"balances": [snapshot.to_dict() for snapshot in balances]}


@bp.delete("/leave-balances/<int:employee_id>/<int:leave_type_id>")
@login_required
@allocate_balances_required
def leave_balance_delete(employee_id: int, leave_type_id: int):
    balance_ledger().delete(employee_id, leave_type_id, actor_id=current_user.id)
    return {"deleted": {"employee_id": employee_id, "leave_type_id": leave_type_id}}


@bp.get("/weekly-offs")
@login_required
@manage_catalog_required
def weekly_offs_list():
    weekly_offs = catalog_service().list_weekly_offs(employee_id=request.args.get("employee_id", type=int))
    return {"weekly_offs": [weekly_off_to_dict(item) for item in weekly_offs]}


@bp.post("/weekly-offs")
@login_required
@manage_catalog_required
def weekly_off_save():
    form = validated(WeeklyOffForm(formdata=json_formdata()))
    weekly_off = catalog_service().set_weekly_off(
        form.employee_id.data,
        form.weekly_off_days.data,
        form.effective_date.data,
        form.end_date.data,
        actor_id=current_user.id,
    )
    return {"weekly_off": weekly_off_to_dict(weekly_off)}, 201


@bp.delete("/weekly-offs/<int:weekly_off_id>")
@login_required
@manage_catalog_required
def weekly_off_delete(weekly_off_id: int):
    catalog_service().delete_weekly_off(weekly_off_id, actor_id=current_user.id)
    return {"deleted": weekly_off_id}


@bp.get("/attendance")
@login_required
@view_team_attendance_required
def attendance_roster():
    work_date = optional_iso_date("date") or local_today()
    roster = attendance_ledger().daily_roster(work_date)
    return {"date": work_date.isoformat(), "attendance": [roster_entry_to_dict(entry) for entry in roster]}
