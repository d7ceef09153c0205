from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from hrdesk.attendance import AttendanceLedger, derive_status, parse_clock
from hrdesk.errors import ConflictError, ValidationError
from hrdesk.extensions import db
from hrdesk.models import (
    AttendanceRecord,
    AttendanceStatus,
    AuditLog,
    Employee,
    LeaveRequest,
    LeaveRequestStatus,
    ShiftType,
)


def _headers(employee_id: int) -> dict[str, str]:
    return {"X-Employee-Id": str(employee_id)}


def _ledger() -> AttendanceLedger:
    return AttendanceLedger(db.session, day_shift_start=time(9, 0), evening_shift_start=time(18, 0))


def test_derive_status_from_times():
    moment = datetime(2024, 3, 1, 9, 0)
    assert derive_status(moment, moment.replace(hour=18)) == AttendanceStatus.PRESENT
    assert derive_status(moment, None) == AttendanceStatus.HALF_DAY
    assert derive_status(None, None) == AttendanceStatus.ABSENT


def test_parse_clock_accepts_hh_mm():
    assert parse_clock("18:00") == time(18, 0)
    with pytest.raises(ValidationError):
        parse_clock("six pm")


def test_check_in_then_check_out(app):
    ledger = _ledger()
    employee = db.session.get(Employee, 3)

    record = ledger.record_check_in(employee, datetime(2024, 3, 4, 9, 20))
    assert record.status == AttendanceStatus.HALF_DAY
    assert record.late_minutes == 20

    record = ledger.record_check_out(employee, datetime(2024, 3, 4, 17, 50))
    assert record.status == AttendanceStatus.PRESENT
    assert record.worked_minutes == 510

    actions = db.session.execute(
        select(AuditLog.action).where(AuditLog.entity_type == "attendance").order_by(AuditLog.id)
    ).scalars().all()
    assert actions == ["ATTENDANCE_CHECK_IN", "ATTENDANCE_CHECK_OUT"]


def test_aware_timestamps_are_converted_to_company_time(app):
    ledger = AttendanceLedger(db.session, tz_name="Asia/Kolkata")
    employee = db.session.get(Employee, 5)

    record = ledger.record_check_in(employee, datetime(2024, 3, 4, 3, 30, tzinfo=timezone.utc))
    assert record.work_date == date(2024, 3, 4)
    assert record.check_in == datetime(2024, 3, 4, 9, 0)
    assert record.late_minutes == 0


def test_second_check_in_conflicts(app):
    ledger = _ledger()
    employee = db.session.get(Employee, 3)
    ledger.record_check_in(employee, datetime(2024, 3, 4, 9, 0))

    with pytest.raises(ConflictError):
        ledger.record_check_in(employee, datetime(2024, 3, 4, 10, 0))
    assert db.session.execute(select(func.count(AttendanceRecord.id))).scalar_one() == 1


def test_check_out_conflicts(app):
    ledger = _ledger()
    employee = db.session.get(Employee, 7)

    with pytest.raises(ConflictError):
        ledger.record_check_out(employee, datetime(2024, 3, 4, 17, 0))

    ledger.record_check_in(employee, datetime(2024, 3, 4, 9, 0))
    with pytest.raises(ConflictError):
        ledger.record_check_out(employee, datetime(2024, 3, 4, 8, 0))

    ledger.record_check_out(employee, datetime(2024, 3, 4, 17, 0))
    with pytest.raises(ConflictError):
        ledger.record_check_out(employee, datetime(2024, 3, 4, 18, 0))


def test_evening_shift_check_out_after_midnight(app):
    employee = db.session.get(Employee, 9)
    employee.shift_type = ShiftType.EVENING
    db.session.commit()

    ledger = _ledger()
    record = ledger.record_check_in(employee, datetime(2024, 3, 4, 18, 10))
    assert record.late_minutes == 10

    closed = ledger.record_check_out(employee, datetime(2024, 3, 5, 2, 10))
    assert closed.work_date == date(2024, 3, 4)
    assert closed.check_out == datetime(2024, 3, 5, 2, 10)
    assert closed.status == AttendanceStatus.PRESENT


def test_day_shift_check_out_does_not_close_previous_day(app):
    ledger = _ledger()
    employee = db.session.get(Employee, 3)
    ledger.record_check_in(employee, datetime(2024, 3, 4, 9, 0))

    with pytest.raises(ConflictError):
        ledger.record_check_out(employee, datetime(2024, 3, 5, 8, 30))

    monday = ledger.list_for_employee(3, date(2024, 3, 4), date(2024, 3, 4))[0]
    assert monday.check_out is None
    assert monday.status == AttendanceStatus.HALF_DAY


def test_evening_shift_cannot_close_previous_day_after_day_shift_starts(app):
    employee = db.session.get(Employee, 7)
    employee.shift_type = ShiftType.EVENING
    db.session.commit()

    ledger = _ledger()
    ledger.record_check_in(employee, datetime(2024, 3, 4, 18, 0))
    with pytest.raises(ConflictError):
        ledger.record_check_out(employee, datetime(2024, 3, 5, 10, 0))


def test_get_or_create_is_idempotent(app):
    ledger = _ledger()
    first = ledger.get_or_create(3, date(2024, 3, 1))
    second = ledger.get_or_create(3, date(2024, 3, 1))
    assert first.id == second.id
    assert first.status == AttendanceStatus.ABSENT


def test_list_for_employee_filters_range(app):
    ledger = _ledger()
    for day in (1, 2, 3):
        ledger.get_or_create(3, date(2024, 3, day))
    ledger.get_or_create(5, date(2024, 3, 2))
    db.session.commit()

    records = ledger.list_for_employee(3, date(2024, 3, 2), date(2024, 3, 3))
    assert [record.work_date for record in records] == [date(2024, 3, 3), date(2024, 3, 2)]

    with pytest.raises(ValidationError):
        ledger.list_for_employee(3, date(2024, 3, 3), date(2024, 3, 1))


def test_check_in_endpoints(client):
    first = client.post("/me/attendance/check-in", headers=_headers(3))
    assert first.status_code == 201
    assert first.get_json()["attendance"]["status"] == "half-day"

    second = client.post("/me/attendance/check-in", headers=_headers(3))
    assert second.status_code == 409
    assert second.get_json()["error"] == "conflict"

    out = client.post("/me/attendance/check-out", headers=_headers(3))
    assert out.status_code == 200
    assert out.get_json()["attendance"]["status"] == "present"


def test_check_out_endpoint_without_check_in(client):
    response = client.post("/me/attendance/check-out", headers=_headers(5))
    assert response.status_code == 409


def _approved_leave(employee_id: int, day: date) -> None:
    db.session.add(
        LeaveRequest(
            employee_id=employee_id,
            leave_type_id=1,
            from_date=day,
            to_date=day,
            days=Decimal("1.00"),
            reason="Approved earlier",
            status=LeaveRequestStatus.APPROVED,
        )
    )
    db.session.commit()


def test_daily_roster_lists_every_active_employee(app):
    ledger = _ledger()
    ledger.record_check_in(db.session.get(Employee, 3), datetime(2024, 3, 4, 9, 5))
    _approved_leave(5, date(2024, 3, 4))
    db.session.get(Employee, 9).is_active = False
    db.session.commit()

    roster = ledger.daily_roster(date(2024, 3, 4))
    assert [entry.employee.id for entry in roster] == [3, 5, 7]
    assert [entry.status for entry in roster] == [
        AttendanceStatus.HALF_DAY,
        AttendanceStatus.ABSENT,
        AttendanceStatus.ABSENT,
    ]
    assert [entry.on_leave for entry in roster] == [False, True, False]
    assert roster[0].record.late_minutes == 5


def test_admin_attendance_endpoint(client):
    client.post("/me/attendance/check-in", headers=_headers(7))
    today = client.get("/admin/attendance", headers=_headers(1))
    assert today.status_code == 200
    rows = {row["employee_id"]: row for row in today.get_json()["attendance"]}
    assert set(rows) == {3, 5, 7, 9}
    assert rows[7]["status"] == "half-day"
    assert rows[7]["attendance"]["employee_id"] == 7
    assert rows[3]["attendance"] is None

    past = client.get("/admin/attendance?date=2024-03-04", headers=_headers(1)).get_json()
    assert past["date"] == "2024-03-04"
    assert {row["status"] for row in past["attendance"]} == {"absent"}

    assert client.get("/admin/attendance?date=yesterday", headers=_headers(1)).status_code == 400
    assert client.get("/admin/attendance", headers=_headers(3)).status_code == 403
