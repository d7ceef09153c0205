"""Attendance ledger: one record per employee and calendar day."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hrdesk.audit import log_audit
from hrdesk.errors import ConflictError, ValidationError
from hrdesk.models import (
    AttendanceRecord,
    AttendanceStatus,
    Employee,
    LeaveRequest,
    LeaveRequestStatus,
    Role,
    ShiftType,
)
from hrdesk.store import atomic


logger = logging.getLogger(__name__)

DEFAULT_DAY_SHIFT_START = time(9, 0)
DEFAULT_EVENING_SHIFT_START = time(18, 0)


def parse_clock(value: str | time) -> time:
    if isinstance(value, time):
        return value
    try:
        hour, minute = (int(chunk) for chunk in value.strip().split(":", 1))
        return time(hour=hour, minute=minute)
    except ValueError as exc:
        raise ValidationError(f"Invalid time of day: {value!r}.") from exc


def app_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        return ZoneInfo("UTC")


def local_now(tz_name: str) -> datetime:
    """Current wall-clock time in the company timezone, without tzinfo."""
    return datetime.now(app_timezone(tz_name)).replace(tzinfo=None)


def derive_status(check_in: datetime | None, check_out: datetime | None) -> AttendanceStatus:
    if check_in is not None and check_out is not None:
        return AttendanceStatus.PRESENT
    if check_in is not None:
        return AttendanceStatus.HALF_DAY
    return AttendanceStatus.ABSENT


def _minutes_between(start: datetime, end: datetime) -> int:
    return max(0, int((end - start).total_seconds() // 60))


@dataclass(frozen=True)
class RosterEntry:
    employee: Employee
    record: AttendanceRecord | None
    on_leave: bool

    @property
    def status(self) -> AttendanceStatus:
        if self.record is not None:
            return self.record.status
        return AttendanceStatus.ABSENT


class AttendanceLedger:
    def __init__(
        self,
        session: Session,
        *,
        day_shift_start: time = DEFAULT_DAY_SHIFT_START,
        evening_shift_start: time = DEFAULT_EVENING_SHIFT_START,
        tz_name: str = "UTC",
    ) -> None:
        self.session = session
        self.shift_starts = {
            ShiftType.DAY: day_shift_start,
            ShiftType.EVENING: evening_shift_start,
        }
        self.tz_name = tz_name

    def _find(self, employee_id: int, work_date: date) -> AttendanceRecord | None:
        return self.session.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.work_date == work_date,
            )
        ).scalar_one_or_none()

    def _flush_new_record(self, record: AttendanceRecord) -> None:
        self.session.add(record)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise ConflictError(
                f"An attendance record for {record.work_date.isoformat()} already exists."
            ) from exc

    def _recompute(self, record: AttendanceRecord, shift_type: ShiftType) -> None:
        record.status = derive_status(record.check_in, record.check_out)
        record.late_minutes = 0
        record.worked_minutes = 0
        if record.check_in is None:
            return

        shift_start = datetime.combine(record.work_date, self.shift_starts[shift_type])
        record.late_minutes = _minutes_between(shift_start, record.check_in)
        if record.check_out is not None:
            record.worked_minutes = _minutes_between(record.check_in, record.check_out)

    def _shift_type_for(self, employee_id: int) -> ShiftType:
        employee = self.session.get(Employee, employee_id)
        if employee is None:
            return ShiftType.DAY
        return employee.shift_type

    def _to_local(self, at: datetime | None) -> datetime:
        if at is None:
            return local_now(self.tz_name)
        if at.tzinfo is not None:
            return at.astimezone(app_timezone(self.tz_name)).replace(tzinfo=None)
        return at

    def _closes_previous_shift(self, employee: Employee, moment: datetime) -> bool:
        # Only an evening shift runs past midnight, and only until the next day shift starts.
        return employee.shift_type == ShiftType.EVENING and moment.time() < self.shift_starts[ShiftType.DAY]

    def get_or_create(self, employee_id: int, work_date: date) -> AttendanceRecord:
        record = self._find(employee_id, work_date)
        if record is not None:
            return record

        record = AttendanceRecord(
            employee_id=employee_id,
            work_date=work_date,
            status=AttendanceStatus.ABSENT,
            late_minutes=0,
            worked_minutes=0,
        )
        self._flush_new_record(record)
        return record

    def apply_correction(
        self,
        employee_id: int,
        work_date: date,
        check_in: time | None,
        check_out: time | None,
        correction_id: int | None = None,
    ) -> AttendanceRecord:
        record = self.get_or_create(employee_id, work_date)

        new_check_in = datetime.combine(work_date, check_in) if check_in is not None else None
        new_check_out = None
        if check_out is not None and new_check_in is not None:
            new_check_out = datetime.combine(work_date, check_out)
            # Overnight shifts end on the following calendar day.
            if new_check_out < new_check_in:
                new_check_out += timedelta(days=1)

        record.check_in = new_check_in
        record.check_out = new_check_out
        record.corrected_by_request_id = correction_id
        self._recompute(record, self._shift_type_for(employee_id))
        self.session.flush()
        return record

    def record_check_in(self, employee: Employee, at: datetime | None = None) -> AttendanceRecord:
        moment = self._to_local(at)
        work_date = moment.date()

        with atomic(self.session):
            record = self._find(employee.id, work_date)
            if record is not None and record.check_in is not None:
                raise ConflictError(f"Already checked in on {work_date.isoformat()}.")
            if record is None:
                record = AttendanceRecord(employee_id=employee.id, work_date=work_date)
                record.check_in = moment
                self._recompute(record, employee.shift_type)
                self._flush_new_record(record)
            else:
                record.check_in = moment
                self._recompute(record, employee.shift_type)
                self.session.flush()

            log_audit(
                self.session,
                employee.id,
                action="ATTENDANCE_CHECK_IN",
                entity_type="attendance",
                entity_id=record.id,
                payload={"work_date": work_date.isoformat(), "check_in": moment.isoformat()},
            )

        logger.info("Employee %s checked in on %s", employee.id, work_date)
        return record

    def record_check_out(self, employee: Employee, at: datetime | None = None) -> AttendanceRecord:
        moment = self._to_local(at)
        work_date = moment.date()

        with atomic(self.session):
            record = self._find(employee.id, work_date)
            if record is None and self._closes_previous_shift(employee, moment):
                previous = self._find(employee.id, work_date - timedelta(days=1))
                if previous is not None and previous.check_in is not None and previous.check_out is None:
                    record = previous
            if record is None or record.check_in is None:
                raise ConflictError("Cannot check out without a check-in.")
            if record.check_out is not None:
                raise ConflictError(f"Already checked out on {record.work_date.isoformat()}.")
            if moment < record.check_in:
                raise ConflictError("Check-out cannot be earlier than check-in.")

            record.check_out = moment
            self._recompute(record, employee.shift_type)
            self.session.flush()
            log_audit(
                self.session,
                employee.id,
                action="ATTENDANCE_CHECK_OUT",
                entity_type="attendance",
                entity_id=record.id,
                payload={"work_date": record.work_date.isoformat(), "check_out": moment.isoformat()},
            )

        logger.info("Employee %s checked out on %s", employee.id, record.work_date)
        return record

    def list_for_employee(
        self,
        employee_id: int,
        start: date | None = None,
        end: date | None = None,
    ) -> list[AttendanceRecord]:
        if start is not None and end is not None and end < start:
            raise ValidationError("End date must not be before start date.")

        stmt = select(AttendanceRecord).where(AttendanceRecord.employee_id == employee_id)
        if start is not None:
            stmt = stmt.where(AttendanceRecord.work_date >= start)
        if end is not None:
            stmt = stmt.where(AttendanceRecord.work_date <= end)
        return list(self.session.execute(stmt.order_by(AttendanceRecord.work_date.desc())).scalars().all())

    def daily_roster(self, work_date: date) -> list[RosterEntry]:
        """Every active employee with their record and approved leave for one day."""
        employees = self.session.execute(
            select(Employee)
            .where(Employee.role == Role.EMPLOYEE, Employee.is_active.is_(True))
            .order_by(Employee.name.asc(), Employee.id.asc())
        ).scalars().all()
        records = {
            record.employee_id: record
            for record in self.session.execute(
                select(AttendanceRecord).where(AttendanceRecord.work_date == work_date)
            ).scalars()
        }
        on_leave = set(
            self.session.execute(
                select(LeaveRequest.employee_id).where(
                    LeaveRequest.status == LeaveRequestStatus.APPROVED,
                    LeaveRequest.from_date <= work_date,
                    LeaveRequest.to_date >= work_date,
                )
            ).scalars()
        )
        return [
            RosterEntry(employee=employee, record=records.get(employee.id), on_leave=employee.id in on_leave)
            for employee in employees
        ]
