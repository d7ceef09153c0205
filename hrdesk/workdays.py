"""Working-day arithmetic over holidays and per-employee weekly offs."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrdesk.models import Holiday, WeeklyOff


# Saturday and Sunday, used when an employee has no weekly-off assignment.
DEFAULT_WEEKLY_OFF_DAYS = frozenset({0, 6})


def weekday_number(day: date) -> int:
    """Day of week numbered 0 (Sunday) to 6 (Saturday)."""
    return (day.weekday() + 1) % 7


def _assignment_for(day: date, assignments: Iterable[WeeklyOff]) -> WeeklyOff | None:
    # ``assignments`` is ordered newest effective date first.
    for assignment in assignments:
        if assignment.effective_date > day:
            continue
        if assignment.end_date is not None and assignment.end_date < day:
            continue
        return assignment
    return None


class WorkCalendar:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _holiday_dates(self, from_date: date, to_date: date) -> set[date]:
        return set(
            self.session.execute(
                select(Holiday.holiday_date).where(
                    Holiday.holiday_date >= from_date,
                    Holiday.holiday_date <= to_date,
                )
            ).scalars()
        )

    def _assignments(self, employee_id: int, to_date: date) -> list[WeeklyOff]:
        return list(
            self.session.execute(
                select(WeeklyOff)
                .where(WeeklyOff.employee_id == employee_id, WeeklyOff.effective_date <= to_date)
                .order_by(WeeklyOff.effective_date.desc())
            ).scalars()
        )

    def is_weekly_off(self, day: date, assignments: Iterable[WeeklyOff]) -> bool:
        assignment = _assignment_for(day, assignments)
        off_days = DEFAULT_WEEKLY_OFF_DAYS if assignment is None else set(assignment.weekly_off_days)
        return weekday_number(day) in off_days

    def working_days(self, employee_id: int, from_date: date, to_date: date) -> int:
        holidays = self._holiday_dates(from_date, to_date)
        assignments = self._assignments(employee_id, to_date)

        count = 0
        day = from_date
        while day <= to_date:
            if day not in holidays and not self.is_weekly_off(day, assignments):
                count += 1
            day += timedelta(days=1)
        return count
