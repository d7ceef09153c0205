"""Holidays, weekly offs and leave types maintained by administrators."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
import logging
from typing import Iterable

from sqlalchemy import extract, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hrdesk.audit import log_audit
from hrdesk.balances import as_days
from hrdesk.errors import ConflictError, NotFoundError, ValidationError
from hrdesk.models import Employee, Holiday, LeaveBalance, LeaveRequest, LeaveType, WeeklyOff
from hrdesk.store import atomic


logger = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add_holiday(self, holiday_date: date, name: str | None, *, actor_id: int | None = None) -> Holiday:
        holiday_name = (name or "").strip()
        if not holiday_name:
            raise ValidationError("Holiday name is required.")

        with atomic(self.session):
            existing = self.session.execute(
                select(Holiday.id).where(Holiday.holiday_date == holiday_date)
            ).scalar_one_or_none()
            if existing is not None:
                raise ConflictError(f"A holiday on {holiday_date.isoformat()} already exists.")

            holiday = Holiday(holiday_date=holiday_date, name=holiday_name)
            self.session.add(holiday)
            try:
                self.session.flush()
            except IntegrityError as exc:
                raise ConflictError(f"A holiday on {holiday_date.isoformat()} already exists.") from exc
            log_audit(
                self.session,
                actor_id,
                action="HOLIDAY_CREATED",
                entity_type="holidays",
                entity_id=holiday.id,
                payload={"holiday_date": holiday_date.isoformat(), "name": holiday_name},
            )

        logger.info("Holiday %s added for %s", holiday.id, holiday_date)
        return holiday

    def list_holidays(self, year: int | None = None) -> list[Holiday]:
        stmt = select(Holiday)
        if year is not None:
            stmt = stmt.where(extract("year", Holiday.holiday_date) == year)
        return list(self.session.execute(stmt.order_by(Holiday.holiday_date.asc())).scalars().all())

    def delete_holiday(self, holiday_id: int, *, actor_id: int | None = None) -> None:
        with atomic(self.session):
            holiday = self.session.get(Holiday, holiday_id)
            if holiday is None:
                raise NotFoundError("Holiday not found.")
            payload = {"holiday_date": holiday.holiday_date.isoformat(), "name": holiday.name}
            self.session.delete(holiday)
            log_audit(
                self.session,
                actor_id,
                action="HOLIDAY_DELETED",
                entity_type="holidays",
                entity_id=holiday_id,
                payload=payload,
            )

    def add_leave_type(
        self,
        name: str | None,
        description: str | None = None,
        is_paid: bool = True,
        default_days_per_year: Decimal | float | int | None = None,
        *,
        actor_id: int | None = None,
    ) -> LeaveType:
        type_name = (name or "").strip()
        if not type_name:
            raise ValidationError("Leave type name is required.")
        default_days = as_days(default_days_per_year) if default_days_per_year is not None else None
        if default_days is not None and default_days < 0:
            raise ValidationError("Default days per year cannot be negative.")

        with atomic(self.session):
            existing = self.session.execute(
                select(LeaveType.id).where(LeaveType.name == type_name)
            ).scalar_one_or_none()
            if existing is not None:
                raise ConflictError(f"Leave type '{type_name}' already exists.")

            leave_type = LeaveType(
                name=type_name,
                description=(description or "").strip() or None,
                is_paid=bool(is_paid),
                default_days_per_year=default_days,
            )
            self.session.add(leave_type)
            try:
                self.session.flush()
            except IntegrityError as exc:
                raise ConflictError(f"Leave type '{type_name}' already exists.") from exc
            log_audit(
                self.session,
                actor_id,
                action="LEAVE_TYPE_CREATED",
                entity_type="leave_types",
                entity_id=leave_type.id,
                payload={"name": type_name, "is_paid": leave_type.is_paid},
            )

        logger.info("Leave type %s created", type_name)
        return leave_type

    def list_leave_types(self) -> list[LeaveType]:
        return list(self.session.execute(select(LeaveType).order_by(LeaveType.name.asc())).scalars().all())

    def delete_leave_type(self, leave_type_id: int, *, actor_id: int | None = None) -> None:
        with atomic(self.session):
            leave_type = self.session.get(LeaveType, leave_type_id)
            if leave_type is None:
                raise NotFoundError("Leave type not found.")

            for model in (LeaveBalance, LeaveRequest):
                in_use = self.session.execute(
                    select(model.id).where(model.leave_type_id == leave_type_id).limit(1)
                ).scalar_one_or_none()
                if in_use is not None:
                    break
            if in_use is not None:
                raise ConflictError(f"Leave type '{leave_type.name}' is in use by balances or leave requests.")

            type_name = leave_type.name
            self.session.delete(leave_type)
            log_audit(
                self.session,
                actor_id,
                action="LEAVE_TYPE_DELETED",
                entity_type="leave_types",
                entity_id=leave_type_id,
                payload={"name": type_name},
            )

        logger.info("Leave type %s deleted", type_name)

    def set_weekly_off(
        self,
        employee_id: int,
        weekly_off_days: Iterable[int],
        effective_date: date,
        end_date: date | None = None,
        *,
        actor_id: int | None = None,
    ) -> WeeklyOff:
        days = list(weekly_off_days)
        if any(not isinstance(day, int) or not 0 <= day <= 6 for day in days):
            raise ValidationError("Weekly off days must be numbers from 0 (Sunday) to 6 (Saturday).")
        days = sorted(set(days))
        if not days:
            raise ValidationError("At least one weekly off day is required.")
        if end_date is not None and end_date < effective_date:
            raise ValidationError("End date must not be before the effective date.")

        with atomic(self.session):
            if self.session.get(Employee, employee_id) is None:
                raise NotFoundError("Employee not found.")

            weekly_off = self.session.execute(
                select(WeeklyOff).where(
                    WeeklyOff.employee_id == employee_id,
                    WeeklyOff.effective_date == effective_date,
                )
            ).scalar_one_or_none()
            if weekly_off is None:
                weekly_off = WeeklyOff(employee_id=employee_id, effective_date=effective_date)
                self.session.add(weekly_off)
            weekly_off.weekly_off_days = days
            weekly_off.end_date = end_date
            try:
                self.session.flush()
            except IntegrityError as exc:
                raise ConflictError(
                    f"A weekly off assignment from {effective_date.isoformat()} already exists."
                ) from exc
            log_audit(
                self.session,
                actor_id,
                action="WEEKLY_OFF_SAVED",
                entity_type="weekly_offs",
                entity_id=weekly_off.id,
                payload={
                    "employee_id": employee_id,
                    "weekly_off_days": days,
                    "effective_date": effective_date.isoformat(),
                    "end_date": end_date.isoformat() if end_date is not None else None,
                },
            )

        logger.info("Weekly offs %s saved for employee %s from %s", days, employee_id, effective_date)
        return weekly_off

    def list_weekly_offs(self, employee_id: int | None = None) -> list[WeeklyOff]:
        stmt = select(WeeklyOff)
        if employee_id is not None:
            stmt = stmt.where(WeeklyOff.employee_id == employee_id)
        stmt = stmt.order_by(WeeklyOff.employee_id.asc(), WeeklyOff.effective_date.desc())
        return list(self.session.execute(stmt).scalars().all())

    def delete_weekly_off(self, weekly_off_id: int, *, actor_id: int | None = None) -> None:
        with atomic(self.session):
            weekly_off = self.session.get(WeeklyOff, weekly_off_id)
            if weekly_off is None:
                raise NotFoundError("Weekly off record not found.")
            payload = {
                "employee_id": weekly_off.employee_id,
                "effective_date": weekly_off.effective_date.isoformat(),
            }
            self.session.delete(weekly_off)
            log_audit(
                self.session,
                actor_id,
                action="WEEKLY_OFF_DELETED",
                entity_type="weekly_offs",
                entity_id=weekly_off_id,
                payload=payload,
            )
