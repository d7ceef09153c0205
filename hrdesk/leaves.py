"""Leave requests and their balance reservations."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from hrdesk.audit import log_audit
from hrdesk.balances import BalanceLedger, as_days, format_days
from hrdesk.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from hrdesk.models import Employee, LeaveRequest, LeaveRequestStatus, LeaveType
from hrdesk.notifications import Admins, NotificationDispatcher, Targeted
from hrdesk.store import atomic
from hrdesk.workdays import WorkCalendar


logger = logging.getLogger(__name__)

HALF_DAY = Decimal("0.50")
DECISIONS = {LeaveRequestStatus.APPROVED, LeaveRequestStatus.REJECTED}
OPEN_STATUSES = (LeaveRequestStatus.PENDING, LeaveRequestStatus.APPROVED)


def requested_length(from_date: date, to_date: date, is_half_day: bool) -> Decimal:
    if is_half_day:
        return HALF_DAY
    return as_days((to_date - from_date).days + 1)


def _decision(value: LeaveRequestStatus | str) -> LeaveRequestStatus:
    try:
        decision = LeaveRequestStatus(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid leave decision: {value!r}.") from exc
    if decision not in DECISIONS:
        raise ValidationError(f"Invalid leave decision: {value!r}.")
    return decision


def _span_label(leave_request: LeaveRequest) -> str:
    if leave_request.from_date == leave_request.to_date:
        return leave_request.from_date.isoformat()
    return f"{leave_request.from_date.isoformat()} to {leave_request.to_date.isoformat()}"


class LeaveService:
    def __init__(
        self,
        session: Session,
        *,
        balances: BalanceLedger | None = None,
        notifications: NotificationDispatcher | None = None,
        reject_overlap: bool = False,
        count_working_days: bool = False,
        calendar: WorkCalendar | None = None,
    ) -> None:
        self.session = session
        self.balances = balances or BalanceLedger(session)
        self.notifications = notifications or NotificationDispatcher(session)
        self.reject_overlap = reject_overlap
        self.count_working_days = count_working_days
        self.calendar = calendar or WorkCalendar(session)

    def length_for(self, employee_id: int, from_date: date, to_date: date, is_half_day: bool) -> Decimal:
        """Days charged for a span: calendar days, or working days when enabled."""
        if is_half_day or not self.count_working_days:
            return requested_length(from_date, to_date, is_half_day)
        return as_days(self.calendar.working_days(employee_id, from_date, to_date))

    def _has_leave_overlap(self, employee_id: int, from_date: date, to_date: date) -> bool:
        stmt = (
            select(LeaveRequest.id)
            .where(
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.status.in_(OPEN_STATUSES),
                LeaveRequest.from_date <= to_date,
                LeaveRequest.to_date >= from_date,
            )
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none() is not None

    def _pending_request(self, request_id: int) -> LeaveRequest:
        leave_request = self.session.get(LeaveRequest, request_id, populate_existing=True)
        if leave_request is None:
            raise NotFoundError("Leave request not found.")
        if leave_request.status != LeaveRequestStatus.PENDING:
            raise InvalidStateError(f"Leave request is already {leave_request.status.value}.")
        return leave_request

    def _close(self, leave_request: LeaveRequest, status: LeaveRequestStatus, **values) -> None:
        claimed = self.session.execute(
            update(LeaveRequest)
            .where(
                LeaveRequest.id == leave_request.id,
                LeaveRequest.status == LeaveRequestStatus.PENDING,
            )
            .values(status=status, decided_at=datetime.now(timezone.utc), **values)
            .execution_options(synchronize_session=False)
        ).rowcount
        if claimed != 1:
            raise InvalidStateError("Leave request was decided concurrently.")

    def apply(
        self,
        employee: Employee,
        leave_type_id: int,
        from_date: date,
        to_date: date,
        reason: str | None,
        is_half_day: bool = False,
    ) -> LeaveRequest:
        reason_text = (reason or "").strip()
        if to_date < from_date:
            raise ValidationError("End date must not be before start date.")
        if is_half_day and from_date != to_date:
            raise ValidationError("A half-day leave must start and end on the same date.")
        if not reason_text:
            raise ValidationError("A reason is required for a leave request.")

        with atomic(self.session):
            length = self.length_for(employee.id, from_date, to_date, is_half_day)
            if length <= 0:
                raise ValidationError("Requested leave length must be greater than zero.")

            leave_type = self.session.get(LeaveType, leave_type_id)
            if leave_type is None:
                raise ValidationError(f"Unknown leave type: {leave_type_id}.")
            if self.reject_overlap and self._has_leave_overlap(employee.id, from_date, to_date):
                raise ValidationError("The requested dates overlap an existing leave request.")

            self.balances.reserve(employee.id, leave_type.id, length)

            leave_request = LeaveRequest(
                employee_id=employee.id,
                leave_type_id=leave_type.id,
                from_date=from_date,
                to_date=to_date,
                is_half_day=is_half_day,
                days=length,
                reason=reason_text,
                status=LeaveRequestStatus.PENDING,
            )
            self.session.add(leave_request)
            self.session.flush()

            self.notifications.notify(
                Admins(),
                f"{employee.name} requested {format_days(length)} day(s) of {leave_type.name} "
                f"for {_span_label(leave_request)}.",
                kind="leave_requested",
            )
            log_audit(
                self.session,
                employee.id,
                action="LEAVE_REQUESTED",
                entity_type="leaves",
                entity_id=leave_request.id,
                payload={
                    "leave_type_id": leave_type.id,
                    "from_date": from_date.isoformat(),
                    "to_date": to_date.isoformat(),
                    "is_half_day": is_half_day,
                    "days": str(length),
                    "status": leave_request.status.value,
                },
            )

        logger.info("Leave %s requested by employee %s (%s days)", leave_request.id, employee.id, length)
        return leave_request

    def decide(
        self,
        request_id: int,
        decision: LeaveRequestStatus | str,
        admin_comment: str | None = None,
        decider: Employee | None = None,
    ) -> LeaveRequest:
        outcome = _decision(decision)
        comment = (admin_comment or "").strip() or None
        decider_id = decider.id if decider is not None else None

        with atomic(self.session):
            leave_request = self._pending_request(request_id)
            self._close(leave_request, outcome, admin_comment=comment, decided_by_id=decider_id)
            if outcome == LeaveRequestStatus.REJECTED:
                self.balances.release(leave_request.employee_id, leave_request.leave_type_id, leave_request.days)

            message = f"Your leave request for {_span_label(leave_request)} has been {outcome.value}."
            if comment:
                message = f"{message} Comment: {comment}"
            self.notifications.notify(Targeted(leave_request.employee_id), message, kind=f"leave_{outcome.value}")
            log_audit(
                self.session,
                decider_id,
                action=f"LEAVE_{outcome.value.upper()}",
                entity_type="leaves",
                entity_id=leave_request.id,
                payload={
                    "employee_id": leave_request.employee_id,
                    "days": str(leave_request.days),
                    "admin_comment": comment,
                    "status": outcome.value,
                },
            )

        self.session.refresh(leave_request)
        logger.info("Leave %s %s by %s", request_id, outcome.value, decider_id)
        return leave_request

    def cancel(self, request_id: int, requester: Employee | None = None) -> LeaveRequest:
        with atomic(self.session):
            leave_request = self.session.get(LeaveRequest, request_id, populate_existing=True)
            if leave_request is None:
                raise NotFoundError("Leave request not found.")
            if requester is not None and leave_request.employee_id != requester.id:
                raise ForbiddenError("Only the requesting employee can cancel this leave request.")
            if leave_request.status != LeaveRequestStatus.PENDING:
                raise InvalidStateError(f"Leave request is already {leave_request.status.value}.")

            self._close(leave_request, LeaveRequestStatus.CANCELLED)
            self.balances.release(leave_request.employee_id, leave_request.leave_type_id, leave_request.days)
            self.notifications.notify(
                Targeted(leave_request.employee_id),
                f"Your leave request for {_span_label(leave_request)} has been cancelled.",
                kind="leave_cancelled",
            )
            log_audit(
                self.session,
                requester.id if requester is not None else None,
                action="LEAVE_CANCELLED",
                entity_type="leaves",
                entity_id=leave_request.id,
                payload={
                    "employee_id": leave_request.employee_id,
                    "days": str(leave_request.days),
                    "status": LeaveRequestStatus.CANCELLED.value,
                },
            )

        self.session.refresh(leave_request)
        logger.info("Leave %s cancelled", request_id)
        return leave_request

    def list_for_employee(self, employee_id: int) -> list[LeaveRequest]:
        stmt = (
            select(LeaveRequest)
            .where(LeaveRequest.employee_id == employee_id)
            .order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def list(self, status: LeaveRequestStatus | str | None = None) -> list[LeaveRequest]:
        stmt = select(LeaveRequest)
        if status is not None:
            try:
                stmt = stmt.where(LeaveRequest.status == LeaveRequestStatus(status))
            except ValueError as exc:
                raise ValidationError(f"Unknown leave status: {status!r}.") from exc
        stmt = stmt.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
        return list(self.session.execute(stmt).scalars().all())
