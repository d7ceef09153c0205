"""Attendance correction requests.

A correction is submitted as ``pending`` and reviewed exactly once. On
approval the requested times are written into the attendance ledger; the
status flip, the attendance write and the notification share one
transaction.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
import logging
from typing import Callable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from hrdesk.attendance import AttendanceLedger
from hrdesk.audit import log_audit
from hrdesk.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from hrdesk.models import CorrectionRequest, CorrectionStatus, Employee
from hrdesk.notifications import NotificationDispatcher, Targeted
from hrdesk.store import atomic


logger = logging.getLogger(__name__)

REVIEW_DECISIONS = {CorrectionStatus.APPROVED, CorrectionStatus.REJECTED}


def _decision(value: CorrectionStatus | str) -> CorrectionStatus:
    try:
        decision = CorrectionStatus(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid review decision: {value!r}.") from exc
    if decision not in REVIEW_DECISIONS:
        raise ValidationError(f"Invalid review decision: {value!r}.")
    return decision


def _clock_label(value: time | None) -> str:
    return value.strftime("%H:%M") if value is not None else "-"


class CorrectionService:
    def __init__(
        self,
        session: Session,
        *,
        attendance: AttendanceLedger | None = None,
        notifications: NotificationDispatcher | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.session = session
        self.attendance = attendance or AttendanceLedger(session)
        self.notifications = notifications or NotificationDispatcher(session)
        self.today = today

    def submit(
        self,
        employee: Employee,
        work_date: date,
        requested_check_in: time | None,
        requested_check_out: time | None,
        reason: str | None,
    ) -> CorrectionRequest:
        reason_text = (reason or "").strip()
        if not reason_text:
            raise ValidationError("A reason is required for an attendance correction.")
        if requested_check_in is None:
            raise ValidationError("A requested check-in time is required.")
        if work_date > self.today():
            raise ValidationError("Corrections cannot be requested for future dates.")
        if requested_check_out is not None and requested_check_out == requested_check_in:
            raise ValidationError("Check-out time must differ from check-in time.")

        with atomic(self.session):
            existing_pending = self.session.execute(
                select(CorrectionRequest.id).where(
                    CorrectionRequest.employee_id == employee.id,
                    CorrectionRequest.work_date == work_date,
                    CorrectionRequest.status == CorrectionStatus.PENDING,
                )
            ).first()
            if existing_pending is not None:
                raise ConflictError(
                    f"A pending correction for {work_date.isoformat()} already exists."
                )

            correction = CorrectionRequest(
                employee_id=employee.id,
                work_date=work_date,
                requested_check_in=requested_check_in,
                requested_check_out=requested_check_out,
                reason=reason_text,
                status=CorrectionStatus.PENDING,
            )
            self.session.add(correction)
            self.session.flush()
            log_audit(
                self.session,
                employee.id,
                action="CORRECTION_REQUESTED",
                entity_type="corrections",
                entity_id=correction.id,
                payload={
                    "work_date": work_date.isoformat(),
                    "requested_check_in": _clock_label(requested_check_in),
                    "requested_check_out": _clock_label(requested_check_out),
                    "status": correction.status.value,
                },
            )

        logger.info("Correction %s submitted by employee %s for %s", correction.id, employee.id, work_date)
        return correction

    def review(
        self,
        request_id: int,
        decision: CorrectionStatus | str,
        admin_comment: str | None = None,
        reviewer: Employee | None = None,
    ) -> CorrectionRequest:
        outcome = _decision(decision)
        comment = (admin_comment or "").strip() or None
        reviewer_id = reviewer.id if reviewer is not None else None

        with atomic(self.session):
            correction = self.session.get(CorrectionRequest, request_id, populate_existing=True)
            if correction is None:
                raise NotFoundError("Correction request not found.")
            if correction.status != CorrectionStatus.PENDING:
                raise InvalidStateError(f"Correction request is already {correction.status.value}.")

            # Only one reviewer can move the row out of pending.
            claimed = self.session.execute(
                update(CorrectionRequest)
                .where(
                    CorrectionRequest.id == request_id,
                    CorrectionRequest.status == CorrectionStatus.PENDING,
                )
                .values(
                    status=outcome,
                    admin_comment=comment,
                    reviewed_by_id=reviewer_id,
                    reviewed_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            ).rowcount
            if claimed != 1:
                raise InvalidStateError("Correction request was reviewed concurrently.")

            if outcome == CorrectionStatus.APPROVED:
                self.attendance.apply_correction(
                    correction.employee_id,
                    correction.work_date,
                    correction.requested_check_in,
                    correction.requested_check_out,
                    correction_id=correction.id,
                )

            message = (
                f"Your attendance correction request for {correction.work_date.isoformat()} "
                f"has been {outcome.value}."
            )
            if comment:
                message = f"{message} Comment: {comment}"
            self.notifications.notify(Targeted(correction.employee_id), message, kind=f"correction_{outcome.value}")

            log_audit(
                self.session,
                reviewer_id,
                action=f"CORRECTION_{outcome.value.upper()}",
                entity_type="corrections",
                entity_id=correction.id,
                payload={
                    "employee_id": correction.employee_id,
                    "work_date": correction.work_date.isoformat(),
                    "admin_comment": comment,
                    "status": outcome.value,
                },
            )

        self.session.refresh(correction)
        logger.info("Correction %s %s by %s", request_id, outcome.value, reviewer_id)
        return correction

    def list_for_employee(self, employee_id: int) -> list[CorrectionRequest]:
        stmt = (
            select(CorrectionRequest)
            .where(CorrectionRequest.employee_id == employee_id)
            .order_by(CorrectionRequest.created_at.desc(), CorrectionRequest.id.desc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def list(
        self,
        status: CorrectionStatus | str | None = None,
        employee_id: int | None = None,
    ) -> list[CorrectionRequest]:
        stmt = select(CorrectionRequest)
        if status is not None:
            try:
                stmt = stmt.where(CorrectionRequest.status == CorrectionStatus(status))
            except ValueError as exc:
                raise ValidationError(f"Unknown correction status: {status!r}.") from exc
        if employee_id is not None:
            stmt = stmt.where(CorrectionRequest.employee_id == employee_id)
        stmt = stmt.order_by(CorrectionRequest.created_at.desc(), CorrectionRequest.id.desc())
        return list(self.session.execute(stmt).scalars().all())
