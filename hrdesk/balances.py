"""Leave balance ledger.

One row per (employee, leave type) holding the allocation and what is left
of it. Reservations are conditional single-statement updates so that two
concurrent applications can never both draw on the same remaining days.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
import logging

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from hrdesk.audit import log_audit
from hrdesk.errors import ConflictError, InsufficientBalanceError, NotFoundError, ValidationError
from hrdesk.models import Employee, LeaveBalance, LeaveRequest, LeaveRequestStatus, LeaveType, now_utc
from hrdesk.store import atomic


logger = logging.getLogger(__name__)

DAYS_QUANTUM = Decimal("0.01")
ZERO_DAYS = Decimal("0.00")


def as_days(value: object) -> Decimal:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid day amount: {value!r}.") from exc
    if not amount.is_finite():
        raise ValidationError(f"Invalid day amount: {value!r}.")
    return amount.quantize(DAYS_QUANTUM)


def format_days(value: Decimal) -> str:
    value_as_float = float(value)
    if abs(value_as_float - round(value_as_float)) < 0.000001:
        return str(int(round(value_as_float)))
    return f"{value_as_float:.2f}".rstrip("0").rstrip(".")


@dataclass(frozen=True)
class BalanceSnapshot:
    employee_id: int
    leave_type_id: int
    allocated: Decimal
    balance: Decimal

    @property
    def used(self) -> Decimal:
        return self.allocated - self.balance

    def to_dict(self) -> dict[str, object]:
        return {
            "employee_id": self.employee_id,
            "leave_type_id": self.leave_type_id,
            "total_days_allocated": str(self.allocated),
            "current_balance": str(self.balance),
        }


class BalanceLedger:
    def __init__(self, session: Session) -> None:
        self.session = session

    def read(self, employee_id: int, leave_type_id: int) -> BalanceSnapshot:
        row = self.session.execute(
            select(LeaveBalance.total_days_allocated, LeaveBalance.current_balance).where(
                LeaveBalance.employee_id == employee_id,
                LeaveBalance.leave_type_id == leave_type_id,
            )
        ).one_or_none()
        if row is None:
            return BalanceSnapshot(employee_id, leave_type_id, ZERO_DAYS, ZERO_DAYS)
        return BalanceSnapshot(employee_id, leave_type_id, as_days(row[0]), as_days(row[1]))

    def reserve(self, employee_id: int, leave_type_id: int, amount: Decimal) -> None:
        amount = as_days(amount)
        if amount <= 0:
            raise ValidationError("Reserved amount must be greater than zero.")

        stmt = (
            update(LeaveBalance)
            .where(
                LeaveBalance.employee_id == employee_id,
                LeaveBalance.leave_type_id == leave_type_id,
                LeaveBalance.current_balance >= amount,
            )
            .values(current_balance=LeaveBalance.current_balance - amount, updated_at=now_utc())
            .execution_options(synchronize_session=False)
        )
        if self.session.execute(stmt).rowcount != 1:
            available = self.read(employee_id, leave_type_id).balance
            raise InsufficientBalanceError(
                f"Requested {format_days(amount)} days but only {format_days(available)} are available.",
                details={"requested": str(amount), "available": str(available)},
            )
        logger.debug("Reserved %s days for employee %s type %s", amount, employee_id, leave_type_id)

    def release(self, employee_id: int, leave_type_id: int, amount: Decimal) -> None:
        amount = as_days(amount)
        if amount <= 0:
            raise ValidationError("Released amount must be greater than zero.")

        restored = LeaveBalance.current_balance + amount
        stmt = (
            update(LeaveBalance)
            .where(
                LeaveBalance.employee_id == employee_id,
                LeaveBalance.leave_type_id == leave_type_id,
            )
            .values(
                current_balance=case(
                    (restored > LeaveBalance.total_days_allocated, LeaveBalance.total_days_allocated),
                    else_=restored,
                ),
                updated_at=now_utc(),
            )
            .execution_options(synchronize_session=False)
        )
        if self.session.execute(stmt).rowcount != 1:
            raise NotFoundError("Leave balance not found for this employee and leave type.")
        logger.debug("Released %s days for employee %s type %s", amount, employee_id, leave_type_id)

    def allocate(
        self,
        employee_id: int,
        leave_type_id: int,
        total_days: object,
        *,
        actor_id: int | None = None,
    ) -> BalanceSnapshot:
        total = as_days(total_days)
        if total < 0:
            raise ValidationError("Allocated days cannot be negative.")

        with atomic(self.session):
            if self.session.get(Employee, employee_id) is None:
                raise NotFoundError("Employee not found.")
            if self.session.get(LeaveType, leave_type_id) is None:
                raise NotFoundError("Leave type not found.")

            balance = self.session.execute(
                select(LeaveBalance)
                .where(
                    LeaveBalance.employee_id == employee_id,
                    LeaveBalance.leave_type_id == leave_type_id,
                )
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()

            if balance is None:
                previous = None
                balance = LeaveBalance(
                    employee_id=employee_id,
                    leave_type_id=leave_type_id,
                    total_days_allocated=total,
                    current_balance=total,
                )
                self.session.add(balance)
            else:
                previous = {
                    "total_days_allocated": str(balance.total_days_allocated),
                    "current_balance": str(balance.current_balance),
                }
                used = as_days(balance.total_days_allocated) - as_days(balance.current_balance)
                balance.total_days_allocated = total
                balance.current_balance = max(ZERO_DAYS, total - used)

            self.session.flush()
            log_audit(
                self.session,
                actor_id,
                action="LEAVE_BALANCE_ALLOCATED",
                entity_type="leave_balances",
                entity_id=balance.id,
                payload={
                    "employee_id": employee_id,
                    "leave_type_id": leave_type_id,
                    "previous": previous,
                    "total_days_allocated": str(balance.total_days_allocated),
                    "current_balance": str(balance.current_balance),
                },
            )

        logger.info("Allocated %s days of type %s to employee %s", total, leave_type_id, employee_id)
        return self.read(employee_id, leave_type_id)

    def list_for_employee(self, employee_id: int) -> list[BalanceSnapshot]:
        rows = self.session.execute(
            select(LeaveBalance.leave_type_id, LeaveBalance.total_days_allocated, LeaveBalance.current_balance)
            .where(LeaveBalance.employee_id == employee_id)
            .order_by(LeaveBalance.leave_type_id.asc())
        ).all()
        return [
            BalanceSnapshot(employee_id, leave_type_id, as_days(allocated), as_days(current))
            for leave_type_id, allocated, current in rows
        ]

    def list_all(self, employee_id: int | None = None) -> list[BalanceSnapshot]:
        stmt = select(
            LeaveBalance.employee_id,
            LeaveBalance.leave_type_id,
            LeaveBalance.total_days_allocated,
            LeaveBalance.current_balance,
        )
        if employee_id is not None:
            stmt = stmt.where(LeaveBalance.employee_id == employee_id)
        rows = self.session.execute(
            stmt.order_by(LeaveBalance.employee_id.asc(), LeaveBalance.leave_type_id.asc())
        ).all()
        return [
            BalanceSnapshot(row_employee_id, leave_type_id, as_days(allocated), as_days(current))
            for row_employee_id, leave_type_id, allocated, current in rows
        ]

    def delete(self, employee_id: int, leave_type_id: int, *, actor_id: int | None = None) -> None:
        with atomic(self.session):
            balance = self.session.execute(
                select(LeaveBalance).where(
                    LeaveBalance.employee_id == employee_id,
                    LeaveBalance.leave_type_id == leave_type_id,
                )
            ).scalar_one_or_none()
            if balance is None:
                raise NotFoundError("Leave balance not found for this employee and leave type.")

            # Pending requests still hold a reservation against this row.
            pending = self.session.execute(
                select(LeaveRequest.id)
                .where(
                    LeaveRequest.employee_id == employee_id,
                    LeaveRequest.leave_type_id == leave_type_id,
                    LeaveRequest.status == LeaveRequestStatus.PENDING,
                )
                .limit(1)
            ).scalar_one_or_none()
            if pending is not None:
                raise ConflictError("Leave balance has pending leave requests.")

            payload = {
                "employee_id": employee_id,
                "leave_type_id": leave_type_id,
                "total_days_allocated": str(balance.total_days_allocated),
                "current_balance": str(balance.current_balance),
            }
            balance_id = balance.id
            self.session.delete(balance)
            log_audit(
                self.session,
                actor_id,
                action="LEAVE_BALANCE_DELETED",
                entity_type="leave_balances",
                entity_id=balance_id,
                payload=payload,
            )

        logger.info("Deleted leave balance of type %s for employee %s", leave_type_id, employee_id)
