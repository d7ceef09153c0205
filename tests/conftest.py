from __future__ import annotations

from decimal import Decimal
from typing import Iterator

import pytest
from sqlalchemy.pool import StaticPool

from hrdesk import create_app
from hrdesk.config import Config
from hrdesk.extensions import db
from hrdesk.models import Employee, LeaveBalance, LeaveType, Role, ShiftType


ADMIN_ID = 1
EMPLOYEE_IDS = (3, 5, 7, 9)
CASUAL_LEAVE_ID = 1
SICK_LEAVE_ID = 2


class TestConfig(Config):
    TESTING = True
    WTF_CSRF_ENABLED = False
    SQLALCHEMY_DATABASE_URI = "sqlite+pysqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    }
    APP_TIMEZONE = "UTC"
    LEAVE_REJECT_OVERLAP = False
    LEAVE_COUNT_WORKING_DAYS = False


@pytest.fixture()
def app() -> Iterator:
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()

        admin = Employee(
            id=ADMIN_ID,
            employee_code="ADM001",
            name="Asha Admin",
            email="admin@example.com",
            role=Role.ADMIN,
            shift_type=ShiftType.DAY,
            is_active=True,
        )
        employees = [
            Employee(
                id=employee_id,
                employee_code=f"EMP{employee_id:03d}",
                name=f"Employee {employee_id}",
                email=f"employee{employee_id}@example.com",
                role=Role.EMPLOYEE,
                shift_type=ShiftType.DAY,
                is_active=True,
            )
            for employee_id in EMPLOYEE_IDS
        ]
        casual = LeaveType(id=CASUAL_LEAVE_ID, name="Casual Leave", description="Personal errands", is_paid=True)
        sick = LeaveType(id=SICK_LEAVE_ID, name="Sick Leave", description="Illness", is_paid=True)

        db.session.add_all([admin, *employees, casual, sick])
        db.session.flush()
        db.session.add_all(
            [
                LeaveBalance(
                    employee_id=employee_id,
                    leave_type_id=CASUAL_LEAVE_ID,
                    total_days_allocated=Decimal("12.00"),
                    current_balance=Decimal("12.00"),
                )
                for employee_id in EMPLOYEE_IDS
            ]
        )
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()
