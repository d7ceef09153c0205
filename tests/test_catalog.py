from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from hrdesk.catalog import CatalogService
from hrdesk.errors import ConflictError, NotFoundError, ValidationError
from hrdesk.extensions import db
from hrdesk.models import AuditLog, LeaveType


def _headers(employee_id: int) -> dict[str, str]:
    return {"X-Employee-Id": str(employee_id)}


def test_add_and_list_holidays_by_year(app):
    catalog = CatalogService(db.session)
    catalog.add_holiday(date(2024, 12, 25), "Christmas", actor_id=1)
    catalog.add_holiday(date(2024, 1, 26), "Republic Day", actor_id=1)
    catalog.add_holiday(date(2025, 1, 26), "Republic Day", actor_id=1)

    names = [(holiday.holiday_date, holiday.name) for holiday in catalog.list_holidays(2024)]
    assert names == [(date(2024, 1, 26), "Republic Day"), (date(2024, 12, 25), "Christmas")]
    assert len(catalog.list_holidays()) == 3


def test_duplicate_holiday_date_conflicts(app):
    catalog = CatalogService(db.session)
    catalog.add_holiday(date(2024, 8, 15), "Independence Day")

    with pytest.raises(ConflictError):
        catalog.add_holiday(date(2024, 8, 15), "Another name")
    with pytest.raises(ValidationError):
        catalog.add_holiday(date(2024, 8, 16), "  ")


def test_delete_holiday(app):
    catalog = CatalogService(db.session)
    holiday = catalog.add_holiday(date(2024, 10, 2), "Gandhi Jayanti")
    holiday_id = holiday.id

    catalog.delete_holiday(holiday_id, actor_id=1)
    assert catalog.list_holidays() == []
    with pytest.raises(NotFoundError):
        catalog.delete_holiday(holiday_id)

    actions = db.session.execute(
        select(AuditLog.action).where(AuditLog.entity_type == "holidays").order_by(AuditLog.id)
    ).scalars().all()
    assert actions == ["HOLIDAY_CREATED", "HOLIDAY_DELETED"]


def test_add_leave_type(app):
    catalog = CatalogService(db.session)
    leave_type = catalog.add_leave_type("Earned Leave", "Accrued monthly", True, Decimal("18"))

    assert leave_type.default_days_per_year == Decimal("18.00")
    assert [item.name for item in catalog.list_leave_types()] == ["Casual Leave", "Earned Leave", "Sick Leave"]

    with pytest.raises(ConflictError):
        catalog.add_leave_type("Earned Leave")
    with pytest.raises(ValidationError):
        catalog.add_leave_type("")


def test_catalog_endpoints(client):
    created = client.post(
        "/admin/holidays",
        json={"holiday_date": "2024-12-25", "name": "Christmas"},
        headers=_headers(1),
    )
    assert created.status_code == 201
    holiday_id = created.get_json()["holiday"]["id"]

    duplicate = client.post(
        "/admin/holidays",
        json={"holiday_date": "2024-12-25", "name": "Christmas again"},
        headers=_headers(1),
    )
    assert duplicate.status_code == 409

    public = client.get("/holidays?year=2024", headers=_headers(3)).get_json()["holidays"]
    assert public == [{"id": holiday_id, "date": "2024-12-25", "name": "Christmas"}]

    deleted = client.delete(f"/admin/holidays/{holiday_id}", headers=_headers(1))
    assert deleted.status_code == 200
    assert client.get("/admin/holidays", headers=_headers(1)).get_json()["holidays"] == []

    leave_type = client.post(
        "/admin/leave-types",
        json={"name": "Maternity Leave", "is_paid": True, "default_days_per_year": 182},
        headers=_headers(1),
    )
    assert leave_type.status_code == 201
    body = leave_type.get_json()["leave_type"]
    assert body["is_paid"] is True
    assert body["default_days_per_year"] == "182.00"

    types = client.get("/leave-types", headers=_headers(3)).get_json()["leave_types"]
    assert "Maternity Leave" in [item["name"] for item in types]


def test_delete_leave_type(app):
    catalog = CatalogService(db.session)
    unused = catalog.add_leave_type("Study Leave")
    unused_id = unused.id

    catalog.delete_leave_type(unused_id, actor_id=1)
    assert db.session.get(LeaveType, unused_id) is None
    with pytest.raises(NotFoundError):
        catalog.delete_leave_type(unused_id)

    # Casual leave has balances allocated against it.
    with pytest.raises(ConflictError):
        catalog.delete_leave_type(1)
    assert db.session.get(LeaveType, 1) is not None


def test_weekly_off_is_saved_per_effective_date(app):
    catalog = CatalogService(db.session)
    first = catalog.set_weekly_off(3, [6, 0, 0], date(2024, 1, 1), actor_id=1)
    assert first.weekly_off_days == [0, 6]

    updated = catalog.set_weekly_off(3, [5], date(2024, 1, 1), end_date=date(2024, 6, 30))
    assert updated.id == first.id
    assert updated.weekly_off_days == [5]
    assert updated.end_date == date(2024, 6, 30)

    catalog.set_weekly_off(3, [0], date(2024, 7, 1))
    catalog.set_weekly_off(5, [1], date(2024, 1, 1))
    assert [item.effective_date for item in catalog.list_weekly_offs(3)] == [date(2024, 7, 1), date(2024, 1, 1)]
    assert len(catalog.list_weekly_offs()) == 3


@pytest.mark.parametrize(
    "days, effective_date, end_date",
    [
        ([], date(2024, 1, 1), None),
        ([7], date(2024, 1, 1), None),
        ([-1, 0], date(2024, 1, 1), None),
        ([0], date(2024, 2, 1), date(2024, 1, 1)),
    ],
)
def test_weekly_off_validation(app, days, effective_date, end_date):
    with pytest.raises(ValidationError):
        CatalogService(db.session).set_weekly_off(3, days, effective_date, end_date)


def test_weekly_off_unknown_employee_and_delete(app):
    catalog = CatalogService(db.session)
    with pytest.raises(NotFoundError):
        catalog.set_weekly_off(404, [0], date(2024, 1, 1))

    weekly_off = catalog.set_weekly_off(7, [0], date(2024, 1, 1))
    weekly_off_id = weekly_off.id
    catalog.delete_weekly_off(weekly_off_id, actor_id=1)
    assert catalog.list_weekly_offs(7) == []
    with pytest.raises(NotFoundError):
        catalog.delete_weekly_off(weekly_off_id)


def test_weekly_off_and_leave_type_endpoints(client):
    saved = client.post(
        "/admin/weekly-offs",
        json={"employee_id": 3, "weekly_off_days": [0, 6], "effective_date": "2024-01-01"},
        headers=_headers(1),
    )
    assert saved.status_code == 201
    body = saved.get_json()["weekly_off"]
    assert body["weekly_off_days"] == [0, 6]
    assert body["end_date"] is None

    invalid = client.post(
        "/admin/weekly-offs",
        json={"employee_id": 3, "weekly_off_days": [9], "effective_date": "2024-01-01"},
        headers=_headers(1),
    )
    assert invalid.status_code == 400
    assert "weekly_off_days" in invalid.get_json()["details"]["fields"]

    listing = client.get("/admin/weekly-offs?employee_id=3", headers=_headers(1)).get_json()["weekly_offs"]
    assert [item["id"] for item in listing] == [body["id"]]

    assert client.delete(f"/admin/weekly-offs/{body['id']}", headers=_headers(1)).status_code == 200
    assert client.delete(f"/admin/weekly-offs/{body['id']}", headers=_headers(1)).status_code == 404
    assert client.get("/admin/weekly-offs", headers=_headers(3)).status_code == 403

    in_use = client.delete("/admin/leave-types/1", headers=_headers(1))
    assert in_use.status_code == 409
    unused = client.delete("/admin/leave-types/2", headers=_headers(1))
    assert unused.status_code == 200
    names = [item["name"] for item in client.get("/leave-types", headers=_headers(3)).get_json()["leave_types"]]
    assert names == ["Casual Leave"]
