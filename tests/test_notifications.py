from __future__ import annotations

import pytest
from sqlalchemy import func, select

from hrdesk.errors import ForbiddenError, NotFoundError, ValidationError
from hrdesk.extensions import db
from hrdesk.models import Employee, Notification, NotificationAudience, NotificationReceipt
from hrdesk.notifications import Admins, Everyone, NotificationDispatcher, Targeted


def _headers(employee_id: int) -> dict[str, str]:
    return {"X-Employee-Id": str(employee_id)}


def _employee(employee_id: int) -> Employee:
    return db.session.get(Employee, employee_id)


def _dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher(db.session)


def test_notify_stores_one_row_per_call(app):
    dispatcher = _dispatcher()
    targeted = dispatcher.notify(Targeted(5), "Your payslip is ready.", kind="payslip")
    admins = dispatcher.notify(Admins(), "New leave request.")
    everyone = dispatcher.notify(Everyone(), "Office closed on Friday.")
    db.session.commit()

    assert (targeted.recipient_id, targeted.audience) == (5, NotificationAudience.EMPLOYEE)
    assert (admins.recipient_id, admins.audience) == (None, NotificationAudience.ADMINS)
    assert (everyone.recipient_id, everyone.audience) == (None, NotificationAudience.ALL)
    assert db.session.execute(select(func.count(Notification.id))).scalar_one() == 3


def test_notify_rejects_blank_message(app):
    with pytest.raises(ValidationError):
        _dispatcher().notify(Targeted(5), "   ")


def test_marking_someone_elses_notification_is_forbidden(app):
    dispatcher = _dispatcher()
    notification = dispatcher.notify(Targeted(5), "Correction approved.")
    db.session.commit()

    with pytest.raises(ForbiddenError):
        dispatcher.mark_read(notification.id, _employee(9))
    assert db.session.get(Notification, notification.id).is_read is False

    view = dispatcher.mark_read(notification.id, _employee(5))
    assert view.is_read is True
    assert db.session.get(Notification, notification.id).is_read is True


def test_mark_read_unknown_notification(app):
    with pytest.raises(NotFoundError):
        _dispatcher().mark_read(404, _employee(5))


def test_broadcast_read_state_is_per_employee(app):
    dispatcher = _dispatcher()
    notification = dispatcher.send_global("Holiday on Monday.", actor_id=1)

    dispatcher.mark_read(notification.id, _employee(3))
    dispatcher.mark_read(notification.id, _employee(3))

    assert db.session.execute(select(func.count(NotificationReceipt.id))).scalar_one() == 1
    assert [view.is_read for view in dispatcher.list_for(_employee(3))] == [True]
    assert [view.is_read for view in dispatcher.list_for(_employee(5))] == [False]
    assert dispatcher.list_for(_employee(3), unread_only=True) == []
    assert len(dispatcher.list_for(_employee(5), unread_only=True)) == 1


def test_broadcast_receipt_stored_concurrently_counts_as_read(app, monkeypatch):
    dispatcher = _dispatcher()
    notification = dispatcher.send_global("Payroll closes Friday.", actor_id=1)
    dispatcher.mark_read(notification.id, _employee(7))

    # The receipt check misses a receipt written by a concurrent request.
    monkeypatch.setattr(NotificationDispatcher, "_has_receipt", lambda self, notification_id, employee_id: False)
    view = dispatcher.mark_read(notification.id, _employee(7))

    assert view.is_read is True
    assert view.notification.id == notification.id
    assert db.session.execute(select(func.count(NotificationReceipt.id))).scalar_one() == 1


def test_admin_broadcast_is_visible_only_to_admins(app):
    dispatcher = _dispatcher()
    notification = dispatcher.notify(Admins(), "New leave request awaiting action.")
    db.session.commit()

    assert dispatcher.list_for(_employee(3)) == []
    assert [view.notification.id for view in dispatcher.list_for(_employee(1))] == [notification.id]

    with pytest.raises(ForbiddenError):
        dispatcher.mark_read(notification.id, _employee(3))
    assert dispatcher.mark_read(notification.id, _employee(1)).is_read is True


def test_list_for_merges_targeted_and_global_rows(app):
    dispatcher = _dispatcher()
    dispatcher.notify(Targeted(5), "For five.")
    dispatcher.notify(Targeted(9), "For nine.")
    dispatcher.notify(Everyone(), "For everyone.")
    db.session.commit()

    messages = sorted(view.notification.message for view in dispatcher.list_for(_employee(5)))
    assert messages == ["For everyone.", "For five."]


def test_send_to_unknown_employee(app):
    with pytest.raises(NotFoundError):
        _dispatcher().send_to(404, "Hello")
    assert db.session.execute(select(func.count(Notification.id))).scalar_one() == 0


def test_notification_endpoints(client):
    sent = client.post(
        "/admin/notifications/send",
        json={"employee_id": 5, "message": "Please update your address."},
        headers=_headers(1),
    )
    assert sent.status_code == 201
    notification_id = sent.get_json()["notification"]["id"]

    broadcast = client.post("/admin/notifications/global", json={"message": "Town hall at 4pm."}, headers=_headers(1))
    assert broadcast.status_code == 201

    mine = client.get("/me/notifications", headers=_headers(5)).get_json()["notifications"]
    assert {item["audience"] for item in mine} == {"employee", "all"}

    forbidden = client.post(f"/me/notifications/{notification_id}/read", headers=_headers(9))
    assert forbidden.status_code == 403
    assert forbidden.get_json()["error"] == "forbidden"

    read = client.post(f"/me/notifications/{notification_id}/read", headers=_headers(5))
    assert read.status_code == 200
    assert read.get_json()["notification"]["is_read"] is True

    unread = client.get("/me/notifications?unread=1", headers=_headers(5)).get_json()["notifications"]
    assert [item["audience"] for item in unread] == ["all"]


def test_blank_broadcast_is_rejected(client):
    response = client.post("/admin/notifications/global", json={"message": "  "}, headers=_headers(1))
    assert response.status_code == 400
