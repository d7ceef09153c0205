"""Notification dispatcher.

Targeted notifications are stored with their recipient. Broadcasts to the
administrators or to everyone are stored once with no recipient and matched
against the reader at query time; per-reader read state for those rows is
kept in ``notification_receipts``.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Union

from sqlalchemy import and_, false, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hrdesk.audit import log_audit
from hrdesk.authorization import can_read_admin_notifications
from hrdesk.errors import ForbiddenError, NotFoundError, ValidationError
from hrdesk.models import Employee, Notification, NotificationAudience, NotificationReceipt
from hrdesk.store import atomic


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Targeted:
    employee_id: int


@dataclass(frozen=True)
class Admins:
    pass


@dataclass(frozen=True)
class Everyone:
    pass


Recipient = Union[Targeted, Admins, Everyone]


@dataclass(frozen=True)
class NotificationView:
    notification: Notification
    is_read: bool

    def to_dict(self) -> dict[str, object]:
        return {**notification_to_dict(self.notification), "is_read": self.is_read}


def notification_to_dict(notification: Notification) -> dict[str, object]:
    return {
        "id": notification.id,
        "recipient_id": notification.recipient_id,
        "audience": notification.audience.value,
        "kind": notification.kind,
        "message": notification.message,
        "created_at": notification.created_at.isoformat(),
    }


def _clean_message(message: str | None) -> str:
    text = (message or "").strip()
    if not text:
        raise ValidationError("Notification message is required.")
    return text


def _visible_to(employee: Employee):
    conditions = [
        Notification.recipient_id == employee.id,
        Notification.audience == NotificationAudience.ALL,
    ]
    if can_read_admin_notifications(employee.role):
        conditions.append(Notification.audience == NotificationAudience.ADMINS)
    return or_(*conditions)


class NotificationDispatcher:
    def __init__(self, session: Session) -> None:
        self.session = session

    def notify(self, recipient: Recipient, message: str, kind: str = "info") -> Notification:
        text = _clean_message(message)
        if isinstance(recipient, Targeted):
            notification = Notification(
                recipient_id=recipient.employee_id,
                audience=NotificationAudience.EMPLOYEE,
                kind=kind,
                message=text,
                is_read=False,
            )
        elif isinstance(recipient, Admins):
            notification = Notification(
                recipient_id=None,
                audience=NotificationAudience.ADMINS,
                kind=kind,
                message=text,
                is_read=False,
            )
        elif isinstance(recipient, Everyone):
            notification = Notification(
                recipient_id=None,
                audience=NotificationAudience.ALL,
                kind=kind,
                message=text,
                is_read=False,
            )
        else:
            raise TypeError(f"Unsupported notification recipient: {recipient!r}")

        self.session.add(notification)
        self.session.flush()
        logger.debug("Queued %s notification %s (%s)", notification.audience.value, notification.id, kind)
        return notification

    def send_global(self, message: str, *, actor_id: int | None = None) -> Notification:
        with atomic(self.session):
            notification = self.notify(Everyone(), message, kind="announcement")
            log_audit(
                self.session,
                actor_id,
                action="NOTIFICATION_BROADCAST",
                entity_type="notifications",
                entity_id=notification.id,
                payload={"audience": NotificationAudience.ALL.value},
            )
        return notification

    def send_to(self, employee_id: int, message: str, *, actor_id: int | None = None) -> Notification:
        _clean_message(message)
        with atomic(self.session):
            if self.session.get(Employee, employee_id) is None:
                raise NotFoundError("Employee not found.")
            notification = self.notify(Targeted(employee_id), message, kind="message")
            log_audit(
                self.session,
                actor_id,
                action="NOTIFICATION_SENT",
                entity_type="notifications",
                entity_id=notification.id,
                payload={"recipient_id": employee_id},
            )
        return notification

    def list_for(self, employee: Employee, *, unread_only: bool = False) -> list[NotificationView]:
        stmt = (
            select(Notification, NotificationReceipt.id)
            .outerjoin(
                NotificationReceipt,
                and_(
                    NotificationReceipt.notification_id == Notification.id,
                    NotificationReceipt.employee_id == employee.id,
                ),
            )
            .where(_visible_to(employee))
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        if unread_only:
            stmt = stmt.where(
                or_(
                    and_(Notification.recipient_id.is_not(None), Notification.is_read == false()),
                    and_(Notification.recipient_id.is_(None), NotificationReceipt.id.is_(None)),
                )
            )

        views = []
        for notification, receipt_id in self.session.execute(stmt).all():
            if notification.recipient_id is not None:
                is_read = notification.is_read
            else:
                is_read = receipt_id is not None
            views.append(NotificationView(notification, is_read))
        return views

    def _has_receipt(self, notification_id: int, employee_id: int) -> bool:
        return (
            self.session.execute(
                select(NotificationReceipt.id).where(
                    NotificationReceipt.notification_id == notification_id,
                    NotificationReceipt.employee_id == employee_id,
                )
            ).first()
            is not None
        )

    def mark_read(self, notification_id: int, requester: Employee) -> NotificationView:
        try:
            with atomic(self.session):
                notification = self.session.get(Notification, notification_id)
                if notification is None:
                    raise NotFoundError("Notification not found.")

                if notification.audience == NotificationAudience.EMPLOYEE:
                    if notification.recipient_id != requester.id:
                        raise ForbiddenError("You are not allowed to mark this notification as read.")
                    notification.is_read = True
                else:
                    if notification.audience == NotificationAudience.ADMINS and not can_read_admin_notifications(
                        requester.role
                    ):
                        raise ForbiddenError("You are not allowed to mark this notification as read.")
                    if not self._has_receipt(notification.id, requester.id):
                        self.session.add(
                            NotificationReceipt(notification_id=notification.id, employee_id=requester.id)
                        )
                self.session.flush()
        except IntegrityError:
            # Another request stored this reader's receipt first.
            logger.info("Notification %s already read by %s", notification_id, requester.id)
            notification = self.session.get(Notification, notification_id)

        return NotificationView(notification, True)
