"""Audit logging helper."""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from hrdesk.models import AuditLog


def log_audit(
    session: Session,
    actor_id: int | None,
    action: str,
    entity_type: str,
    entity_id: int | None,
    payload: dict[str, Any] | None = None,
) -> None:
    session.add(
        AuditLog(
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            payload_json=payload or {},
        )
    )
