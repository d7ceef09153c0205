"""Authorization capabilities and semantic permission decorators."""

from __future__ import annotations

import functools
from typing import Callable

from flask import abort
from flask_login import current_user

from hrdesk.models import Employee, Role

ADMIN_ROLES = {Role.ADMIN}


def can_review_corrections(role: Role) -> bool:
    return role in ADMIN_ROLES


def can_decide_leaves(role: Role) -> bool:
    return role in ADMIN_ROLES


def can_manage_catalog(role: Role) -> bool:
    return role in ADMIN_ROLES


def can_allocate_balances(role: Role) -> bool:
    return role in ADMIN_ROLES


def can_broadcast(role: Role) -> bool:
    return role in ADMIN_ROLES


def can_read_admin_notifications(role: Role) -> bool:
    return role in ADMIN_ROLES


def can_view_team_attendance(role: Role) -> bool:
    return role in ADMIN_ROLES


def can_access_self_service(role: Role) -> bool:
    return role == Role.EMPLOYEE


def _employee_role_predicate(check: Callable[[Role], bool]) -> Callable[[Employee], bool]:
    def predicate(employee: Employee) -> bool:
        return check(employee.role)

    return predicate


def permission_required(permission_name: str, check: Callable[[Employee], bool]):
    def decorator(view: Callable):
        @functools.wraps(view)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated or not check(current_user):
                abort(403, description=f"Insufficient permissions: {permission_name}.")
            return view(*args, **kwargs)

        return wrapped

    return decorator


review_corrections_required = permission_required(
    "review_corrections", _employee_role_predicate(can_review_corrections)
)
decide_leaves_required = permission_required("decide_leaves", _employee_role_predicate(can_decide_leaves))
manage_catalog_required = permission_required("manage_catalog", _employee_role_predicate(can_manage_catalog))
allocate_balances_required = permission_required(
    "allocate_balances", _employee_role_predicate(can_allocate_balances)
)
broadcast_required = permission_required("broadcast", _employee_role_predicate(can_broadcast))
self_service_required = permission_required("self_service", _employee_role_predicate(can_access_self_service))
view_team_attendance_required = permission_required(
    "view_team_attendance", _employee_role_predicate(can_view_team_attendance)
)
