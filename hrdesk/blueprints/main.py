"""General routes."""

from __future__ import annotations

from flask import Blueprint, request
from flask_login import login_required

from hrdesk.web import catalog_service, holiday_to_dict, leave_type_to_dict


bp = Blueprint("main", __name__)


@bp.get("/health")
def health():
    return {"status": "ok"}, 200


@bp.get("/leave-types")
@login_required
def leave_types():
    return {"leave_types": [leave_type_to_dict(item) for item in catalog_service().list_leave_types()]}


@bp.get("/holidays")
@login_required
def holidays():
    year = request.args.get("year", type=int)
    return {"holidays": [holiday_to_dict(item) for item in catalog_service().list_holidays(year)]}
