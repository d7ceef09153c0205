"""Flask extension instances and the request identity loader."""

from __future__ import annotations

from flask import current_app, jsonify
from flask_login import LoginManager
from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()
login_manager = LoginManager()


@login_manager.unauthorized_handler
def handle_unauthorized():
    return jsonify({"error": "unauthorized", "message": "Authentication required."}), 401


@login_manager.request_loader
def load_user_from_request(request):
    from hrdesk.models import Employee

    raw_value = request.headers.get(current_app.config["IDENTITY_HEADER"], "").strip()
    if not raw_value:
        return None
    try:
        employee_id = int(raw_value)
    except ValueError:
        return None

    employee = db.session.get(Employee, employee_id)
    if employee is None or not employee.is_active:
        return None
    return employee
