"""Flask application factory."""

from __future__ import annotations

from flask import Flask, g, jsonify
from werkzeug.exceptions import HTTPException

from hrdesk.blueprints.admin import bp as admin_bp
from hrdesk.blueprints.employee import bp as employee_bp
from hrdesk.blueprints.main import bp as main_bp
from hrdesk.config import Config
from hrdesk.errors import HRDeskError
from hrdesk.extensions import db, login_manager


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(HRDeskError)
    def handle_domain_error(exc: HRDeskError):
        app.logger.info("Request rejected (%s): %s", exc.code, exc.message)
        return jsonify(exc.to_dict()), exc.http_status

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        code = (exc.name or "error").lower().replace(" ", "_")
        return jsonify({"error": code, "message": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        app.logger.exception("Unhandled error while serving request")
        db.session.rollback()
        return jsonify({"error": "internal_error", "message": "Unexpected server error."}), 500


def create_app(config_object: type[Config] = Config) -> Flask:
    app = Flask(__name__, instance_relative_config=False)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    login_manager.init_app(app)

    # Ensure model metadata is loaded for migrations and tests.
    from hrdesk import models as _models  # noqa: F401

    app.register_blueprint(main_bp)
    app.register_blueprint(employee_bp)
    app.register_blueprint(admin_bp)
    _register_error_handlers(app)

    @app.before_request
    def reset_request_identity() -> None:
        # Identity is resolved from the gateway header on every request.
        g.pop("_login_user", None)

    return app
