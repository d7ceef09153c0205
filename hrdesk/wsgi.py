"""WSGI entry point for gunicorn."""

from hrdesk import create_app


app = create_app()
