"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi db upgrade
    flask --app wsgi seed-catalog
    gunicorn wsgi:app
"""

from metrica import create_app

app = create_app()
