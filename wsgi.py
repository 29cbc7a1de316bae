"""
WSGI and Flask-Migrate / Alembic entry point.

Usage:
    flask --app wsgi run --port 3001
    flask --app wsgi seed-demo
    flask --app wsgi db migrate -m "description"
    flask --app wsgi db upgrade
"""

from pulse import create_app

app = create_app()
