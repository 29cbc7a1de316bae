"""
Project Pulse
Backend persistence models.

``db`` is the shared Flask-SQLAlchemy instance; model modules are imported
by the app factory so ``db.create_all()`` sees every table.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
