"""
Workflow Delegation Service — data models.

The shared Flask-SQLAlchemy handle lives here so models, services and
tests import it from one place:

    from delegation.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
