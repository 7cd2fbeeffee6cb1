"""
Flask-Migrate / Alembic entry point.

Usage:
    flask db upgrade
    flask resolve-substitutes --tenant acme
"""

from delegation import create_app

app = create_app()
