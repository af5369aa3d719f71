"""
Models Package - Export all SQLAlchemy models
"""
from pgconsole.models.connection import ConnectionTarget, ConnectionOrigin
from pgconsole.models.app import App

__all__ = [
    "ConnectionTarget",
    "ConnectionOrigin",
    "App",
]
