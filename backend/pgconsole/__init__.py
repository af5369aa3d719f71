"""
PG App Console - dynamic schema-driven data gateway for PostgreSQL
"""
__version__ = "1.0.0"
