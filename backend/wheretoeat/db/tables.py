"""
Single source of truth for database tables created by the migrations in alembic/versions.

alembic/env.py asserts that the registered models match this list.
"""
ALL_TABLE_NAMES = (
    "users",
    "restaurants",
    "closed_days",
    "bookings",
    "clients",
)
