"""Database access layer for SQLShift."""
