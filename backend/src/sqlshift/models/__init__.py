"""Database models for SQLShift."""
