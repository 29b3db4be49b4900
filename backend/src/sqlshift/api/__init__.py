"""HTTP API for SQLShift."""
