"""SQLShift - Sybase to Oracle migration lifecycle tracking."""

__version__ = "0.1.0"
