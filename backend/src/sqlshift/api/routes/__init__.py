"""
API routes for SQLShift.
"""

from sqlshift.api.routes import (
    comments,
    deployments,
    files,
    history,
    projects,
    review,
)

__all__ = [
    "comments",
    "deployments",
    "files",
    "history",
    "projects",
    "review",
]
