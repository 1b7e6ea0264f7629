"""Model exports for SQLAlchemy/SQLModel metadata discovery."""

from taskboard.models.tasks import Task

__all__ = ["Task"]
