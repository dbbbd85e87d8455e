"""Domain types shared across the application."""

from .project import PUBLIC_PROJECT_FIELDS, IdeaSynthesisResult, ProjectRecord

__all__ = [
    "IdeaSynthesisResult",
    "PUBLIC_PROJECT_FIELDS",
    "ProjectRecord",
]
