from portfolio_api.db.base import Base  # noqa: F401
from portfolio_api.models.project import Project, ProjectStatus  # noqa: F401
from portfolio_api.models.redirect import SlugRedirect  # noqa: F401

__all__ = [
    "Base",
    "Project",
    "ProjectStatus",
    "SlugRedirect",
]
