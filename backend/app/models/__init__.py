"""SQLAlchemy models for the changelog backend."""

from app.models.event import Event
from app.models.newsletter import NewsletterAutomationSettings
from app.models.settings import ProjectSettings
from app.models.status import EventStatusDefinition
from app.models.status_mapping import StatusCategoryMapping
from app.models.theme_setting import ThemeSettingValue

__all__ = [
    "Event",
    "EventStatusDefinition",
    "NewsletterAutomationSettings",
    "ProjectSettings",
    "StatusCategoryMapping",
    "ThemeSettingValue",
]
