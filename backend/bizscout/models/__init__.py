"""SQLAlchemy models for BizScout.

All models are imported here so metadata.create_all can discover them.
"""

from bizscout.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from bizscout.models.listing import BusinessListing
from bizscout.models.scraping_session import ScrapingSessionRecord

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "BusinessListing",
    "ScrapingSessionRecord",
]
