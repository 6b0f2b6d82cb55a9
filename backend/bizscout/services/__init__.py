"""Services module for persistence and data operations."""

from bizscout.services.listing_service import ListingService, SaveReport

__all__ = [
    "ListingService",
    "SaveReport",
]
