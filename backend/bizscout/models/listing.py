"""Business listing model: one normalized "business for sale" record."""

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Index, String, Text, UniqueConstraint
from sqlalchemy import JSON as JSONB
from sqlalchemy.orm import Mapped, mapped_column

from bizscout.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class BusinessListing(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A business-for-sale listing scraped from a marketplace.

    Rows are identified by (name, source, original_url). The pipeline
    never writes two rows with the same key; re-runs skip existing rows.
    """

    __tablename__ = "business_listings"

    name: Mapped[str] = mapped_column(String(500), nullable=False, comment="Listing title")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Amounts are whole dollars, clamped to a 32-bit range before insert
    asking_price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    annual_revenue: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    industry: Mapped[str] = mapped_column(String(100), nullable=False, default="Business")
    location: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    source: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    highlights: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)

    image_url: Mapped[Optional[str]] = mapped_column(String(2000), nullable=True)
    original_url: Mapped[Optional[str]] = mapped_column(String(2000), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="active",
        comment="Status: 'active', 'sold', 'archived'",
    )
    scraped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("name", "source", "original_url", name="uq_listing_name_source_url"),
        Index("idx_listings_source_scraped", "source", "scraped_at"),
    )

    def __repr__(self) -> str:
        return f"<BusinessListing(id={self.id}, name='{self.name[:50]}', source='{self.source}')>"
