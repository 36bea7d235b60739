"""
SQLAlchemy ORM models for the offer record store.
"""
from sqlalchemy import (
    Column,
    String,
    Text,
    DateTime,
    ForeignKey,
    Boolean,
    Enum as SQLEnum,
    JSON,
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import enum
import uuid

from app.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Enums
class OfferStatus(str, enum.Enum):
    """Lifecycle tag of a stored offer."""

    DRAFT = "draft"
    SENT = "sent"
    ARCHIVED = "archived"


# Models
class BusinessProfile(Base):
    """One tenant's knowledge profile, read and written as a whole object."""

    __tablename__ = "business_profiles"

    id = Column(String(36), primary_key=True, default=_new_id)
    company_name = Column(String(255), nullable=False)
    industry = Column(String(255), nullable=False, default="")
    facts = Column(JSON, nullable=False, default=list)
    proof_points = Column(JSON, nullable=False, default=list)
    style_examples = Column(JSON, nullable=False, default=list)
    branding = Column(JSON, nullable=False, default=dict)
    is_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    offers = relationship("Offer", back_populates="business", cascade="all, delete-orphan")


class Offer(Base):
    """One drafted offer with its full OfferDraft payload."""

    __tablename__ = "offers"

    id = Column(String(36), primary_key=True, default=_new_id)
    business_id = Column(
        String(36), ForeignKey("business_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    client_request = Column(Text, nullable=False)
    title = Column(String(500), nullable=False)
    status = Column(
        SQLEnum(OfferStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=OfferStatus.DRAFT,
    )
    offer_data = Column(JSON, nullable=False)  # OfferDraft wire form
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False, index=True
    )

    # Relationships
    business = relationship("BusinessProfile", back_populates="offers")
