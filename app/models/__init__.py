"""Database and schema models for Offer Studio."""
from app.models.database_models import (
    BusinessProfile,
    Offer,
    OfferStatus,
)
from app.models.schemas import (
    Branding,
    KnowledgeProfile,
    SectionConfig,
    OfferRequest,
    OfferDraft,
    ProfileResponse,
    OfferResponse,
    HealthCheckResponse,
)

__all__ = [
    # Database models
    "BusinessProfile",
    "Offer",
    "OfferStatus",
    # Pydantic schemas
    "Branding",
    "KnowledgeProfile",
    "SectionConfig",
    "OfferRequest",
    "OfferDraft",
    "ProfileResponse",
    "OfferResponse",
    "HealthCheckResponse",
]
