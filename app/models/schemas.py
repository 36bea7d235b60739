"""
Pydantic schemas for the pipeline's data model and request/response validation.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from enum import Enum


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ToneOfVoice(str, Enum):
    """Brand tone steering the drafting stage."""

    PROFESSIONAL = "professional"
    CASUAL = "casual"
    URGENT = "urgent"
    LUXURY = "luxury"


class DraftStatus(str, Enum):
    """Whether the drafting stage had enough information to commit to scope."""

    READY = "ready"
    NEEDS_INFO = "needs_info"


class OfferStatusSchema(str, Enum):
    """Lifecycle tag of a stored offer (matches database enum)."""

    DRAFT = "draft"
    SENT = "sent"
    ARCHIVED = "archived"


class IngestKind(str, Enum):
    """Which knowledge list a blob of free text is added to."""

    FACTS = "facts"
    PROOF_POINTS = "proof_points"
    STYLE = "style"


# ---------------------------------------------------------------------------
# Knowledge profile
# ---------------------------------------------------------------------------

class Branding(BaseModel):
    """Brand tokens used for tone and document rendering."""

    primary_color: str = Field("#4f46e5", min_length=1, max_length=32)
    font_name: str = Field("Inter", min_length=1, max_length=100)
    logo_url: Optional[str] = None
    tone: ToneOfVoice = ToneOfVoice.PROFESSIONAL


class KnowledgeProfile(BaseModel):
    """
    Everything the drafting stage knows about the business.

    ``facts``, ``proof_points`` and ``style_examples`` are independent
    ordered lists of plain strings: insertion order is presentation order and
    no deduplication is enforced.
    """

    company_name: str = ""
    industry: str = ""
    facts: List[str] = Field(default_factory=list)
    proof_points: List[str] = Field(default_factory=list)
    style_examples: List[str] = Field(default_factory=list)
    brand: Branding = Field(default_factory=Branding)


class SectionConfig(BaseModel):
    """One toggle per optional offer section. Toggles change instructions, never data."""

    include_summary: bool = True
    include_questions: bool = True
    include_tiers: bool = True
    include_workflow: bool = True
    include_postscript: bool = True


class OfferRequest(BaseModel):
    """Immutable input to the drafting stage."""

    profile: KnowledgeProfile
    client_request: str
    sections: SectionConfig = Field(default_factory=SectionConfig)

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Offer draft
# ---------------------------------------------------------------------------

class OfferDraft(BaseModel):
    """
    Structured offer produced by the drafting stage.

    Serialised with the generator's field names (``emailSubject``,
    ``emailBody``, ``missingClientInfo``, ``htmlContent``) so stored payloads
    and API responses match the record contract.
    """

    status: DraftStatus
    subject: str = Field(..., alias="emailSubject")
    body_markup: str = Field(..., alias="emailBody")
    clarifying_questions: List[str] = Field(default_factory=list, alias="missingClientInfo")
    rationale: str = ""
    rendered_document: Optional[str] = Field(None, alias="htmlContent")
    boundary_flags: List[str] = Field(default_factory=list, alias="boundaryFlags")

    model_config = ConfigDict(populate_by_name=True)

    def edit_body(self, body_markup: str) -> None:
        """Replace the body; any rendering of the old body is now stale."""
        self.body_markup = body_markup
        self.rendered_document = None

    def attach_rendering(self, document: str) -> None:
        self.rendered_document = document

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Profile API
# ---------------------------------------------------------------------------

class ProfileUpsertRequest(BaseModel):
    """Whole-object write of a business profile."""

    company_name: str = Field(..., min_length=1, max_length=255)
    industry: str = Field("", max_length=255)
    facts: List[str] = Field(default_factory=list)
    proof_points: List[str] = Field(default_factory=list)
    style_examples: List[str] = Field(default_factory=list)
    branding: Branding = Field(default_factory=Branding)
    is_verified: bool = False


class ProfileResponse(BaseModel):
    """Schema for business profile responses."""

    id: str
    company_name: str
    industry: str
    facts: List[str]
    proof_points: List[str]
    style_examples: List[str]
    branding: Branding
    is_verified: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class IngestRequest(BaseModel):
    """Free text to turn into knowledge-base entries."""

    text: str = Field(..., min_length=1)
    kind: IngestKind = IngestKind.FACTS


class IngestResponse(BaseModel):
    """Entries added by one ingest call, plus the saved profile."""

    kind: IngestKind
    added: List[str]
    profile: ProfileResponse


class AuditResponse(BaseModel):
    """Transient gap suggestions — never persisted."""

    profile_id: str
    industry: str
    fact_count: int
    suggestions: List[str]


class AuditStatusResponse(BaseModel):
    """State of the debounced background audit for one profile."""

    profile_id: str
    generation: int = 0
    pending: bool = False
    suggestions: List[str] = Field(default_factory=list)
    last_error: Optional[str] = None


# ---------------------------------------------------------------------------
# Offer API
# ---------------------------------------------------------------------------

class OfferCreateRequest(BaseModel):
    """Inbound client request plus the section toggles."""

    client_request: str
    sections: SectionConfig = Field(default_factory=SectionConfig)


class OfferUpdateRequest(BaseModel):
    """Partial field replacement of a stored offer."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    status: Optional[OfferStatusSchema] = None
    body_markup: Optional[str] = None


class OfferResponse(BaseModel):
    """Schema for stored offer records."""

    id: str
    business_id: str
    client_request: str
    title: str
    status: OfferStatusSchema
    offer: OfferDraft
    created_at: datetime
    updated_at: datetime


class OfferNotification(BaseModel):
    """Flattened payload handed to the outbound webhook."""

    business_name: str
    client_request: str
    offer_subject: str
    offer_body: str
    rendered_document: Optional[str] = None
    timestamp: datetime


class SendOfferResponse(BaseModel):
    """Result of handing an offer to the notification sink."""

    offer: OfferResponse
    delivered_at: datetime
    message: str = "Offer delivered to webhook"


# Health Check Schema
class HealthCheckResponse(BaseModel):
    """Schema for health check endpoint."""

    status: str
    database: str
    generation_backend: str
    timestamp: datetime
    version: str = "0.1.0"
