"""
Record store for business profiles and offers.

Profiles are read and written as whole objects.  Offers support create,
partial update by id, list-by-business (most recently updated first) and
duplicate-as-new-record.  Methods flush but never commit: the request's
session (``app.database.get_db``) owns the transaction, so a failed stage
leaves previously persisted state untouched.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.database_models import BusinessProfile, Offer, OfferStatus
from app.models.schemas import (
    Branding,
    KnowledgeProfile,
    OfferDraft,
    OfferResponse,
    OfferStatusSchema,
    ProfileResponse,
    ProfileUpsertRequest,
)

logger = logging.getLogger(__name__)

UNTITLED_OFFER = "Untitled Offer"
COPY_SUFFIX = " (Copy)"

_OFFER_FIELDS = frozenset({"title", "status", "offer_data", "client_request"})


class RecordNotFoundError(LookupError):
    """No record with the requested identifier."""


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------

def profile_to_knowledge(record: BusinessProfile) -> KnowledgeProfile:
    """Snapshot of a stored profile as pipeline input."""
    return KnowledgeProfile(
        company_name=record.company_name,
        industry=record.industry or "",
        facts=list(record.facts or []),
        proof_points=list(record.proof_points or []),
        style_examples=list(record.style_examples or []),
        brand=Branding.model_validate(record.branding or {}),
    )


def profile_to_response(record: BusinessProfile) -> ProfileResponse:
    return ProfileResponse(
        id=record.id,
        company_name=record.company_name,
        industry=record.industry or "",
        facts=list(record.facts or []),
        proof_points=list(record.proof_points or []),
        style_examples=list(record.style_examples or []),
        branding=Branding.model_validate(record.branding or {}),
        is_verified=bool(record.is_verified),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def offer_draft(record: Offer) -> OfferDraft:
    return OfferDraft.model_validate(record.offer_data)


def offer_to_response(record: Offer) -> OfferResponse:
    return OfferResponse(
        id=record.id,
        business_id=record.business_id,
        client_request=record.client_request,
        title=record.title,
        status=OfferStatusSchema(record.status.value),
        offer=offer_draft(record),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

class ProfileStore:
    """Whole-object access to BusinessProfile records."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, profile_id: str) -> BusinessProfile:
        result = await self.db.execute(
            select(BusinessProfile).where(BusinessProfile.id == profile_id)
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise RecordNotFoundError(f"Profile {profile_id} not found.")
        return record

    async def latest(self) -> Optional[BusinessProfile]:
        """Most recently created profile, or None for a fresh install."""
        result = await self.db.execute(
            select(BusinessProfile).order_by(BusinessProfile.created_at.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    async def save(
        self,
        body: ProfileUpsertRequest,
        profile_id: Optional[str] = None,
    ) -> BusinessProfile:
        """Insert a new profile, or replace every field of an existing one."""
        record = await self.get(profile_id) if profile_id else BusinessProfile()

        record.company_name = body.company_name
        record.industry = body.industry
        record.facts = list(body.facts)
        record.proof_points = list(body.proof_points)
        record.style_examples = list(body.style_examples)
        record.branding = body.branding.model_dump(mode="json")
        record.is_verified = body.is_verified

        if profile_id is None:
            self.db.add(record)
        await self.db.flush()
        await self.db.refresh(record)

        logger.info(
            "Saved profile id=%s (%d facts, %d proof points, %d style examples)",
            record.id,
            len(record.facts),
            len(record.proof_points),
            len(record.style_examples),
        )
        return record

    async def replace_knowledge(
        self,
        record: BusinessProfile,
        knowledge: KnowledgeProfile,
    ) -> BusinessProfile:
        """Write a mutated KnowledgeProfile back over *record* (whole lists)."""
        record.company_name = knowledge.company_name or record.company_name
        record.industry = knowledge.industry
        record.facts = list(knowledge.facts)
        record.proof_points = list(knowledge.proof_points)
        record.style_examples = list(knowledge.style_examples)
        record.branding = knowledge.brand.model_dump(mode="json")
        await self.db.flush()
        await self.db.refresh(record)
        return record


# ---------------------------------------------------------------------------
# Offers
# ---------------------------------------------------------------------------

class OfferStore:
    """Offer records: create, update, list, duplicate."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(
        self,
        business_id: str,
        client_request: str,
        draft: OfferDraft,
        title: Optional[str] = None,
    ) -> Offer:
        record = Offer(
            business_id=business_id,
            client_request=client_request,
            title=title or draft.subject or UNTITLED_OFFER,
            status=OfferStatus.DRAFT,
            offer_data=draft.to_payload(),
        )
        self.db.add(record)
        await self.db.flush()
        await self.db.refresh(record)
        logger.info("Created offer id=%s for business=%s", record.id, business_id)
        return record

    async def get(self, offer_id: str) -> Offer:
        result = await self.db.execute(select(Offer).where(Offer.id == offer_id))
        record = result.scalar_one_or_none()
        if record is None:
            raise RecordNotFoundError(f"Offer {offer_id} not found.")
        return record

    async def update(self, offer_id: str, **fields: Any) -> Offer:
        """
        Partial field replacement.

        Accepts ``title``, ``status``, ``client_request`` and ``offer_data``
        (an OfferDraft or its payload; always replaced whole).
        """
        unknown = set(fields) - _OFFER_FIELDS
        if unknown:
            raise ValueError(f"Unknown offer field(s): {', '.join(sorted(unknown))}")

        record = await self.get(offer_id)
        for name, value in fields.items():
            if value is None:
                continue
            if name == "offer_data" and isinstance(value, OfferDraft):
                value = value.to_payload()
            elif name == "status":
                value = OfferStatus(getattr(value, "value", value))
            setattr(record, name, value)

        await self.db.flush()
        await self.db.refresh(record)
        logger.info("Updated offer id=%s fields=%s", offer_id, sorted(fields))
        return record

    async def list_for_business(self, business_id: str) -> List[Offer]:
        result = await self.db.execute(
            select(Offer)
            .where(Offer.business_id == business_id)
            .order_by(Offer.updated_at.desc())
        )
        return list(result.scalars().all())

    async def duplicate(self, offer_id: str) -> Offer:
        original = await self.get(offer_id)
        payload: Dict[str, Any] = dict(original.offer_data or {})
        copy = Offer(
            business_id=original.business_id,
            client_request=original.client_request,
            title=f"{original.title}{COPY_SUFFIX}",
            status=OfferStatus.DRAFT,
            offer_data=payload,
        )
        self.db.add(copy)
        await self.db.flush()
        await self.db.refresh(copy)
        logger.info("Duplicated offer id=%s -> id=%s", offer_id, copy.id)
        return copy
