"""
Pipeline orchestrator: sequences the stages per user action and persists
the results.

Public API
----------
OfferPipeline.ingest(profile_id, text, kind)             -> IngestResult
OfferPipeline.audit(profile_id)                          -> AuditResult
OfferPipeline.schedule_audit(profile_id, facts, industry)
OfferPipeline.draft(profile_id, client_request, sections)-> Offer
OfferPipeline.render(offer_id)                           -> Offer
OfferPipeline.edit_body(offer_id, body_markup)           -> Offer
OfferPipeline.update_offer(offer_id, ...)                -> Offer
OfferPipeline.duplicate(offer_id)                        -> Offer
OfferPipeline.list_offers(profile_id)                    -> List[Offer]
OfferPipeline.send(offer_id)                             -> SendResult

Policy
------
Stages run sequentially, one blocking backend round trip each, and nothing
is retried here.  Every stage call happens *before* any write, so a failed
stage leaves previously persisted state exactly as it was.  The profile is
threaded through as an explicit snapshot; there is no global profile state.
"""
from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.database_models import BusinessProfile, Offer, OfferStatus
from app.models.schemas import (
    IngestKind,
    OfferNotification,
    OfferRequest,
    OfferStatusSchema,
    SectionConfig,
)
from app.services.debounce import AuditRegistry
from app.services.document_renderer import DocumentRenderer
from app.services.knowledge_auditor import KnowledgeAuditor
from app.services.knowledge_extractor import KnowledgeExtractor
from app.services.llm_client import GenerationClient
from app.services.offer_drafter import OfferDrafter, find_unsupported_commitments
from app.services.offer_store import (
    OfferStore,
    ProfileStore,
    offer_draft,
    profile_to_knowledge,
)
from app.services.webhook import OfferWebhookNotifier

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class IngestResult:
    """Entries added to one knowledge list, plus the saved profile."""

    kind: IngestKind
    added: List[str]
    profile: BusinessProfile


@dataclasses.dataclass
class AuditResult:
    """Transient gap suggestions for a profile."""

    profile_id: str
    industry: str
    fact_count: int
    suggestions: List[str]


@dataclasses.dataclass
class SendResult:
    offer: Offer
    delivered_at: datetime


# ---------------------------------------------------------------------------
# OfferPipeline
# ---------------------------------------------------------------------------

class OfferPipeline:
    """
    Per-request orchestrator.

    Cheap to construct: stages hold nothing but the generation client, and
    stores wrap the request's session.
    """

    def __init__(
        self,
        db: AsyncSession,
        client: GenerationClient,
        notifier: Optional[OfferWebhookNotifier] = None,
        audits: Optional[AuditRegistry] = None,
    ) -> None:
        self._client = client
        self._audits = audits
        self._profiles = ProfileStore(db)
        self._offers = OfferStore(db)
        self._extractor = KnowledgeExtractor(client)
        self._auditor = KnowledgeAuditor(client)
        self._drafter = OfferDrafter(client)
        self._renderer = DocumentRenderer(client)
        self._notifier = notifier or OfferWebhookNotifier()

    # ------------------------------------------------------------------
    # Knowledge profile
    # ------------------------------------------------------------------

    async def ingest(self, profile_id: str, text: str, kind: IngestKind) -> IngestResult:
        """
        Turn free text into entries of one knowledge list and save the profile.

        Facts and proof points go through their extraction stage (which may
        legitimately add nothing); style examples are stored verbatim.
        """
        record = await self._profiles.get(profile_id)
        knowledge = profile_to_knowledge(record)

        if kind is IngestKind.FACTS:
            added = await self._extractor.extract_facts(text, knowledge.industry)
            knowledge.facts.extend(added)
        elif kind is IngestKind.PROOF_POINTS:
            added = await self._extractor.extract_case_studies(text)
            knowledge.proof_points.extend(added)
        else:
            example = text.strip()
            added = [example] if example else []
            knowledge.style_examples.extend(added)

        if added:
            record = await self._profiles.replace_knowledge(record, knowledge)
            if kind is IngestKind.FACTS:
                self.schedule_audit(record.id, knowledge.facts, knowledge.industry)

        logger.info("ingest: profile=%s kind=%s added=%d", profile_id, kind.value, len(added))
        return IngestResult(kind=kind, added=added, profile=record)

    async def audit(self, profile_id: str) -> AuditResult:
        record = await self._profiles.get(profile_id)
        knowledge = profile_to_knowledge(record)
        suggestions = await self._auditor.audit_gaps(knowledge.facts, knowledge.industry)
        return AuditResult(
            profile_id=profile_id,
            industry=knowledge.industry,
            fact_count=len(knowledge.facts),
            suggestions=suggestions,
        )

    def schedule_audit(self, profile_id: str, facts: List[str], industry: str) -> None:
        """Re-arm the debounced audit for the profile; no-op without a registry."""
        if self._audits is not None:
            self._audits.trigger(profile_id, facts, industry, self._client)

    # ------------------------------------------------------------------
    # Offers
    # ------------------------------------------------------------------

    async def draft(
        self,
        profile_id: str,
        client_request: str,
        sections: Optional[SectionConfig] = None,
    ) -> Offer:
        """
        Draft an offer and auto-save it as a new ``draft`` record.

        Raises:
            ValueError: blank client request (checked before any stage runs).
        """
        if not client_request or not client_request.strip():
            raise ValueError("Client request must not be empty.")

        record = await self._profiles.get(profile_id)
        request = OfferRequest(
            profile=profile_to_knowledge(record),
            client_request=client_request.strip(),
            sections=sections or SectionConfig(),
        )

        draft = await self._drafter.draft_offer(
            request.profile, request.client_request, request.sections
        )
        offer = await self._offers.create(record.id, request.client_request, draft)
        logger.info("draft: offer=%s status=%s", offer.id, draft.status.value)
        return offer

    async def render(self, offer_id: str) -> Offer:
        offer = await self._offers.get(offer_id)
        profile = await self._profiles.get(offer.business_id)
        draft = offer_draft(offer)

        document = await self._renderer.render_document(draft, profile_to_knowledge(profile).brand)
        draft.attach_rendering(document)
        return await self._offers.update(offer_id, offer_data=draft)

    async def edit_body(self, offer_id: str, body_markup: str) -> Offer:
        """Manual edit of the body; clears any stale rendering and re-checks the boundary."""
        offer = await self._offers.get(offer_id)
        profile = await self._profiles.get(offer.business_id)
        draft = offer_draft(offer)
        draft.edit_body(body_markup)
        draft.boundary_flags = find_unsupported_commitments(
            body_markup, profile_to_knowledge(profile).facts, offer.client_request
        )
        return await self._offers.update(offer_id, offer_data=draft)

    async def update_offer(
        self,
        offer_id: str,
        title: Optional[str] = None,
        status: Optional[OfferStatusSchema] = None,
        body_markup: Optional[str] = None,
    ) -> Offer:
        if body_markup is not None:
            await self.edit_body(offer_id, body_markup)
        return await self._offers.update(offer_id, title=title, status=status)

    async def duplicate(self, offer_id: str) -> Offer:
        return await self._offers.duplicate(offer_id)

    async def list_offers(self, profile_id: str) -> List[Offer]:
        await self._profiles.get(profile_id)
        return await self._offers.list_for_business(profile_id)

    async def get_offer(self, offer_id: str) -> Offer:
        return await self._offers.get(offer_id)

    async def send(self, offer_id: str) -> SendResult:
        """Deliver the offer to the webhook sink; mark it ``sent`` on success."""
        offer = await self._offers.get(offer_id)
        profile = await self._profiles.get(offer.business_id)
        draft = offer_draft(offer)
        delivered_at = datetime.now(timezone.utc)

        notification = OfferNotification(
            business_name=profile.company_name,
            client_request=offer.client_request,
            offer_subject=draft.subject,
            offer_body=draft.body_markup,
            rendered_document=draft.rendered_document,
            timestamp=delivered_at,
        )
        await self._notifier.send(notification)

        offer = await self._offers.update(offer_id, status=OfferStatus.SENT)
        return SendResult(offer=offer, delivered_at=delivered_at)
