"""
Knowledge profile endpoints.

Route summary
-------------
POST   /api/profiles                       — create profile
GET    /api/profiles/current               — most recent profile
GET    /api/profiles/{profile_id}          — profile detail
PUT    /api/profiles/{profile_id}          — replace profile
POST   /api/profiles/{profile_id}/ingest   — extract facts / proof points / style
POST   /api/profiles/{profile_id}/audit    — gap suggestions (not persisted)
GET    /api/profiles/{profile_id}/audit    — latest debounced audit result

POST   /api/profiles/{profile_id}/offers   — draft + auto-save an offer
GET    /api/profiles/{profile_id}/offers   — offers, most recently updated first

Pipeline errors and missing records propagate to the app-level handlers
in ``app.main``.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.schemas import (
    AuditResponse,
    AuditStatusResponse,
    IngestRequest,
    IngestResponse,
    OfferCreateRequest,
    OfferResponse,
    ProfileResponse,
    ProfileUpsertRequest,
)
from app.services.debounce import AuditRegistry, get_audit_registry
from app.services.llm_client import GenerationClient, get_generation_client
from app.services.offer_store import (
    ProfileStore,
    RecordNotFoundError,
    offer_to_response,
    profile_to_response,
)
from app.services.pipeline import OfferPipeline

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Profile CRUD
# ---------------------------------------------------------------------------

@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile(
    body: ProfileUpsertRequest,
    db: AsyncSession = Depends(get_db),
    client: GenerationClient = Depends(get_generation_client),
    audits: AuditRegistry = Depends(get_audit_registry),
) -> ProfileResponse:
    record = await ProfileStore(db).save(body)
    audits.trigger(record.id, record.facts, record.industry, client)
    return profile_to_response(record)


@router.get("/current", response_model=ProfileResponse)
async def get_current_profile(db: AsyncSession = Depends(get_db)) -> ProfileResponse:
    """Return the most recently created profile (single-tenant onboarding flow)."""
    record = await ProfileStore(db).latest()
    if record is None:
        raise RecordNotFoundError("No profile has been created yet.")
    return profile_to_response(record)


@router.get("/{profile_id}", response_model=ProfileResponse)
async def get_profile(profile_id: str, db: AsyncSession = Depends(get_db)) -> ProfileResponse:
    record = await ProfileStore(db).get(profile_id)
    return profile_to_response(record)


@router.put("/{profile_id}", response_model=ProfileResponse)
async def replace_profile(
    profile_id: str,
    body: ProfileUpsertRequest,
    db: AsyncSession = Depends(get_db),
    client: GenerationClient = Depends(get_generation_client),
    audits: AuditRegistry = Depends(get_audit_registry),
) -> ProfileResponse:
    """Whole-object write: every field in the body replaces the stored one."""
    record = await ProfileStore(db).save(body, profile_id=profile_id)
    audits.trigger(record.id, record.facts, record.industry, client)
    return profile_to_response(record)


# ---------------------------------------------------------------------------
# Knowledge capture
# ---------------------------------------------------------------------------

@router.post("/{profile_id}/ingest", response_model=IngestResponse)
async def ingest_text(
    profile_id: str,
    body: IngestRequest,
    db: AsyncSession = Depends(get_db),
    client: GenerationClient = Depends(get_generation_client),
    audits: AuditRegistry = Depends(get_audit_registry),
) -> IngestResponse:
    """
    Extract entries from free text and append them to one knowledge list.

    An empty ``added`` list is a valid outcome: the extraction stage found
    nothing, or the generator's answer could not be parsed.  New facts
    re-arm the debounced audit.
    """
    pipeline = OfferPipeline(db, client, audits=audits)
    result = await pipeline.ingest(profile_id, body.text, body.kind)
    return IngestResponse(
        kind=result.kind,
        added=result.added,
        profile=profile_to_response(result.profile),
    )


@router.post("/{profile_id}/audit", response_model=AuditResponse)
async def audit_profile(
    profile_id: str,
    db: AsyncSession = Depends(get_db),
    client: GenerationClient = Depends(get_generation_client),
) -> AuditResponse:
    result = await OfferPipeline(db, client).audit(profile_id)
    return AuditResponse(
        profile_id=result.profile_id,
        industry=result.industry,
        fact_count=result.fact_count,
        suggestions=result.suggestions,
    )


@router.get("/{profile_id}/audit", response_model=AuditStatusResponse)
async def get_audit_status(
    profile_id: str,
    db: AsyncSession = Depends(get_db),
    audits: AuditRegistry = Depends(get_audit_registry),
) -> AuditStatusResponse:
    """Latest accepted result of the debounced audit; empty until one has run."""
    await ProfileStore(db).get(profile_id)
    audit = audits.peek(profile_id)
    if audit is None:
        return AuditStatusResponse(profile_id=profile_id)
    return AuditStatusResponse(
        profile_id=profile_id,
        generation=audit.generation,
        pending=audit.pending,
        suggestions=audit.suggestions,
        last_error=str(audit.last_error) if audit.last_error else None,
    )


# ---------------------------------------------------------------------------
# Offers for a profile
# ---------------------------------------------------------------------------

@router.post(
    "/{profile_id}/offers",
    response_model=OfferResponse,
    status_code=status.HTTP_201_CREATED,
)
async def draft_offer(
    profile_id: str,
    body: OfferCreateRequest,
    db: AsyncSession = Depends(get_db),
    client: GenerationClient = Depends(get_generation_client),
) -> OfferResponse:
    """Draft an offer for the client request and save it as a new draft record."""
    if not body.client_request.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Client request must not be empty.",
        )
    offer = await OfferPipeline(db, client).draft(profile_id, body.client_request, body.sections)
    return offer_to_response(offer)


@router.get("/{profile_id}/offers", response_model=List[OfferResponse])
async def list_offers(
    profile_id: str,
    db: AsyncSession = Depends(get_db),
    client: GenerationClient = Depends(get_generation_client),
) -> List[OfferResponse]:
    offers = await OfferPipeline(db, client).list_offers(profile_id)
    return [offer_to_response(o) for o in offers]
