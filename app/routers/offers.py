"""
Offer record endpoints.

Route summary
-------------
GET    /api/offers/{offer_id}             — offer detail
PATCH  /api/offers/{offer_id}             — title / status / body edit
POST   /api/offers/{offer_id}/render      — styled document from the draft
POST   /api/offers/{offer_id}/duplicate   — copy as a new draft record
POST   /api/offers/{offer_id}/send        — deliver via webhook, mark sent
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.schemas import OfferResponse, OfferUpdateRequest, SendOfferResponse
from app.services.llm_client import GenerationClient, get_generation_client
from app.services.offer_store import offer_to_response
from app.services.pipeline import OfferPipeline
from app.services.webhook import OfferWebhookNotifier, get_webhook_notifier

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{offer_id}", response_model=OfferResponse)
async def get_offer(
    offer_id: str,
    db: AsyncSession = Depends(get_db),
    client: GenerationClient = Depends(get_generation_client),
) -> OfferResponse:
    offer = await OfferPipeline(db, client).get_offer(offer_id)
    return offer_to_response(offer)


@router.patch("/{offer_id}", response_model=OfferResponse)
async def update_offer(
    offer_id: str,
    body: OfferUpdateRequest,
    db: AsyncSession = Depends(get_db),
    client: GenerationClient = Depends(get_generation_client),
) -> OfferResponse:
    """
    Partial update.  Editing ``body_markup`` discards any rendered document,
    which then has to be regenerated with ``/render``.
    """
    offer = await OfferPipeline(db, client).update_offer(
        offer_id,
        title=body.title,
        status=body.status,
        body_markup=body.body_markup,
    )
    return offer_to_response(offer)


@router.post("/{offer_id}/render", response_model=OfferResponse)
async def render_offer(
    offer_id: str,
    db: AsyncSession = Depends(get_db),
    client: GenerationClient = Depends(get_generation_client),
) -> OfferResponse:
    offer = await OfferPipeline(db, client).render(offer_id)
    return offer_to_response(offer)


@router.post(
    "/{offer_id}/duplicate",
    response_model=OfferResponse,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_offer(
    offer_id: str,
    db: AsyncSession = Depends(get_db),
    client: GenerationClient = Depends(get_generation_client),
) -> OfferResponse:
    offer = await OfferPipeline(db, client).duplicate(offer_id)
    return offer_to_response(offer)


@router.post("/{offer_id}/send", response_model=SendOfferResponse)
async def send_offer(
    offer_id: str,
    db: AsyncSession = Depends(get_db),
    client: GenerationClient = Depends(get_generation_client),
    notifier: OfferWebhookNotifier = Depends(get_webhook_notifier),
) -> SendOfferResponse:
    result = await OfferPipeline(db, client, notifier=notifier).send(offer_id)
    logger.info("Offer %s sent", offer_id)
    return SendOfferResponse(
        offer=offer_to_response(result.offer),
        delivered_at=result.delivered_at,
    )
