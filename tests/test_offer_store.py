"""Tests for the profile and offer record stores."""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.database_models import OfferStatus
from app.models.schemas import (
    Branding,
    DraftStatus,
    OfferDraft,
    OfferStatusSchema,
    ProfileUpsertRequest,
    ToneOfVoice,
)
from app.services.offer_store import (
    OfferStore,
    ProfileStore,
    RecordNotFoundError,
    offer_draft,
    offer_to_response,
    profile_to_knowledge,
)
from tests.conftest import VIDEO_FACTS


def _draft(subject: str = "Your UGC ad package") -> OfferDraft:
    return OfferDraft(
        status=DraftStatus.NEEDS_INFO,
        subject=subject,
        body_markup="<p>Hi</p>",
        clarifying_questions=["Hard deadline?"],
        rationale="Deadline unknown.",
    )


async def _profile(db: AsyncSession, name: str = "Northframe Studio"):
    return await ProfileStore(db).save(
        ProfileUpsertRequest(company_name=name, industry="Video services", facts=VIDEO_FACTS)
    )


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_profile_defaults(db_session: AsyncSession):
    record = await ProfileStore(db_session).save(ProfileUpsertRequest(company_name="Acme"))
    knowledge = profile_to_knowledge(record)

    assert record.id
    assert knowledge.facts == []
    assert knowledge.brand.primary_color == "#4f46e5"
    assert knowledge.brand.font_name == "Inter"
    assert knowledge.brand.tone is ToneOfVoice.PROFESSIONAL
    assert record.is_verified is False


@pytest.mark.asyncio
async def test_profile_save_replaces_whole_object(db_session: AsyncSession):
    store = ProfileStore(db_session)
    record = await _profile(db_session)

    updated = await store.save(
        ProfileUpsertRequest(
            company_name="Northframe",
            industry="Video services",
            facts=["Service: Event coverage"],
            branding=Branding(tone=ToneOfVoice.LUXURY),
            is_verified=True,
        ),
        profile_id=record.id,
    )

    assert updated.id == record.id
    assert updated.company_name == "Northframe"
    assert updated.facts == ["Service: Event coverage"]
    assert updated.proof_points == []
    assert updated.branding["tone"] == "luxury"
    assert updated.is_verified is True


@pytest.mark.asyncio
async def test_profile_latest(db_session: AsyncSession):
    store = ProfileStore(db_session)
    assert await store.latest() is None

    await _profile(db_session, "First")
    second = await _profile(db_session, "Second")

    latest = await store.latest()
    assert latest.id == second.id


@pytest.mark.asyncio
async def test_profile_get_missing(db_session: AsyncSession):
    with pytest.raises(RecordNotFoundError):
        await ProfileStore(db_session).get("does-not-exist")


# ---------------------------------------------------------------------------
# Offers
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_offer_defaults(db_session: AsyncSession):
    profile = await _profile(db_session)
    offer = await OfferStore(db_session).create(profile.id, "Need 3 ads", _draft())

    assert offer.status is OfferStatus.DRAFT
    assert offer.title == "Your UGC ad package"
    assert offer.offer_data["emailSubject"] == "Your UGC ad package"
    assert offer.offer_data["missingClientInfo"] == ["Hard deadline?"]

    response = offer_to_response(offer)
    assert response.status is OfferStatusSchema.DRAFT
    assert response.offer.clarifying_questions == ["Hard deadline?"]


@pytest.mark.asyncio
async def test_create_offer_title_falls_back(db_session: AsyncSession):
    profile = await _profile(db_session)
    store = OfferStore(db_session)

    explicit = await store.create(profile.id, "req", _draft(), title="Spring campaign")
    assert explicit.title == "Spring campaign"

    blank_subject = _draft()
    blank_subject.subject = ""
    untitled = await store.create(profile.id, "req", blank_subject)
    assert untitled.title == "Untitled Offer"


@pytest.mark.asyncio
async def test_update_offer_fields(db_session: AsyncSession):
    profile = await _profile(db_session)
    store = OfferStore(db_session)
    offer = await store.create(profile.id, "Need 3 ads", _draft())

    draft = offer_draft(offer)
    draft.attach_rendering("<!DOCTYPE html><html></html>")
    updated = await store.update(
        offer.id,
        title="Renamed",
        status=OfferStatusSchema.ARCHIVED,
        offer_data=draft,
    )

    assert updated.title == "Renamed"
    assert updated.status is OfferStatus.ARCHIVED
    assert updated.offer_data["htmlContent"] == "<!DOCTYPE html><html></html>"
    assert updated.client_request == "Need 3 ads"


@pytest.mark.asyncio
async def test_update_offer_rejects_unknown_field(db_session: AsyncSession):
    profile = await _profile(db_session)
    store = OfferStore(db_session)
    offer = await store.create(profile.id, "req", _draft())

    with pytest.raises(ValueError):
        await store.update(offer.id, business_id="someone-else")


@pytest.mark.asyncio
async def test_update_missing_offer(db_session: AsyncSession):
    with pytest.raises(RecordNotFoundError):
        await OfferStore(db_session).update("nope", title="x")


@pytest.mark.asyncio
async def test_list_most_recently_updated_first(db_session: AsyncSession):
    profile = await _profile(db_session)
    other = await _profile(db_session, "Other Co")
    store = OfferStore(db_session)

    first = await store.create(profile.id, "req 1", _draft("First"))
    second = await store.create(profile.id, "req 2", _draft("Second"))
    await store.create(other.id, "req 3", _draft("Not mine"))

    listed = await store.list_for_business(profile.id)
    assert [o.id for o in listed] == [second.id, first.id]

    await store.update(first.id, title="First (edited)")
    listed = await store.list_for_business(profile.id)
    assert [o.id for o in listed] == [first.id, second.id]


@pytest.mark.asyncio
async def test_duplicate_creates_new_draft_copy(db_session: AsyncSession):
    profile = await _profile(db_session)
    store = OfferStore(db_session)
    original = await store.create(profile.id, "Need 3 ads", _draft())
    await store.update(original.id, status=OfferStatus.SENT)

    copy = await store.duplicate(original.id)

    assert copy.id != original.id
    assert copy.title == "Your UGC ad package (Copy)"
    assert copy.status is OfferStatus.DRAFT
    assert copy.client_request == "Need 3 ads"
    assert copy.offer_data == original.offer_data

    refreshed = await store.get(original.id)
    assert refreshed.status is OfferStatus.SENT
