"""Tests for the style rendering stage."""
import pytest

from app.models.schemas import Branding, DraftStatus, OfferDraft
from app.services.document_renderer import DocumentRenderer
from app.services.exceptions import EmptyResponseError, MalformedOutputError
from tests.conftest import FakeGenerationClient

DOCUMENT = "<!DOCTYPE html><html><body><h1>Your UGC ad package</h1></body></html>"


def _draft() -> OfferDraft:
    return OfferDraft(
        status=DraftStatus.READY,
        subject="Your UGC ad package",
        body_markup="<p>Hi Sam,</p><ul><li>3 UGC ads</li></ul>",
    )


@pytest.mark.asyncio
async def test_render_strips_fence_and_sends_draft():
    llm = FakeGenerationClient(f"```html\n{DOCUMENT}\n```")
    brand = Branding(primary_color="#ff0066", font_name="Poppins")

    document = await DocumentRenderer(llm).render_document(_draft(), brand)

    assert document == DOCUMENT
    call = llm.calls[0]
    assert call["structured"] is False
    assert "Subject: Your UGC ad package" in call["user"]
    assert "<li>3 UGC ads</li>" in call["user"]
    assert "#ff0066" in call["system"]
    assert "Poppins" in call["system"]
    assert "Preserve ALL wording exactly" in call["system"]


def test_logo_rule_depends_on_logo_url():
    renderer = DocumentRenderer(FakeGenerationClient())

    with_logo = renderer.build_instructions(Branding(logo_url="https://cdn.test/logo.png"))
    assert "https://cdn.test/logo.png" in with_logo

    without_logo = renderer.build_instructions(Branding())
    assert "There is no logo" in without_logo
    assert "#4f46e5" in without_logo


@pytest.mark.asyncio
async def test_bare_fence_is_malformed():
    llm = FakeGenerationClient("```html\n```")
    with pytest.raises(MalformedOutputError):
        await DocumentRenderer(llm).render_document(_draft(), Branding())


@pytest.mark.asyncio
async def test_backend_failure_propagates():
    llm = FakeGenerationClient(EmptyResponseError("nothing"))
    with pytest.raises(EmptyResponseError):
        await DocumentRenderer(llm).render_document(_draft(), Branding())
