"""
Style rendering stage — re-renders an accepted draft as a branded document.

Presentation only: the instructions forbid changing wording or structure.
The answer is raw markup, so only the code-fence wrapper is stripped; there
is no structured parse.  Failures are fatal (no safe default document).
"""
from __future__ import annotations

import logging

from app.models.schemas import Branding, OfferDraft
from app.services.exceptions import MalformedOutputError
from app.services.llm_client import GenerationClient
from app.services.output_parser import strip_code_fences

logger = logging.getLogger(__name__)


_RENDER_PROMPT = """\
You are an Expert Email Developer.
Convert the offer email you are given into a self-contained, responsive HTML email document.

BRAND:
- Primary color: {primary_color} (headings, accents, the call-to-action button)
- Font: {font_name} (with sensible web-safe fallbacks)

RULES:
- Preserve ALL wording exactly. Do not add, remove, reorder, or rephrase any text.
- Preserve the structure (headings, lists, tables, bold text) of the body.
- Use inline CSS only; no external stylesheets, scripts, or images except the logo if given.
{logo_rule}
Return ONLY the raw HTML document, starting with <!DOCTYPE html>.\
"""

_RENDER_INPUT = """\
Subject: {subject}

Body:
{body}\
"""


class DocumentRenderer:
    """Turns an OfferDraft's subject/body into branded document markup."""

    RENDER_PROMPT = _RENDER_PROMPT

    def __init__(self, client: GenerationClient) -> None:
        self._client = client

    def build_instructions(self, brand: Branding) -> str:
        logo_rule = (
            f"- Place the logo ({brand.logo_url}) at the top of the document."
            if brand.logo_url
            else "- There is no logo; use the subject as a styled header."
        )
        return self.RENDER_PROMPT.format(
            primary_color=brand.primary_color,
            font_name=brand.font_name,
            logo_rule=logo_rule,
        )

    async def render_document(self, draft: OfferDraft, brand: Branding) -> str:
        """
        Return styled document markup for *draft*.

        Raises:
            MalformedOutputError: nothing left after stripping the fence.
            AuthError / TransportError / EmptyResponseError: backend failure.
        """
        raw = await self._client.generate(
            self.build_instructions(brand),
            _RENDER_INPUT.format(subject=draft.subject, body=draft.body_markup),
        )
        document = strip_code_fences(raw)
        if not document:
            raise MalformedOutputError("Rendered document is empty", raw_text=raw)

        logger.info(
            "render_document: %d chars (color=%s font=%s)",
            len(document),
            brand.primary_color,
            brand.font_name,
        )
        return document
