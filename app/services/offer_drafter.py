"""
Offer drafting stage — knowledge profile + client request -> OfferDraft.

The stage is one generation call.  Its job is to build the instruction
contract deterministically from the profile and the section toggles, then
verify the shape of what comes back.  Unlike extraction, a malformed answer
is a hard failure: there is no safe default offer.

Instruction contract
--------------------
1. Persona        — senior human professional at the company, never an AI.
2. Tone           — grounded, non-salesy, no filler; brand tone, always efficient.
3. Voice mimicry  — every style example included verbatim under a label.
4. Service limit  — only services present in the facts; decline/defer the rest.
5. No fabrication — numbers/durations only from the facts or the request.
6. Question budget— score candidates 1-10, drop <=3, keep top 1-3 scored >=8.
7. Sections       — greeting + call-to-action always; toggles gate the rest.
8. Output record  — status, emailSubject, emailBody, missingClientInfo, rationale.

After parsing, ``find_unsupported_commitments`` looks for body sentences
that commit to capabilities the client asked for but the facts never
mention.  Hits are attached to the draft as ``boundary_flags``.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Sequence

from app.config import settings
from app.models.schemas import DraftStatus, KnowledgeProfile, OfferDraft, SectionConfig
from app.services.exceptions import MalformedOutputError, OfferGenerationError
from app.services.llm_client import GenerationClient
from app.services.output_parser import parse_record
from app.utils.helpers import extract_keywords, split_sentences, strip_markup

logger = logging.getLogger(__name__)


OFFER_RECORD_FIELDS: Dict[str, type] = {
    "status": str,
    "emailSubject": str,
    "emailBody": str,
    "missingClientInfo": list,
    "rationale": str,
}

_NONE_PROVIDED = "(none provided)"


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

_OFFER_PROMPT = """\
ROLE:
You are a Senior Creative Partner at "{company_name}".
You are NOT an AI assistant. You are a human expert writing on behalf of the company.

YOUR GOAL:
Write a short, professional, and clear offer email in reply to the client request you are given.

TONE:
- Real, Human, Professional.
- NOT Salesy or Hype-filled.
- NO administrative fluff ("We are pleased to submit...").
- NO repetition.
- Use bullet points and bold text for scanning.
- Tone: {tone} (But keep it grounded and efficient).

STYLE MIMICRY (Match the voice and sentence length of these past emails, NOT their content):
{style_examples}

BUSINESS CONTEXT (Rules & Pricing — the ONLY services and terms you may offer):
{facts}

PORTFOLIO (Proof Points):
{proof_points}

CRITICAL RULES FOR CONTENT:
1. **Strict Service Boundary**: ONLY offer services explicitly listed in the BUSINESS CONTEXT. \
Do NOT invent services to please the client. If they ask for something we don't do \
(based on the context), politely decline that specific part or say we can discuss it separately. \
Mention every such decision in the rationale.
2. **Reasonable Assumptions**: Do not make up specific details (prices, durations, quantities) \
unless they appear in the BUSINESS CONTEXT or are explicitly requested by the client. \
Use ranges or clearly marked placeholders like [X days] if unsure.
3. **Brevity**: Cut all unnecessary words. Be direct. Match the length of the past email \
examples if available.
4. **Questions**:
   - Internal Step: Generate potential clarifying questions. Rate each 1-10 on importance.
   - Action: DISCARD any question rated 1-3.
   - Action: KEEP only the top 1-{max_questions} questions rated 8-10 (e.g., "Hard deadline?", "Decision maker?").
   - If asking about design, DO NOT ask for "guidelines". Ask for examples, links, or a mood description.
5. **Structure**: Use HTML tags (<h3>, <ul>, <li>, <strong>, <p>) to create visual hierarchy. \
No <html>, <head> or inline styles.

REQUIRED EMAIL STRUCTURE (in this order, include nothing else):
{sections}

DECISION:
- status "ready": you have enough information to commit to scope{tier_clause}.
- status "needs_info": otherwise.
- missingClientInfo: the kept questions (1-{max_questions}) when status is "needs_info"; \
an empty array when status is "ready".

OUTPUT:
Return a single JSON object with exactly these fields:
{{"status": "ready" | "needs_info", "emailSubject": "...", "emailBody": "<HTML body>", \
"missingClientInfo": ["..."], "rationale": "Why you chose this status and any service-boundary decisions."}}\
"""

_USER_TEMPLATE = """\
CLIENT REQUEST:
\"\"\"
{client_request}
\"\"\"

TASK:
1. Analyze the request against the Business Context.
2. Decide whether the offer is "ready" or "needs_info".
3. Draft the email body using the required structure.\
"""

_SECTION_GREETING = "Greeting: Casual, brief, and human. No 'I hope this email finds you well'."
_SECTION_SUMMARY = "The Plan (Project Summary): Bullet points ONLY. Briefly re-state their need and our approach."
_SECTION_QUESTIONS = (
    "Clarifications (Questions): Only the 1-{max_questions} high-impact questions you kept "
    "(rated 8-10). If asking about design, ask for examples or mood boards."
)
_SECTION_TIERS = (
    "The Options (3-Tier Packages): Use a table or clean list. Basic / Pro / Advanced. "
    "Include price if known from the Business Context, otherwise ranges. "
    "Link relevant Portfolio items here."
)
_SECTION_WORKFLOW = "Next Steps (Workflow): 3-4 short numbered steps from kickoff to delivery."
_SECTION_CTA = "Call to Action: One clear single step to proceed."
_SECTION_POSTSCRIPT = "P.S.: A quick value-add or reminder (an upsell that exists in the Business Context)."


# ---------------------------------------------------------------------------
# Service-boundary check
# ---------------------------------------------------------------------------

_COMMITMENT_RE = re.compile(
    r"\b(we will|we'll|we can|we offer|we provide|we deliver|we handle|we include|"
    r"we do|we'd be happy|happy to|glad to|includes?|included|including|"
    r"will (?:deliver|create|produce|provide|handle|include)|"
    r"can (?:deliver|create|produce|provide|handle|do))\b"
)
# Negation only counts when it governs the capability: at most five words
# between the negator and the keyword, no clause punctuation in between.
_BODY_NEGATORS = (
    r"not|don't|doesn't|isn't|aren't|won't|can't|cannot|never|unable to|no longer"
)
_FACT_NEGATORS = _BODY_NEGATORS + r"|no|except|excluding|excludes|excluded"
_DEFERRAL_RE = re.compile(
    r"\b(separately|separate (?:quote|project|conversation)|refer you|"
    r"(?:outside|beyond) (?:of )?(?:our|the) scope|not something we)\b"
)


def _stem(keyword: str) -> str:
    return keyword[:-1] if keyword.endswith("s") else keyword


def _mentioned(keyword: str, haystack: str) -> bool:
    return _stem(keyword) in haystack


def _negated(keyword: str, text: str, negators: str) -> bool:
    pattern = rf"\b(?:{negators})\b(?:\s+[\w'\-]+){{0,5}}?\s+{re.escape(_stem(keyword))}"
    return re.search(pattern, text) is not None


def _supported(keyword: str, facts: Sequence[str]) -> bool:
    """True when some fact names the capability without excluding it."""
    return any(
        _mentioned(keyword, fact) and not _negated(keyword, fact, _FACT_NEGATORS)
        for fact in facts
    )


def _commits_to(keyword: str, sentence: str) -> bool:
    return (
        _mentioned(keyword, sentence)
        and _COMMITMENT_RE.search(sentence) is not None
        and _DEFERRAL_RE.search(sentence) is None
        and not _negated(keyword, sentence, _BODY_NEGATORS)
    )


def find_unsupported_commitments(
    body_markup: str,
    facts: Sequence[str],
    client_request: str,
) -> List[str]:
    """
    Capability keywords the body commits to that the facts do not back.

    A keyword qualifies when it comes from the client request, no fact
    names it outside an exclusion ("We do not offer 3D animation"), and the
    body uses it in a sentence with commitment wording where it is neither
    negated nor deferred.
    """
    lowered_facts = [fact.lower() for fact in facts]
    candidates = [
        kw for kw in extract_keywords(client_request, top_n=25)
        if not _supported(kw, lowered_facts)
    ]
    if not candidates:
        return []

    sentences = split_sentences(strip_markup(body_markup).lower())
    return [
        keyword for keyword in candidates
        if any(_commits_to(keyword, sentence) for sentence in sentences)
    ]


# ---------------------------------------------------------------------------
# OfferDrafter
# ---------------------------------------------------------------------------

class OfferDrafter:
    """Builds the offer instruction contract and validates the answer."""

    OFFER_PROMPT = _OFFER_PROMPT
    USER_TEMPLATE = _USER_TEMPLATE

    def __init__(self, client: GenerationClient) -> None:
        self._client = client
        self.max_questions = settings.MAX_CLARIFYING_QUESTIONS

    # ------------------------------------------------------------------
    # Instruction building
    # ------------------------------------------------------------------

    def section_instructions(self, sections: SectionConfig) -> List[str]:
        """Ordered section list; greeting and call-to-action are always present."""
        wanted = [
            (True, _SECTION_GREETING),
            (sections.include_summary, _SECTION_SUMMARY),
            (sections.include_questions, _SECTION_QUESTIONS.format(max_questions=self.max_questions)),
            (sections.include_tiers, _SECTION_TIERS),
            (sections.include_workflow, _SECTION_WORKFLOW),
            (True, _SECTION_CTA),
            (sections.include_postscript, _SECTION_POSTSCRIPT),
        ]
        return [text for enabled, text in wanted if enabled]

    def build_instructions(self, profile: KnowledgeProfile, sections: SectionConfig) -> str:
        section_lines = self.section_instructions(sections)
        return self.OFFER_PROMPT.format(
            company_name=profile.company_name or "our company",
            tone=profile.brand.tone.value,
            style_examples=_format_examples(profile.style_examples),
            facts=_format_bullets(profile.facts),
            proof_points=_format_bullets(profile.proof_points),
            sections="\n".join(f"{i}. {line}" for i, line in enumerate(section_lines, start=1)),
            tier_clause=(
                " and to give indicative pricing for the packages"
                if sections.include_tiers
                else ""
            ),
            max_questions=self.max_questions,
        )

    def build_user_content(self, client_request: str) -> str:
        return self.USER_TEMPLATE.format(client_request=client_request.strip())

    # ------------------------------------------------------------------
    # Drafting
    # ------------------------------------------------------------------

    async def draft_offer(
        self,
        profile: KnowledgeProfile,
        client_request: str,
        sections: SectionConfig | None = None,
    ) -> OfferDraft:
        """
        Produce a validated OfferDraft.

        Raises:
            OfferGenerationError: the answer is not a valid offer record.
            AuthError / TransportError / EmptyResponseError: backend failure.
        """
        sections = sections or SectionConfig()
        raw = await self._client.generate(
            self.build_instructions(profile, sections),
            self.build_user_content(client_request),
            expect_structured=True,
        )

        try:
            record = parse_record(raw, OFFER_RECORD_FIELDS)
        except MalformedOutputError as exc:
            logger.error("draft_offer: malformed offer record — %s. Preview: %s", exc, exc.preview)
            raise OfferGenerationError(f"Offer generation failed: {exc}", raw_text=raw) from exc

        draft = self._to_draft(record, raw)
        draft.boundary_flags = find_unsupported_commitments(
            draft.body_markup, profile.facts, client_request
        )
        if draft.boundary_flags:
            logger.warning(
                "draft_offer: body commits to capabilities absent from the facts: %s",
                ", ".join(draft.boundary_flags),
            )

        logger.info(
            "draft_offer: status=%s questions=%d facts=%d sections=%s",
            draft.status.value,
            len(draft.clarifying_questions),
            len(profile.facts),
            [k for k, v in sections.model_dump().items() if v],
        )
        return draft

    def _to_draft(self, record: dict, raw: str) -> OfferDraft:
        status_value = record["status"].strip().lower()
        try:
            status = DraftStatus(status_value)
        except ValueError:
            raise OfferGenerationError(
                f"Offer status must be 'ready' or 'needs_info', got {record['status']!r}",
                raw_text=raw,
            )

        subject = record["emailSubject"].strip()
        body = record["emailBody"].strip()
        if not subject or not body:
            raise OfferGenerationError("Offer subject and body must be non-empty", raw_text=raw)

        questions = [q.strip() for q in record["missingClientInfo"] if q.strip()]
        if status is DraftStatus.READY:
            if questions:
                logger.warning(
                    "draft_offer: status=ready with %d question(s) — questions dropped",
                    len(questions),
                )
            questions = []
        else:
            if not questions:
                raise OfferGenerationError(
                    "Offer status is 'needs_info' but no clarifying questions were returned",
                    raw_text=raw,
                )
            if len(questions) > self.max_questions:
                logger.warning(
                    "draft_offer: %d questions returned — keeping the first %d",
                    len(questions),
                    self.max_questions,
                )
                questions = questions[: self.max_questions]

        return OfferDraft(
            status=status,
            subject=subject,
            body_markup=body,
            clarifying_questions=questions,
            rationale=record["rationale"].strip(),
        )


def _format_bullets(items: Sequence[str]) -> str:
    lines = [f"- {item.strip()}" for item in items if item and item.strip()]
    return "\n".join(lines) if lines else _NONE_PROVIDED


def _format_examples(examples: Sequence[str]) -> str:
    blocks = [
        f"--- EXAMPLE {i} ---\n{example}"
        for i, example in enumerate((e for e in examples if e and e.strip()), start=1)
    ]
    return "\n\n".join(blocks) if blocks else _NONE_PROVIDED
