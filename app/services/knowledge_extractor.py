"""
Knowledge extraction stages: free text -> atomic facts / proof points.

All prompts are module-level constants so they can be tuned without touching
logic code.

Public API
----------
KnowledgeExtractor.extract_facts(text, industry=None) -> List[str]
KnowledgeExtractor.extract_case_studies(text)         -> List[str]

Both stages are forgiving about *shape*: a malformed generator answer is
logged and turned into an empty list, so the caller simply sees nothing new.
Credential, transport and empty-response failures still propagate.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from app.services.exceptions import MalformedOutputError
from app.services.frameworks import find_vertical
from app.services.llm_client import GenerationClient
from app.services.output_parser import parse_list

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

_FACTS_PROMPT = """\
You are a Business Analyst.
Extract distinct, factual business rules, services, pricing models, constraints, \
and key selling points from the text you are given.
Each item must be a concise, standalone fact that still makes sense on its own.
Return them as a flat JSON array of strings.\
"""

_VERTICAL_FACTS_PROMPT = """\
You are a {specialist_role}.
Your goal is to extract business facts from the text, specifically mapping to this framework:

{checklist}

INSTRUCTIONS:
1. Analyze the input text.
2. Extract specific facts that answer the questions in the FRAMEWORK above.
3. Format each fact clearly with its category \
(e.g., "Service: We do not offer 3D animation", "Pricing: Rush fee is +30%", \
"Process: 50% deposit required").
4. If the text contains information not in the framework but relevant to the business, \
include it as well.
5. Do not hallucinate facts. Only extract what is explicitly stated or strongly implied in the text.
6. Return a flat JSON array of strings.\
"""

_CASE_STUDY_PROMPT = """\
You are a Portfolio Curator.
Extract case studies, past project examples, client names, and links from the text.
Format them into concise, punchy "Proof Points" that a salesperson can use.

Structure: "Client/Project Name: [What was done] - [Result/Outcome] ([Link if present])"
Omit the parenthesised link when the text has none.
Return them as a flat JSON array of strings.\
"""

_INPUT_TEMPLATE = """\
Input Text:
\"\"\"
{text}
\"\"\"\
"""


class KnowledgeExtractor:
    """Turns one blob of free text into knowledge-base entries."""

    FACTS_PROMPT = _FACTS_PROMPT
    VERTICAL_FACTS_PROMPT = _VERTICAL_FACTS_PROMPT
    CASE_STUDY_PROMPT = _CASE_STUDY_PROMPT

    def __init__(self, client: GenerationClient) -> None:
        self._client = client

    def facts_instructions(self, industry: Optional[str] = None) -> str:
        """System instructions for fact extraction, vertical-specific when known."""
        vertical = find_vertical(industry)
        if vertical is None:
            return self.FACTS_PROMPT
        return self.VERTICAL_FACTS_PROMPT.format(
            specialist_role=vertical.specialist_role,
            checklist=vertical.checklist,
        )

    async def extract_facts(self, text: str, industry: Optional[str] = None) -> List[str]:
        """
        Extract atomic facts (services, pricing, constraints, selling points).

        Returns ``[]`` for blank input (no call) or when the generator's answer
        is not a JSON array of strings.
        """
        if not text or not text.strip():
            return []

        facts = await self._extract_list(
            "extract_facts", self.facts_instructions(industry), text
        )
        logger.info("extract_facts: %d fact(s) (industry=%r)", len(facts), industry)
        return facts

    async def extract_case_studies(self, text: str) -> List[str]:
        """Extract proof points in the fixed "Client: what - result (link)" template."""
        if not text or not text.strip():
            return []

        proof_points = await self._extract_list(
            "extract_case_studies", self.CASE_STUDY_PROMPT, text
        )
        logger.info("extract_case_studies: %d proof point(s)", len(proof_points))
        return proof_points

    async def _extract_list(self, stage: str, instructions: str, text: str) -> List[str]:
        raw = await self._client.generate(
            instructions,
            _INPUT_TEMPLATE.format(text=text.strip()),
            expect_structured=True,
        )
        try:
            return parse_list(raw)
        except MalformedOutputError as exc:
            logger.warning("%s: discarding malformed output — %s. Preview: %s", stage, exc, exc.preview)
            return []
