"""
Knowledge audit — finds what the knowledge base is still missing.

The current fact list is compared against the industry framework and the
generator is asked for at most five actionable, verb-led suggestions.

Fast path
---------
An empty knowledge base is the common initial state and the audit runs on
every (debounced) edit, so empty facts short-circuit to the industry's fixed
starter checklist: no backend call, instant, deterministic.

Suggestions are transient.  Each call returns a fresh list; nothing is
merged with earlier results.
"""
from __future__ import annotations

import logging
from typing import List, Sequence

from app.config import settings
from app.services.exceptions import MalformedOutputError
from app.services.frameworks import resolve_framework
from app.services.llm_client import GenerationClient
from app.services.output_parser import parse_list

logger = logging.getLogger(__name__)


_AUDIT_PROMPT = """\
You are a Strategic Auditor for a {industry} business.

Target Framework:
{checklist}

Task:
Compare the Current Knowledge Base you are given against the Target Framework.
Identify the top 3-{max_suggestions} most critical missing pieces of information that are \
necessary to generate accurate sales offers.

Output:
A JSON array of strings. Each string must be a specific, actionable suggestion starting \
with a verb (e.g., "Define your rush delivery fees", "List your payment terms for new clients").
Do NOT suggest things that are already present in the knowledge base.
If the profile is very strong, suggest 1 advanced tip (e.g., "Add a specific case study for X").\
"""


class KnowledgeAuditor:
    """Gap analysis of a fact list against an industry checklist."""

    AUDIT_PROMPT = _AUDIT_PROMPT

    def __init__(self, client: GenerationClient) -> None:
        self._client = client
        self.max_suggestions = settings.MAX_AUDIT_SUGGESTIONS

    def starter_suggestions(self, industry: str) -> List[str]:
        """Fixed checklist returned for an empty knowledge base."""
        return list(resolve_framework(industry).starter_suggestions)

    async def audit_gaps(self, facts: Sequence[str], industry: str) -> List[str]:
        """
        Return 0-5 prioritized suggestions for *facts* in *industry*.

        Parse failures degrade to ``[]``; backend failures propagate.
        """
        present = [f.strip() for f in facts or [] if f and f.strip()]
        if not present:
            logger.debug("audit_gaps: empty knowledge base — starter checklist for %r", industry)
            return self.starter_suggestions(industry)

        framework = resolve_framework(industry)
        instructions = self.AUDIT_PROMPT.format(
            industry=industry or "small",
            checklist=framework.checklist,
            max_suggestions=self.max_suggestions,
        )
        user_content = "Current Knowledge Base (Facts provided so far):\n" + "\n".join(
            f"- {fact}" for fact in present
        )

        raw = await self._client.generate(instructions, user_content, expect_structured=True)
        try:
            suggestions = parse_list(raw)
        except MalformedOutputError as exc:
            logger.warning("audit_gaps: discarding malformed output — %s. Preview: %s", exc, exc.preview)
            return []

        result = self._dedupe(suggestions)[: self.max_suggestions]
        logger.info(
            "audit_gaps: %d suggestion(s) for %d fact(s) (framework=%s)",
            len(result),
            len(present),
            framework.name,
        )
        return result

    @staticmethod
    def _dedupe(items: List[str]) -> List[str]:
        seen: set = set()
        unique: List[str] = []
        for item in items:
            key = item.lower()
            if key in seen:
                continue
            seen.add(key)
            unique.append(item)
        return unique
