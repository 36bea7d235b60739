"""
Industry checklists used to steer fact extraction and the knowledge audit.

A "known vertical" has a five-category framework (services/deliverables,
pricing system, timeline/capacity, creative identity, process/policies) and
its own starter checklist for empty profiles.  Everything else falls back to
the general framework.
"""
from __future__ import annotations

import dataclasses
from typing import Dict, List, Optional

VIDEO_SERVICES = "Video services"


@dataclasses.dataclass(frozen=True)
class IndustryFramework:
    """Checklist for one vertical."""

    name: str
    checklist: str
    starter_suggestions: List[str]
    specialist_role: str = "Business Analyst"


_VIDEO_SERVICES_CHECKLIST = """\
FRAMEWORK FOR VIDEO SERVICES:
1. Services & Deliverables:
   - Core services (e.g., Paid Ads, UGC, Explainers)
   - Deliverables (Lengths 6s-60s, Ratios 9:16/16:9, Revisions, Scripts, Raw footage rules)
   - Exclusions/Red Lines (What is NOT offered)

2. Pricing System:
   - Base prices for specific services
   - Add-on prices (Rush, Source files, Voiceover)
   - Discount rules (Max %, Bundle logic)

3. Production Timeline & Capacity:
   - Standard timeline steps (Concept -> Delivery)
   - Rush options & Fees
   - Weekly/Monthly capacity limits

4. Creative Identity:
   - Visual aesthetic styles
   - Unique selling points/Strengths
   - Case study details (Problem -> Solution)

5. Process & Policies:
   - Onboarding steps (Brief -> Contract -> Deposit)
   - Payment terms (Deposit %, Refund rules)
   - Scope boundaries (What counts as extra)\
"""

_GENERAL_CHECKLIST = """\
GENERAL BUSINESS FRAMEWORK:
1. Services & Deliverables (what is offered, what is explicitly not offered)
2. Pricing (base prices, add-ons, discount rules)
3. Timeline & Capacity (standard turnaround, rush options, limits)
4. Identity (strengths, differentiators, proof of past work)
5. Operations & Policies (onboarding, payment terms, scope boundaries)\
"""

VIDEO_SERVICES_FRAMEWORK = IndustryFramework(
    name=VIDEO_SERVICES,
    checklist=_VIDEO_SERVICES_CHECKLIST,
    starter_suggestions=[
        "List your Core Services (e.g., 'UGC Ads', 'Event Coverage')",
        "Define your Base Pricing (e.g., 'Starting at $500')",
        "State your Standard Turnaround Time (e.g., '5-7 business days')",
    ],
    specialist_role="Specialized Consultant for a Video Production Agency",
)

GENERAL_FRAMEWORK = IndustryFramework(
    name="General",
    checklist=_GENERAL_CHECKLIST,
    starter_suggestions=["Start by adding your Core Services and Base Prices."],
)

_KNOWN_VERTICALS: Dict[str, IndustryFramework] = {
    VIDEO_SERVICES.lower(): VIDEO_SERVICES_FRAMEWORK,
}


def find_vertical(industry: Optional[str]) -> Optional[IndustryFramework]:
    """Return the vertical framework for *industry*, or None if it is not a known one."""
    if not industry:
        return None
    return _KNOWN_VERTICALS.get(industry.strip().lower())


def resolve_framework(industry: Optional[str]) -> IndustryFramework:
    """Vertical framework when known, general framework otherwise."""
    return find_vertical(industry) or GENERAL_FRAMEWORK
