"""Tests for the knowledge audit and its empty-facts fast path."""
import json

import pytest

from app.services.exceptions import AuthError
from app.services.frameworks import GENERAL_FRAMEWORK, VIDEO_SERVICES_FRAMEWORK
from app.services.knowledge_auditor import KnowledgeAuditor
from tests.conftest import FakeGenerationClient


@pytest.mark.asyncio
@pytest.mark.parametrize("facts", [[], ["", "   "]])
async def test_empty_facts_returns_starter_checklist_without_call(facts):
    llm = FakeGenerationClient()
    suggestions = await KnowledgeAuditor(llm).audit_gaps(facts, "Video services")

    assert suggestions == VIDEO_SERVICES_FRAMEWORK.starter_suggestions
    assert len(suggestions) == 3
    assert llm.call_count == 0


@pytest.mark.asyncio
async def test_empty_facts_unknown_industry_returns_general_starter():
    llm = FakeGenerationClient()
    suggestions = await KnowledgeAuditor(llm).audit_gaps([], "Landscaping")

    assert suggestions == ["Start by adding your Core Services and Base Prices."]
    assert suggestions == GENERAL_FRAMEWORK.starter_suggestions
    assert llm.call_count == 0


@pytest.mark.asyncio
async def test_starter_checklist_is_a_copy():
    auditor = KnowledgeAuditor(FakeGenerationClient())
    first = await auditor.audit_gaps([], "Video services")
    first.append("mutated")
    assert "mutated" not in VIDEO_SERVICES_FRAMEWORK.starter_suggestions


@pytest.mark.asyncio
async def test_audit_sends_facts_and_framework():
    llm = FakeGenerationClient('["Define your rush delivery fees"]')
    facts = ["Service: UGC ads", "Pricing: $500 per video"]

    suggestions = await KnowledgeAuditor(llm).audit_gaps(facts, "Video services")

    assert suggestions == ["Define your rush delivery fees"]
    call = llm.calls[0]
    assert call["structured"] is True
    assert "- Service: UGC ads\n- Pricing: $500 per video" in call["user"]
    assert "FRAMEWORK FOR VIDEO SERVICES" in call["system"]
    assert "Video services business" in call["system"]


@pytest.mark.asyncio
async def test_audit_caps_at_five_and_dedupes():
    answer = json.dumps([
        "Define your rush fees",
        "define your rush fees",
        "List payment terms",
        "State turnaround",
        "Add a case study",
        "Set discount rules",
        "Describe capacity limits",
    ])
    llm = FakeGenerationClient(answer)

    suggestions = await KnowledgeAuditor(llm).audit_gaps(["Service: UGC ads"], "Video services")

    assert suggestions == [
        "Define your rush fees",
        "List payment terms",
        "State turnaround",
        "Add a case study",
        "Set discount rules",
    ]


@pytest.mark.asyncio
async def test_malformed_audit_answer_yields_empty_list():
    llm = FakeGenerationClient("You should add pricing.")
    assert await KnowledgeAuditor(llm).audit_gaps(["Service: UGC ads"], "Video services") == []


@pytest.mark.asyncio
async def test_audit_backend_failure_propagates():
    llm = FakeGenerationClient(AuthError("no key"))
    with pytest.raises(AuthError):
        await KnowledgeAuditor(llm).audit_gaps(["Service: UGC ads"], "Video services")


@pytest.mark.asyncio
async def test_each_audit_returns_fresh_list():
    llm = FakeGenerationClient('["List payment terms"]', '["Add a case study"]')
    auditor = KnowledgeAuditor(llm)

    assert await auditor.audit_gaps(["a"], "Video services") == ["List payment terms"]
    assert await auditor.audit_gaps(["a", "b"], "Video services") == ["Add a case study"]
