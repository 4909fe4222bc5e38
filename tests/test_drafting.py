"""
Tests for the Draft Composer.

These tests verify:
1. PROMPT: built from the case contact info and only the caller's messages
2. STORAGE: generated text becomes the next draft version
3. FAILURE: a provider error stores nothing
"""

import json
from uuid import UUID

import httpx
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.core.config import Settings
from caseflow.models import Case, Draft, MessageSender
from caseflow.services.access import AccessPolicy
from caseflow.services.cases import CaseService
from caseflow.services.drafting import DraftComposer
from caseflow.services.errors import AuthorizationDenied, ProviderError
from caseflow.services.llm_provider import LLMProvider
from caseflow.services.templates import CreateTemplateInput, TemplateService


# =============================================================================
# FIXTURES
# =============================================================================


class RecordingLLM:
    """MockTransport handler that records request payloads."""

    def __init__(self, reply: str = "Dear Northwind Traders,\n\nPay up.", status: int = 200):
        self.reply = reply
        self.status = status
        self.payloads: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.payloads.append(json.loads(request.content))
        if self.status != 200:
            return httpx.Response(self.status, json={"error": {"message": "Service overloaded"}})
        return httpx.Response(
            200, json={"choices": [{"message": {"role": "assistant", "content": self.reply}}]}
        )

    def messages(self, index: int = -1) -> dict[str, str]:
        return {m["role"]: m["content"] for m in self.payloads[index]["messages"]}


@pytest.fixture
def settings() -> Settings:
    return Settings(LLM_API_KEY="test-key", LLM_API_BASE_URL="https://llm.test/v1")


@pytest.fixture
def llm() -> RecordingLLM:
    return RecordingLLM()


@pytest.fixture
def composer(
    session: AsyncSession,
    access: AccessPolicy,
    settings: Settings,
    llm: RecordingLLM,
) -> DraftComposer:
    provider = LLMProvider(settings, transport=httpx.MockTransport(llm))
    return DraftComposer(session, provider, access, settings)


# =============================================================================
# TEST: COMPOSE
# =============================================================================


class TestCompose:
    async def test_stores_generated_text_as_next_version(
        self,
        composer: DraftComposer,
        cases: CaseService,
        case: Case,
        user_id: UUID,
        llm: RecordingLLM,
    ):
        await cases.add_message(user_id, case.id, "Invoice 1042 is 90 days overdue.")

        first = await composer.compose(user_id, case.id)
        second = await composer.compose(user_id, case.id, regenerate=True)

        assert first.version_number == 1
        assert second.version_number == 2
        assert second.rendered_content == llm.reply

    async def test_prompt_uses_only_callers_messages(
        self,
        composer: DraftComposer,
        cases: CaseService,
        case: Case,
        user_id: UUID,
        colleague_id: UUID,
        llm: RecordingLLM,
    ):
        await cases.add_member(user_id, case.id, colleague_id)
        await cases.add_message(user_id, case.id, "Invoice 1042 is 90 days overdue.")
        await cases.add_message(user_id, case.id, "Here is a summary.", sender=MessageSender.BOT)
        await cases.add_message(colleague_id, case.id, "Colleague's private note.")

        await composer.compose(user_id, case.id)

        prompt = llm.messages()["user"]
        assert "Invoice 1042 is 90 days overdue." in prompt
        assert "Here is a summary." not in prompt
        assert "Colleague's private note." not in prompt
        assert "- Name: Northwind Traders" in prompt
        assert "- Phone: Not provided" in prompt

    async def test_snapshot_becomes_style_guide(
        self,
        composer: DraftComposer,
        templates: TemplateService,
        case: Case,
        user_id: UUID,
        llm: RecordingLLM,
    ):
        template = await templates.create_template(
            user_id, CreateTemplateInput(name="Demand", content="RE: Outstanding balance")
        )
        snapshot = await templates.get_or_create_snapshot(user_id, case.id, template.id)

        draft = await composer.compose(user_id, case.id, snapshot_id=snapshot.id)

        assert draft.snapshot_id == snapshot.id
        assert "RE: Outstanding balance" in llm.messages()["system"]

    async def test_provider_failure_stores_nothing(
        self,
        session: AsyncSession,
        composer: DraftComposer,
        case: Case,
        user_id: UUID,
        llm: RecordingLLM,
    ):
        llm.status = 503

        with pytest.raises(ProviderError, match="Service overloaded"):
            await composer.compose(user_id, case.id)

        count = await session.execute(
            select(func.count()).select_from(Draft).where(Draft.case_id == case.id)
        )
        assert count.scalar_one() == 0

    async def test_non_member_denied_before_provider_call(
        self,
        composer: DraftComposer,
        case: Case,
        colleague_id: UUID,
        llm: RecordingLLM,
    ):
        with pytest.raises(AuthorizationDenied):
            await composer.compose(colleague_id, case.id)
        assert llm.payloads == []
