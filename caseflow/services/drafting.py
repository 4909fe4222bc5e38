"""Draft composer: turns a case's context into generated letter text and a new draft version."""

import logging
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, get_settings
from ..models import Case, CaseMessage, CaseTemplateSnapshot, Draft, MessageSender
from .access import AccessPolicy
from .cases import CaseService
from .draft_engine import DraftEngine
from .errors import ProviderError
from .llm_provider import LLMProvider, TextGenerationOptions
from .templates import TemplateService
from .tenant_directory import TenantDirectory

logger = logging.getLogger(__name__)


class DraftComposer:
    """
    Builds a demand-letter prompt and stores the result as a new version.

    Inputs to the prompt:
    - the case's contact information
    - the caller's own user messages on the case (never other members')
    - an optional template snapshot used as a style guide
    """

    SYSTEM_PROMPT = """You are an expert legal assistant specializing in drafting professional demand letters.
Your task is to create a clear, professional, and legally sound demand letter based on the information provided
in the conversation and the case contact information.

Guidelines for the demand letter:
1. Use formal, professional language
2. Clearly state the facts and legal basis for the demand
3. Specify the exact amount or action being demanded
4. Include a reasonable deadline for response (typically 10-30 days)
5. Mention potential legal consequences if the demand is not met
6. Maintain a professional but firm tone
7. Include all relevant details from the conversation
8. Structure the letter with proper formatting (date, recipient, subject, body, closing)
9. Use the exact contact information provided in the case details"""

    TEMPLATE_GUIDE = """

IMPORTANT: Use the following template as a style and format guide for your output.
The template shows the structure, tone, and sections you should follow. Generate a complete letter
using the actual information from the case details and conversation. Do not use placeholder text.

TEMPLATE (use as style guide):
{content}"""

    CONTACT_FIELDS = (
        ("Your Information", (
            ("Name", "yourName"),
            ("Address", "yourAddress"),
            ("Phone", "yourPhone"),
            ("Email", "yourEmail"),
        )),
        ("Recipient Information", (
            ("Name", "recipientName"),
            ("Title", "recipientTitle"),
            ("Company", "recipientCompany"),
            ("Address", "recipientAddress"),
        )),
    )

    def __init__(
        self,
        session: AsyncSession,
        provider: LLMProvider | None = None,
        access: AccessPolicy | None = None,
        settings: Settings | None = None,
    ):
        self._settings = settings or get_settings()
        access = access or AccessPolicy(session, TenantDirectory(session))
        self._cases = CaseService(session, access)
        self._templates = TemplateService(session, access)
        self._engine = DraftEngine(session, access, self._settings)
        self._provider = provider or LLMProvider(self._settings)

    async def compose(
        self,
        caller_id: UUID,
        case_id: UUID,
        snapshot_id: UUID | None = None,
        regenerate: bool = False,
    ) -> Draft:
        """
        Generate letter text for a case and store it as the next version.

        Flow:
        1. Load the case and the caller's messages (access-checked)
        2. Load the snapshot, if one was chosen
        3. Call the text-generation provider
        4. Store the text through DraftEngine.generate / regenerate

        A ProviderError propagates and nothing is stored.
        """
        case = await self._cases.get_case(caller_id, case_id)
        messages = await self._cases.list_messages(caller_id, case_id)

        snapshot = None
        if snapshot_id is not None:
            snapshot = await self._templates.get_snapshot(caller_id, snapshot_id)

        options = TextGenerationOptions(
            model=self._settings.llm_model,
            temperature=self._settings.llm_temperature,
            max_tokens=self._settings.llm_max_tokens,
            system_prompt=self.build_system_prompt(snapshot),
        )

        try:
            text = await self._provider.generate(self.build_prompt(case, messages, snapshot), options)
        except ProviderError as e:
            logger.error(f"Draft composition failed for case {case_id}: {e}")
            raise

        if regenerate:
            return await self._engine.regenerate(caller_id, case_id, text, snapshot_id)
        return await self._engine.generate(caller_id, case_id, text, snapshot_id)

    def build_system_prompt(self, snapshot: CaseTemplateSnapshot | None = None) -> str:
        if snapshot is not None and snapshot.content:
            return self.SYSTEM_PROMPT + self.TEMPLATE_GUIDE.format(content=snapshot.content)
        return self.SYSTEM_PROMPT + "\n\nFormat the response as a complete, ready-to-use demand letter."

    def build_prompt(
        self,
        case: Case,
        messages: Sequence[CaseMessage],
        snapshot: CaseTemplateSnapshot | None = None,
    ) -> str:
        lines = ["Please generate a legal demand letter based on the following information:", ""]

        contact = self._format_contact_info(case.contact_info)
        if contact:
            lines.extend([contact, ""])

        conversation = "\n\n".join(
            message.text for message in messages if message.sender == MessageSender.USER
        )
        lines.append("CONVERSATION HISTORY:")
        lines.append(conversation or "No conversation history provided.")
        lines.append("")

        if snapshot is not None:
            lines.append(
                "Use the provided template as a style and format guide. Do not include "
                "placeholder text; use the real information provided above."
            )
        else:
            lines.append(
                "Please create a comprehensive demand letter that incorporates all relevant "
                "information from the case details and conversation. Use the exact contact "
                "information provided in the case details."
            )
        return "\n".join(lines)

    def _format_contact_info(self, contact_info: dict[str, Any] | None) -> str:
        if not contact_info:
            return ""

        lines = ["CASE CONTACT INFORMATION:"]
        for heading, fields in self.CONTACT_FIELDS:
            lines.append("")
            lines.append(f"{heading}:")
            for label, key in fields:
                lines.append(f"- {label}: {contact_info.get(key) or 'Not provided'}")
        return "\n".join(lines)
