"""
Transaction Extraction Agent

DESIGN DECISION: The LLM is a TRANSLATOR, not a bookkeeper.
It turns an informal message ("gastei 50 no almoço") into a fenced JSON
block plus a short confirmation. Everything after the model call is
deterministic: the parser decides whether a candidate exists, and only
the orchestrator decides whether it is stored.

CRITICAL BOUNDARIES:
- CAN: read the recent transaction history to answer "how am I doing?"
- CANNOT: persist anything
- CANNOT: show technical errors to the user (fixed apology instead)

One non-streaming call per turn, no retry. A failed call is the
user's cue to repeat the message.
"""

import json
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence
from uuid import UUID

import google.generativeai as genai
import structlog

from finance_pro.audit.logger import AuditLogger
from finance_pro.config import GeminiSettings
from finance_pro.config.prompts import DEFAULT_PROMPT, PromptTemplate
from finance_pro.models.audit import AuditEventType
from finance_pro.models.transaction import (
    ExtractionResult,
    ExtractionStatus,
    Transaction,
    UserInput,
)
from finance_pro.parsing import parse

logger = structlog.get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 15
# Hard ceiling on context size, whatever the caller asks for
MAX_HISTORY_LIMIT = 15


def create_generative_model(
    settings: GeminiSettings,
    prompt: PromptTemplate = DEFAULT_PROMPT,
) -> genai.GenerativeModel:
    """
    Build the Gemini model handle for the extraction agent.

    The system instruction and temperature are fixed for the lifetime
    of the handle.
    """
    genai.configure(api_key=settings.api_key)
    return genai.GenerativeModel(
        model_name=settings.model_name,
        system_instruction=prompt.system_instruction,
        generation_config={
            "temperature": settings.temperature,  # Low temperature for consistent JSON
            "max_output_tokens": settings.max_tokens,
        },
    )


class TransactionExtractionAgent:
    """
    AI agent that extracts one transaction per user message.

    RESPONSIBILITIES:
    - Build the prompt (history context + message, or audio + instruction)
    - Make a single model call
    - Hand the raw reply to the parser

    BOUNDARIES:
    - NEVER persists data
    - NEVER retries a failed call
    - NEVER leaks exception text to the user
    """

    def __init__(
        self,
        model: Any,
        prompt: PromptTemplate = DEFAULT_PROMPT,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        model_name: str = "gemini",
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            model: Object with an async generate_content_async(contents)
                   returning something with a .text attribute
                   (a genai.GenerativeModel in production).
            prompt: Extraction contract and fixed replies
            history_limit: How many recent transactions go into the context,
                capped at MAX_HISTORY_LIMIT
            model_name: Used in audit events only
            audit_logger: Where pipeline events are recorded
            clock: Source of "now" for transactions without a timestamp
        """
        self._model = model
        self._prompt = prompt
        self._history_limit = max(0, min(history_limit, MAX_HISTORY_LIMIT))
        self._model_name = model_name
        self._audit = audit_logger or AuditLogger()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_settings(
        cls,
        settings: GeminiSettings,
        audit_logger: Optional[AuditLogger] = None,
        prompt: PromptTemplate = DEFAULT_PROMPT,
    ) -> "TransactionExtractionAgent":
        return cls(
            model=create_generative_model(settings, prompt),
            prompt=prompt,
            history_limit=settings.history_limit,
            model_name=settings.model_name,
            audit_logger=audit_logger,
        )

    @property
    def prompt(self) -> PromptTemplate:
        return self._prompt

    def build_history_context(self, history: Sequence[Transaction]) -> str:
        """
        Serialize the most recent transactions for the model.

        history is most-recent-first, so the head of the list is what
        the user did last.
        """
        recent = list(history)[:self._history_limit]
        if not recent:
            return self._prompt.no_history_context
        payload = json.dumps(
            [tx.to_record() for tx in recent],
            ensure_ascii=False,
        )
        return f"{self._prompt.history_context_header}\n{payload}"

    def build_contents(
        self,
        user_input: UserInput,
        history: Sequence[Transaction] = (),
    ) -> list:
        """
        Contents for a single generate_content call.

        Text: one prompt string with the context and the quoted message.
        Audio: the inline audio part followed by the audio instruction.
        """
        context = self.build_history_context(history)

        if user_input.is_audio:
            return [
                {"mime_type": user_input.mime_type, "data": user_input.audio},
                f"Contexto do Usuário:\n{context}\n\n{self._prompt.audio_instruction}",
            ]

        return [
            f"Contexto do Usuário:\n{context}\n\n"
            f"Mensagem do Usuário: \"{user_input.text}\""
        ]

    async def process_message(
        self,
        user_input: UserInput,
        history: Sequence[Transaction] = (),
        channel: str = "web",
        correlation_id: Optional[UUID] = None,
    ) -> ExtractionResult:
        """
        Run one extraction turn.

        Never raises for model or parsing problems; the outcome is in
        result.status and result.reply_text is always safe to show.
        """
        contents = self.build_contents(user_input, history)

        try:
            response = await self._model.generate_content_async(contents)
            raw_text = response.text or ""
        except Exception as e:
            logger.warning(
                "model_call_failed",
                channel=channel,
                error=str(e),
            )
            await self._audit.log_model_call_failed(
                model_name=self._model_name,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return ExtractionResult(
                reply_text=self._prompt.apology_for(channel),
                status=ExtractionStatus.MODEL_ERROR,
                detail=str(e),
            )

        result = parse(
            raw_text,
            now=self._clock(),
            clarification_message=self._prompt.clarification_message,
        )
        await self._record_outcome(result, raw_text, correlation_id)
        return result

    async def _record_outcome(
        self,
        result: ExtractionResult,
        raw_text: str,
        correlation_id: Optional[UUID],
    ) -> None:
        if result.status == ExtractionStatus.PARSED:
            tx = result.candidate
            await self._audit.log_transaction_extracted(
                transaction_id=tx.id,
                kind=tx.kind.value,
                amount=str(tx.amount),
                category=tx.category,
                correlation_id=correlation_id,
            )
        elif result.status == ExtractionStatus.NO_BLOCK_FOUND:
            await self._audit.log_no_block_found(
                reply_length=len(raw_text),
                correlation_id=correlation_id,
            )
        elif result.status == ExtractionStatus.MALFORMED_JSON:
            await self._audit.log_parse_failed(
                event_type=AuditEventType.MALFORMED_JSON,
                error_message=result.detail or "",
                correlation_id=correlation_id,
            )
        elif result.status == ExtractionStatus.SCHEMA_MISMATCH:
            await self._audit.log_parse_failed(
                event_type=AuditEventType.SCHEMA_MISMATCH,
                error_message=result.detail or "",
                correlation_id=correlation_id,
            )
