"""
Tests for the extraction agent (fake Gemini model, no network).
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone

from finance_pro.agents import TransactionExtractionAgent
from finance_pro.config.prompts import (
    APOLOGY_MESSAGES,
    AUDIO_INSTRUCTION,
    DEFAULT_PROMPT,
    HISTORY_CONTEXT_HEADER,
    NO_HISTORY_CONTEXT,
)
from finance_pro.models.audit import AuditEventType
from finance_pro.models.transaction import ExtractionStatus, UserInput

from conftest import FakeModel, make_transaction


def _history(count):
    """Most recent first: index 0 is the newest."""
    start = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)
    return [
        make_transaction(
            amount=str(index + 1),
            description=f"compra {index}",
            timestamp=(start - timedelta(hours=index)).isoformat(),
        )
        for index in range(count)
    ]


class TestPromptBuilding:
    """What the agent sends to the model."""

    def test_no_history_sentence(self):
        agent = TransactionExtractionAgent(FakeModel())
        assert agent.build_history_context([]) == NO_HISTORY_CONTEXT

    def test_history_is_bounded_to_most_recent(self):
        """Only the 15 newest transactions are sent."""
        history = _history(20)
        agent = TransactionExtractionAgent(FakeModel())

        context = agent.build_history_context(history)

        assert context.startswith(HISTORY_CONTEXT_HEADER)
        sent = json.loads(context[len(HISTORY_CONTEXT_HEADER):])
        assert len(sent) == 15
        assert [item["id"] for item in sent] == [tx.id for tx in history[:15]]

    def test_history_limit_is_configurable(self):
        agent = TransactionExtractionAgent(FakeModel(), history_limit=3)
        context = agent.build_history_context(_history(5))
        sent = json.loads(context[len(HISTORY_CONTEXT_HEADER):])
        assert len(sent) == 3

    def test_history_limit_is_capped_at_fifteen(self):
        """A larger limit still sends at most the 15 newest."""
        history = _history(40)
        agent = TransactionExtractionAgent(FakeModel(), history_limit=40)

        sent = json.loads(agent.build_history_context(history)[len(HISTORY_CONTEXT_HEADER):])

        assert [item["id"] for item in sent] == [tx.id for tx in history[:15]]

    def test_history_keeps_non_ascii(self):
        agent = TransactionExtractionAgent(FakeModel())
        context = agent.build_history_context(_history(1))
        assert "Alimentação" in context

    def test_text_contents(self):
        agent = TransactionExtractionAgent(FakeModel())
        contents = agent.build_contents(UserInput.from_text("gastei 50 no almoço"))

        assert len(contents) == 1
        assert NO_HISTORY_CONTEXT in contents[0]
        assert '"gastei 50 no almoço"' in contents[0]

    def test_audio_contents(self):
        """Audio goes inline with its MIME type, followed by the instruction."""
        agent = TransactionExtractionAgent(FakeModel())
        contents = agent.build_contents(UserInput.from_audio(b"OggS-bytes", "audio/ogg"))

        assert contents[0] == {"mime_type": "audio/ogg", "data": b"OggS-bytes"}
        assert AUDIO_INSTRUCTION in contents[1]


class TestProcessMessage:
    """One full extraction turn."""

    def test_successful_extraction(self, audit_logger, audit_storage):
        model = FakeModel()
        agent = TransactionExtractionAgent(model, audit_logger=audit_logger)

        result = asyncio.run(agent.process_message(UserInput.from_text("almoço 50")))

        assert result.status == ExtractionStatus.PARSED
        assert result.candidate.category == "Alimentação"
        assert len(model.calls) == 1
        assert AuditEventType.TRANSACTION_EXTRACTED in audit_storage.event_types

    def test_history_reaches_the_model(self):
        model = FakeModel()
        agent = TransactionExtractionAgent(model)
        history = _history(2)

        asyncio.run(agent.process_message(UserInput.from_text("como estou?"), history))

        assert history[0].id in model.calls[0][0]

    def test_model_error_returns_channel_apology(self, audit_logger, audit_storage):
        """Errors are never shown to the user and never retried."""
        model = FakeModel(error=RuntimeError("503 upstream"))
        agent = TransactionExtractionAgent(model, audit_logger=audit_logger)

        result = asyncio.run(agent.process_message(
            UserInput.from_text("almoço 50"),
            channel="telegram",
        ))

        assert result.status == ExtractionStatus.MODEL_ERROR
        assert result.candidate is None
        assert result.reply_text == APOLOGY_MESSAGES["telegram"]
        assert "503" not in result.reply_text
        assert len(model.calls) == 1
        assert audit_storage.event_types == [AuditEventType.MODEL_CALL_FAILED]

    def test_blocked_response_is_a_model_error(self):
        """response.text raises when the model returned no text part."""
        class BlockedResponse:
            @property
            def text(self):
                raise ValueError("response was blocked")

        class BlockedModel(FakeModel):
            async def generate_content_async(self, contents):
                self.calls.append(contents)
                return BlockedResponse()

        agent = TransactionExtractionAgent(BlockedModel())
        result = asyncio.run(agent.process_message(UserInput.from_text("oi")))

        assert result.status == ExtractionStatus.MODEL_ERROR
        assert result.reply_text == DEFAULT_PROMPT.apology_for("web")

    def test_unknown_channel_gets_web_apology(self):
        agent = TransactionExtractionAgent(FakeModel(error=TimeoutError()))
        result = asyncio.run(agent.process_message(
            UserInput.from_text("oi"),
            channel="sms",
        ))
        assert result.reply_text == APOLOGY_MESSAGES["web"]

    def test_no_block_is_audited(self, audit_logger, audit_storage):
        agent = TransactionExtractionAgent(
            FakeModel(text="Qual foi o valor?"),
            audit_logger=audit_logger,
        )

        result = asyncio.run(agent.process_message(UserInput.from_text("gastei")))

        assert result.reply_text == "Qual foi o valor?"
        assert audit_storage.event_types == [AuditEventType.NO_BLOCK_FOUND]

    def test_schema_mismatch_is_audited(self, audit_logger, audit_storage):
        raw = '```json\n{"valor": 0, "categoria": "x", "descricao": "", "tipo": "despesa"}\n```'
        agent = TransactionExtractionAgent(FakeModel(text=raw), audit_logger=audit_logger)

        result = asyncio.run(agent.process_message(UserInput.from_text("zero")))

        assert result.status == ExtractionStatus.SCHEMA_MISMATCH
        assert audit_storage.event_types == [AuditEventType.SCHEMA_MISMATCH]

    def test_clock_fills_missing_timestamp(self):
        now = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        raw = '```json\n{"valor": 10, "categoria": "Café", "descricao": "", "tipo": "despesa"}\n```'
        agent = TransactionExtractionAgent(FakeModel(text=raw), clock=lambda: now)

        result = asyncio.run(agent.process_message(UserInput.from_text("café 10")))

        assert result.candidate.occurred_at == now
