"""
Tests for Finance Pro models

Test strategy:
1. Unit tests for individual components (models, parser, stores)
2. Flow tests with fake model and fake stores
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from finance_pro.models.transaction import (
    ChatMessage,
    ChatRole,
    ExtractionResult,
    ExtractionStatus,
    Transaction,
    TransactionKind,
    UserInput,
    parse_instant,
)
from finance_pro.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


def _payload(**overrides):
    data = {
        "valor": 150.00,
        "categoria": "Gastronomia",
        "descricao": "Jantar no Fasano",
        "tipo": "despesa",
        "timestamp": "2023-10-27T20:00:00Z",
    }
    data.update(overrides)
    return data


class TestTransactionModel:
    """Tests for the Transaction model."""

    def test_transaction_from_contract_keys(self):
        """Portuguese contract keys populate the English attributes."""
        tx = Transaction.model_validate(_payload())
        assert tx.amount == Decimal("150.0")
        assert tx.category == "Gastronomia"
        assert tx.description == "Jantar no Fasano"
        assert tx.kind == TransactionKind.EXPENSE
        assert tx.is_expense
        assert not tx.is_income

    def test_transaction_gets_fresh_id(self):
        """Every new transaction gets its own id."""
        first = Transaction.model_validate(_payload())
        second = Transaction.model_validate(_payload())
        assert first.id
        assert first.id != second.id

    @pytest.mark.parametrize("amount", [0, -10, Decimal("-0.01")])
    def test_transaction_rejects_non_positive_amount(self, amount):
        """Amounts must be strictly positive."""
        with pytest.raises(ValidationError):
            Transaction.model_validate(_payload(valor=amount))

    @pytest.mark.parametrize("amount", ["50", True, None])
    def test_transaction_rejects_non_number_amount(self, amount):
        """valor must be a JSON number."""
        with pytest.raises(ValidationError):
            Transaction.model_validate(_payload(valor=amount))

    def test_float_amount_keeps_written_precision(self):
        """0.1 stays 0.1, not a binary float expansion."""
        tx = Transaction.model_validate(_payload(valor=0.1))
        assert tx.amount == Decimal("0.1")

    def test_transaction_rejects_unknown_kind(self):
        """tipo is one of the two literals."""
        with pytest.raises(ValidationError):
            Transaction.model_validate(_payload(tipo="transferencia"))

    def test_transaction_rejects_invalid_timestamp(self):
        """timestamp must be a real ISO instant."""
        with pytest.raises(ValidationError):
            Transaction.model_validate(_payload(timestamp="ontem à noite"))

    def test_transaction_rejects_non_string_category(self):
        with pytest.raises(ValidationError):
            Transaction.model_validate(_payload(categoria=42))

    def test_transaction_is_frozen(self):
        """Transactions are never edited."""
        tx = Transaction.model_validate(_payload())
        with pytest.raises(ValidationError):
            tx.category = "Lazer"

    def test_to_record_uses_contract_keys(self):
        """Persisted shape is the model's JSON plus the id."""
        tx = Transaction.model_validate(_payload())
        record = tx.to_record()
        assert set(record) == {"id", "valor", "categoria", "descricao", "tipo", "timestamp"}
        assert record["valor"] == 150
        assert isinstance(record["valor"], int)
        assert record["tipo"] == "despesa"
        assert record["timestamp"] == "2023-10-27T20:00:00Z"

    def test_to_record_keeps_fractional_amount(self):
        tx = Transaction.model_validate(_payload(valor=Decimal("12.5")))
        assert tx.to_record()["valor"] == 12.5

    def test_record_round_trip(self):
        """A stored record loads back into an equal transaction."""
        tx = Transaction.model_validate(_payload(tipo="receita", valor=3000))
        assert Transaction.model_validate(tx.to_record()) == tx

    def test_occurred_at_understands_z_suffix(self):
        tx = Transaction.model_validate(_payload())
        assert tx.occurred_at.utcoffset().total_seconds() == 0
        assert tx.occurred_at.hour == 20

    def test_parse_instant_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_instant("not a date")


class TestChatModels:
    """Tests for chat messages and pipeline values."""

    def test_chat_message_round_trip_with_transaction(self):
        """Timestamps come back as datetimes and the transaction is kept."""
        tx = Transaction.model_validate(_payload())
        message = ChatMessage(
            role=ChatRole.ASSISTANT,
            content="✅ Registrado!",
            transaction=tx,
        )
        record = message.to_record()
        assert record["metadata"]["categoria"] == "Gastronomia"
        assert isinstance(record["timestamp"], str)

        loaded = ChatMessage.model_validate(record)
        assert isinstance(loaded.timestamp, datetime)
        assert loaded.timestamp == message.timestamp
        assert loaded.transaction == tx

    def test_chat_message_without_transaction(self):
        message = ChatMessage(role=ChatRole.USER, content="gastei 50 no almoço")
        assert message.to_record()["metadata"] is None

    def test_user_input_text(self):
        user_input = UserInput.from_text("gastei 50")
        assert not user_input.is_audio

    def test_user_input_audio(self):
        user_input = UserInput.from_audio(b"OggS", "audio/ogg")
        assert user_input.is_audio
        assert user_input.mime_type == "audio/ogg"

    def test_user_input_requires_exactly_one_payload(self):
        with pytest.raises(ValidationError):
            UserInput()
        with pytest.raises(ValidationError):
            UserInput(text="oi", audio=b"OggS", mime_type="audio/ogg")

    def test_user_input_audio_requires_mime_type(self):
        with pytest.raises(ValidationError):
            UserInput(audio=b"OggS")

    def test_extraction_result_has_candidate(self):
        tx = Transaction.model_validate(_payload())
        assert ExtractionResult(reply_text="ok", candidate=tx).has_candidate
        result = ExtractionResult(
            reply_text="Qual foi o valor?",
            status=ExtractionStatus.NO_BLOCK_FOUND,
        )
        assert not result.has_candidate

    def test_default_timestamps_are_utc_aware(self):
        message = ChatMessage(role=ChatRole.USER, content="oi")
        event = AuditEvent(
            event_type=AuditEventType.MESSAGE_RECEIVED,
            description="Text message received",
        )

        assert message.timestamp.utcoffset() == timedelta(0)
        assert event.timestamp.utcoffset() == timedelta(0)

    def test_precise_amount_survives_record_round_trip(self):
        tx = Transaction.model_validate(_payload(valor=Decimal("12345678901234567.89")))

        record = tx.to_record()

        assert record["valor"] == "12345678901234567.89"
        assert Transaction.from_record(record) == tx


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.MESSAGE_RECEIVED,
            description="Text message received",
        )
        assert event.event_type == AuditEventType.MESSAGE_RECEIVED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            description="Transaction saved",
            channel="telegram",
            details={"category": "Lazer", "amount": "50"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_saved"
        assert log_dict["channel"] == "telegram"
        assert log_dict["details"]["category"] == "Lazer"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.HISTORY_CLEARED,
            description="User cleared history",
            channel="web",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 12  # Expected number of columns
        assert row[2] == "history_cleared"  # event_type
        assert row[7] == "web"  # channel
        assert row[11] == "True"  # is_user_action

    def test_audit_event_builder_message_received(self):
        """Test AuditEventBuilder.message_received."""
        correlation_id = uuid4()

        event = AuditEventBuilder.message_received(
            channel="telegram",
            is_audio=True,
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.MESSAGE_RECEIVED
        assert event.correlation_id == correlation_id
        assert event.details["is_audio"] is True
        assert event.is_user_action is True

    def test_audit_event_builder_save_failed(self):
        """Test AuditEventBuilder.save_failed."""
        event = AuditEventBuilder.save_failed(
            transaction_id="tx-1",
            channel="whatsapp_text",
            error_message="quota exceeded",
            correlation_id=None,
        )

        assert event.event_type == AuditEventType.SAVE_FAILED
        assert event.severity == AuditSeverity.ERROR
        assert event.entity_id == "tx-1"
        assert event.error_message == "quota exceeded"

    def test_audit_event_builder_configuration_error(self):
        event = AuditEventBuilder.configuration_error(["GEMINI_API_KEY"])
        assert event.severity == AuditSeverity.CRITICAL
        assert event.details["missing"] == ["GEMINI_API_KEY"]
