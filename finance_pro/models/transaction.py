"""
Core Data Models for Finance Pro

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce the extraction contract at runtime
2. Provide clear validation error messages
3. Serialize to exactly the JSON shape the model is asked to emit
4. Support the audit trail

DESIGN DECISION: Transactions use English attribute names with the
Portuguese JSON keys of the extraction contract as aliases. Persisted
records (local file or remote sheet) always use the aliases, so what is
stored is what the model produced plus the generated id.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionKind(str, Enum):
    """
    Direction of money movement.

    Values are the literals of the extraction contract.
    """
    INCOME = "receita"
    EXPENSE = "despesa"


class TransactionSource(str, Enum):
    """Channel a stored transaction came from."""
    WEB = "web"
    TELEGRAM = "telegram"
    WHATSAPP_TEXT = "whatsapp_text"
    WHATSAPP_AUDIO = "whatsapp_audio"


class ChatRole(str, Enum):
    """Author of a chat message."""
    USER = "user"
    ASSISTANT = "assistant"


class ExtractionStatus(str, Enum):
    """
    How a single turn ended.

    Never shown to the user; used for logging and tests.
    """
    PARSED = "parsed"
    NO_BLOCK_FOUND = "no_block_found"
    MALFORMED_JSON = "malformed_json"
    SCHEMA_MISMATCH = "schema_mismatch"
    MODEL_ERROR = "model_error"


def parse_instant(value: str) -> datetime:
    """
    Parse an ISO-8601 instant.

    Accepts a trailing 'Z' for UTC, which datetime.fromisoformat
    only understands on recent interpreters.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


# =============================================================================
# CORE TRANSACTION MODEL
# =============================================================================

class Transaction(BaseModel):
    """
    A transaction extracted from a model reply.

    CRITICAL: Instances only exist once the parser has accepted the
    model output. They are frozen - a transaction is never edited,
    only removed by a bulk clear of history.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        min_length=1,
        description="Unique transaction ID, generated on acceptance"
    )
    amount: Decimal = Field(
        ...,
        alias="valor",
        gt=0,
        description="Positive amount, currency agnostic"
    )
    category: str = Field(
        ...,
        alias="categoria",
        min_length=1,
        max_length=200,
        description="Free-text category label"
    )
    description: str = Field(
        default="",
        alias="descricao",
        max_length=1000,
        description="Free-text description, may be empty"
    )
    kind: TransactionKind = Field(
        ...,
        alias="tipo",
        description="Income or expense"
    )
    timestamp: str = Field(
        ...,
        description="When it happened (ISO-8601 string)"
    )

    @field_validator("amount", mode="before")
    @classmethod
    def amount_must_be_number(cls, v: Any) -> Any:
        """The contract says number - reject strings and booleans."""
        if isinstance(v, bool) or not isinstance(v, (int, float, Decimal)):
            raise ValueError("valor must be a JSON number")
        if isinstance(v, float):
            return Decimal(str(v))
        return v

    @field_validator("category", "description", mode="before")
    @classmethod
    def text_must_be_string(cls, v: Any) -> Any:
        if v is not None and not isinstance(v, str):
            raise ValueError("must be a string")
        return v

    @field_validator("timestamp")
    @classmethod
    def timestamp_must_be_instant(cls, v: str) -> str:
        """Keep the original string, but only if it is a real instant."""
        try:
            parse_instant(v)
        except ValueError:
            raise ValueError(f"timestamp is not a valid ISO-8601 instant: {v!r}")
        return v

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, v: Decimal) -> int | float | str:
        """
        Emit a JSON number, as the model did, when one holds the exact value.

        Amounts a float can't carry digit for digit are written as their
        decimal text instead; from_record reads them back unchanged.
        """
        if v == v.to_integral_value():
            return int(v)
        as_float = float(v)
        if Decimal(repr(as_float)) == v:
            return as_float
        return str(v)

    @property
    def occurred_at(self) -> datetime:
        """Timestamp as a datetime."""
        return parse_instant(self.timestamp)

    @property
    def is_income(self) -> bool:
        return self.kind == TransactionKind.INCOME

    @property
    def is_expense(self) -> bool:
        return self.kind == TransactionKind.EXPENSE

    def to_record(self) -> dict[str, Any]:
        """Dict in the persisted/contract shape (Portuguese keys)."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Transaction":
        """Rebuild a stored record, including amounts kept as decimal text."""
        amount = record.get("valor")
        if isinstance(amount, str):
            try:
                record = {**record, "valor": Decimal(amount)}
            except InvalidOperation:
                pass  # left as text, rejected by validation
        return cls.model_validate(record)


# =============================================================================
# CHAT MODELS (web channel only)
# =============================================================================

class ChatMessage(BaseModel):
    """
    One turn of the web conversation.

    Bot channels do not persist conversation, only transactions.
    The attached transaction is a reference to what was stored;
    the chat log never edits it.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique message ID"
    )
    role: ChatRole
    content: str = Field(
        ...,
        description="Text shown to the human"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    transaction: Optional[Transaction] = Field(
        default=None,
        alias="metadata",
        description="Transaction extracted in this turn, if any"
    )

    @field_validator("transaction", mode="before")
    @classmethod
    def load_stored_transaction(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return Transaction.from_record(v)
        return v

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# PIPELINE VALUES (transient, never persisted)
# =============================================================================

class UserInput(BaseModel):
    """
    What a channel forwards to the extraction client.

    Either plain text or an audio payload with its MIME type.
    Audio is sent to the model as-is; transcription happens there.
    """
    model_config = ConfigDict(frozen=True)

    text: Optional[str] = None
    audio: Optional[bytes] = None
    mime_type: Optional[str] = None

    @model_validator(mode="after")
    def exactly_one_payload(self) -> "UserInput":
        has_text = self.text is not None
        has_audio = self.audio is not None
        if has_text == has_audio:
            raise ValueError("Provide either text or audio, not both or neither")
        if has_audio and not self.mime_type:
            raise ValueError("Audio input requires a mime_type")
        return self

    @classmethod
    def from_text(cls, text: str) -> "UserInput":
        return cls(text=text)

    @classmethod
    def from_audio(cls, data: bytes, mime_type: str) -> "UserInput":
        return cls(audio=data, mime_type=mime_type)

    @property
    def is_audio(self) -> bool:
        return self.audio is not None


class ExtractionResult(BaseModel):
    """
    Outcome of one model turn.

    reply_text is what the channel sends back; candidate is what the
    store may append. status says which branch produced them.
    """
    model_config = ConfigDict(frozen=True)

    reply_text: str
    candidate: Optional[Transaction] = None
    status: ExtractionStatus = ExtractionStatus.PARSED
    detail: Optional[str] = Field(
        default=None,
        description="Internal reason for a non-parsed outcome"
    )

    @property
    def has_candidate(self) -> bool:
        return self.candidate is not None
