"""
Audit Models for Finance Pro

Every branch of the message-to-transaction pipeline is logged for audit
purposes. This provides:
1. Visibility into model failures the user only sees as an apology
2. Debugging information when extraction goes wrong
3. A record of degraded (simulation) operation
4. Ability to reconstruct what happened in a turn

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each outcome of a chat turn has its own event type.
    """
    # Inbound
    MESSAGE_RECEIVED = "message_received"

    # Model call
    MODEL_CALL_FAILED = "model_call_failed"

    # Parsing
    TRANSACTION_EXTRACTED = "transaction_extracted"
    NO_BLOCK_FOUND = "no_block_found"
    MALFORMED_JSON = "malformed_json"
    SCHEMA_MISMATCH = "schema_mismatch"

    # Persistence
    TRANSACTION_SAVED = "transaction_saved"
    SAVE_FAILED = "save_failed"
    STORAGE_DEGRADED = "storage_degraded"
    HISTORY_CLEARED = "history_cleared"

    # System events
    CONFIGURATION_ERROR = "configuration_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'message')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (all events in one chat turn)"
    )

    # Which channel the turn came through
    channel: Optional[str] = Field(
        default=None,
        description="Source channel (web, telegram, whatsapp_text, ...)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "channel": self.channel,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, channel, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.channel or "",
            self.description,
            json.dumps(self.details, ensure_ascii=False) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.message_received("telegram", False, correlation_id)
        event = AuditEventBuilder.transaction_saved(tx_id, "telegram", correlation_id)
    """

    @staticmethod
    def message_received(
        channel: str,
        is_audio: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MESSAGE_RECEIVED,
            entity_type="message",
            correlation_id=correlation_id,
            channel=channel,
            description=f"{'Audio' if is_audio else 'Text'} message received",
            details={"is_audio": is_audio},
            is_user_action=True,
        )

    @staticmethod
    def model_call_failed(
        model_name: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MODEL_CALL_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Model call failed: {model_name}",
            error_message=error_message,
            details={"model_name": model_name},
        )

    @staticmethod
    def transaction_extracted(
        transaction_id: str,
        kind: str,
        amount: str,
        category: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_EXTRACTED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Extracted {kind} of {amount} in {category}",
            details={
                "kind": kind,
                "amount": amount,
                "category": category,
            },
        )

    @staticmethod
    def parse_failed(
        event_type: AuditEventType,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        """Malformed JSON or schema mismatch in the fenced block."""
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Model reply rejected: {event_type.value}",
            error_message=error_message,
        )

    @staticmethod
    def no_block_found(
        reply_length: int,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NO_BLOCK_FOUND,
            correlation_id=correlation_id,
            description="Model replied without a transaction block",
            details={"reply_length": reply_length},
        )

    @staticmethod
    def transaction_saved(
        transaction_id: str,
        channel: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            channel=channel,
            description=f"Transaction saved from {channel}",
        )

    @staticmethod
    def save_failed(
        transaction_id: str,
        channel: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            channel=channel,
            description=f"Failed to save transaction from {channel}",
            error_message=error_message,
        )

    @staticmethod
    def storage_degraded(
        backend: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_DEGRADED,
            severity=AuditSeverity.WARNING,
            description=f"Storage unavailable ({backend}); running in simulation mode",
            error_message=error_message,
            details={"backend": backend},
        )

    @staticmethod
    def history_cleared(
        transactions_removed: int,
        messages_removed: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HISTORY_CLEARED,
            channel="web",
            description="User cleared chat and transaction history",
            details={
                "transactions_removed": transactions_removed,
                "messages_removed": messages_removed,
            },
            is_user_action=True,
        )

    @staticmethod
    def configuration_error(
        missing: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONFIGURATION_ERROR,
            severity=AuditSeverity.CRITICAL,
            description="Required configuration missing",
            error_message=", ".join(missing),
            details={"missing": missing},
        )

