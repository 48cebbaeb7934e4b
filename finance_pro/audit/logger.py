"""
Audit Logger

DESIGN DECISION: Every branch of a chat turn is logged.
This provides:
1. Visibility into model failures the user only sees as an apology
2. A record of parse failures (which leave the user with a clarification)
3. Evidence of simulation mode, where nothing is persisted

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the turn if logging fails)
- Supports correlation IDs to trace all events of one turn
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_pro.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from finance_pro.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(log_level: str = "INFO") -> None:
    """
    Route the stdlib root logger to stderr at the configured level.

    structlog renders the JSON line; stdlib only decides whether it is emitted.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (always)
    2. An audit storage backend, when one is configured (bots: Google Sheets)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finance_pro.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_message_received(
        self,
        channel: str,
        is_audio: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.message_received(
            channel=channel,
            is_audio=is_audio,
            correlation_id=correlation_id,
        ))

    async def log_model_call_failed(
        self,
        model_name: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> None:
        """Log a failed Gemini call; the user gets the channel apology."""
        await self.log(AuditEventBuilder.model_call_failed(
            model_name=model_name,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_transaction_extracted(
        self,
        transaction_id: str,
        kind: str,
        amount: str,
        category: str,
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.transaction_extracted(
            transaction_id=transaction_id,
            kind=kind,
            amount=amount,
            category=category,
            correlation_id=correlation_id,
        ))

    async def log_no_block_found(
        self,
        reply_length: int,
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.no_block_found(
            reply_length=reply_length,
            correlation_id=correlation_id,
        ))

    async def log_parse_failed(
        self,
        event_type: AuditEventType,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> None:
        """Log a malformed or schema-mismatched fenced block."""
        await self.log(AuditEventBuilder.parse_failed(
            event_type=event_type,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_transaction_saved(
        self,
        transaction_id: str,
        channel: str,
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.transaction_saved(
            transaction_id=transaction_id,
            channel=channel,
            correlation_id=correlation_id,
        ))

    async def log_save_failed(
        self,
        transaction_id: str,
        channel: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(
            transaction_id=transaction_id,
            channel=channel,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_storage_degraded(
        self,
        backend: str,
        error_message: str,
    ) -> None:
        """Log the switch to simulation mode."""
        await self.log(AuditEventBuilder.storage_degraded(
            backend=backend,
            error_message=error_message,
        ))

    async def log_history_cleared(
        self,
        transactions_removed: int,
        messages_removed: int,
    ) -> None:
        await self.log(AuditEventBuilder.history_cleared(
            transactions_removed=transactions_removed,
            messages_removed=messages_removed,
        ))

    async def log_configuration_error(self, missing: list[str]) -> None:
        await self.log(AuditEventBuilder.configuration_error(missing=missing))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a chat turn and pass it through
    extraction and persistence.
    """
    return uuid4()
