"""
Data Models Package

This package contains all Pydantic models used in the Finance Pro system.
All data flowing through the system must conform to these schemas.
"""

from finance_pro.models.transaction import (
    ChatMessage,
    ChatRole,
    ExtractionResult,
    ExtractionStatus,
    Transaction,
    TransactionKind,
    TransactionSource,
    UserInput,
    parse_instant,
)
from finance_pro.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "ChatMessage",
    "ChatRole",
    "ExtractionResult",
    "ExtractionStatus",
    "Transaction",
    "TransactionKind",
    "TransactionSource",
    "UserInput",
    "parse_instant",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
