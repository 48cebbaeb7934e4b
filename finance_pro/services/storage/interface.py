"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for storage operations.
This allows us to:
1. Keep the web channel on local files and the bots on Google Sheets
2. Use in-memory storage for testing
3. Swap the remote backend without touching the orchestrator

Append is the only mutation on transactions. There is no update and no
per-record delete; the web channel can only clear its history wholesale.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from finance_pro.models.audit import AuditEvent
from finance_pro.models.transaction import (
    ChatMessage,
    Transaction,
    TransactionSource,
)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class InvalidTransactionError(StorageError):
    """Refused to store a transaction that breaks the model invariants."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


def ensure_storable(transaction: Transaction) -> Transaction:
    """
    Re-check invariants before a write.

    Transactions built through the parser are already valid, but
    model_construct() and hand-built instances skip validation.

    Raises:
        InvalidTransactionError: if amount <= 0 or id is empty
    """
    amount = getattr(transaction, "amount", None)
    if amount is None or amount <= 0:
        raise InvalidTransactionError(
            f"Transaction amount must be greater than zero, got {amount}"
        )
    if not getattr(transaction, "id", None):
        raise InvalidTransactionError("Transaction has no id")
    return transaction


class LocalTransactionStoreInterface(ABC):
    """
    Transaction store owned by a single local client (web channel).

    list() is most-recent-first: append() puts the new transaction at
    the head and leaves earlier ones untouched.
    """

    @abstractmethod
    def append(self, transaction: Transaction) -> None:
        """
        Add a transaction at the head of the list.

        Raises:
            InvalidTransactionError: if the transaction breaks invariants
            StorageError: if the write fails
        """
        pass

    @abstractmethod
    def list(self) -> list[Transaction]:
        """All transactions, most recent first."""
        pass

    @abstractmethod
    def clear(self) -> int:
        """
        Remove every transaction.

        Returns:
            Number of transactions removed
        """
        pass


class ChatHistoryStoreInterface(ABC):
    """Ordered, append-only chat log (web channel only)."""

    @abstractmethod
    def append(self, message: ChatMessage) -> None:
        pass

    @abstractmethod
    def list(self) -> list[ChatMessage]:
        """All messages, oldest first."""
        pass

    @abstractmethod
    def clear(self) -> int:
        pass


class RemoteTransactionStoreInterface(ABC):
    """
    Write-only transaction store shared by the bot channels.

    Every append is an independent document; no deduplication and no
    ordering guarantees across channels.
    """

    @abstractmethod
    async def append(
        self,
        transaction: Transaction,
        source: TransactionSource,
        received_at: datetime,
        user_id: Optional[str] = None,
    ) -> bool:
        """
        Store one transaction document.

        Args:
            transaction: The parsed transaction
            source: Channel the message came through
            received_at: Processing time recorded with the document
            user_id: Channel-specific sender id, if known

        Returns:
            True if saved successfully

        Raises:
            InvalidTransactionError: if the transaction breaks invariants
            StorageError: if the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass
