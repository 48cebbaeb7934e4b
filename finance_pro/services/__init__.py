"""Services package."""

from finance_pro.services.storage import (
    AuditStorageInterface,
    ChatHistoryStoreInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
    InvalidTransactionError,
    LocalChatHistoryStore,
    LocalTransactionStore,
    LocalTransactionStoreInterface,
    RemoteTransactionStoreInterface,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "ChatHistoryStoreInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStore",
    "InvalidTransactionError",
    "LocalChatHistoryStore",
    "LocalTransactionStore",
    "LocalTransactionStoreInterface",
    "RemoteTransactionStoreInterface",
    "StorageError",
]
