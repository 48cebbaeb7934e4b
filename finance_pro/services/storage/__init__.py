"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage:
local JSON files for the web channel, Google Sheets for the bot channels.
"""

from finance_pro.services.storage.interface import (
    AuditStorageInterface,
    ChatHistoryStoreInterface,
    ConnectionError,
    InvalidTransactionError,
    LocalTransactionStoreInterface,
    RemoteTransactionStoreInterface,
    StorageError,
    ensure_storable,
)
from finance_pro.services.storage.local_json import (
    LocalChatHistoryStore,
    LocalTransactionStore,
)
from finance_pro.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ChatHistoryStoreInterface",
    "LocalTransactionStoreInterface",
    "RemoteTransactionStoreInterface",
    "ensure_storable",
    # Exceptions
    "ConnectionError",
    "InvalidTransactionError",
    "StorageError",
    # Local implementation
    "LocalChatHistoryStore",
    "LocalTransactionStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStore",
]
