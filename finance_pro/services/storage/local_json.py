"""
Local JSON Storage (web channel)

Two independently keyed files under the data directory:

  <data_dir>/<namespace>_txs.json   -> JSON array of transactions, newest first
  <data_dir>/<namespace>_chat.json  -> JSON array of chat messages, oldest first

Both are read once when the store is created and rewritten in full on
every mutation (write to a temp file, then replace).

TRADEOFFS:
- Single writer assumed. Two processes appending at the same time can
  overwrite each other's additions (last write wins).
- Fine for one user's local history; not a shared database.
"""

import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from finance_pro.models.transaction import ChatMessage, Transaction
from finance_pro.services.storage.interface import (
    ChatHistoryStoreInterface,
    LocalTransactionStoreInterface,
    StorageError,
    ensure_storable,
)

logger = structlog.get_logger(__name__)


def _read_array(path: Path) -> list[dict[str, Any]]:
    """Load a JSON array file; a missing file is an empty list."""
    if not path.exists():
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"), parse_float=Decimal)
    except (OSError, json.JSONDecodeError) as e:
        raise StorageError(f"Could not read {path}: {e}")
    if not isinstance(data, list):
        raise StorageError(f"Expected a JSON array in {path}")
    return data


def _write_array(path: Path, items: list[dict[str, Any]]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(items, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(path)
    except OSError as e:
        raise StorageError(f"Could not write {path}: {e}")


class LocalTransactionStore(LocalTransactionStoreInterface):
    """
    File-backed transaction list for the web channel.

    The in-memory list is the source of truth for reads; the file is
    rewritten after each append or clear.
    """

    def __init__(self, path: Path):
        self._path = path
        try:
            self._items = [
                Transaction.from_record(record) for record in _read_array(path)
            ]
        except ValidationError as e:
            raise StorageError(f"Corrupt transaction record in {path}: {e}")
        logger.debug("local_transactions_loaded", path=str(path), count=len(self._items))

    @property
    def path(self) -> Path:
        return self._path

    def _flush(self) -> None:
        _write_array(self._path, [tx.to_record() for tx in self._items])

    def append(self, transaction: Transaction) -> None:
        ensure_storable(transaction)
        self._items.insert(0, transaction)
        try:
            self._flush()
        except StorageError:
            self._items.pop(0)
            raise

    def list(self) -> list[Transaction]:
        return list(self._items)

    def clear(self) -> int:
        removed = len(self._items)
        previous = self._items
        self._items = []
        try:
            self._flush()
        except StorageError:
            self._items = previous
            raise
        return removed


class LocalChatHistoryStore(ChatHistoryStoreInterface):
    """File-backed chat log; timestamps round-trip as datetimes."""

    def __init__(self, path: Path):
        self._path = path
        try:
            self._messages = [
                ChatMessage.model_validate(record) for record in _read_array(path)
            ]
        except ValidationError as e:
            raise StorageError(f"Corrupt chat record in {path}: {e}")

    def _flush(self) -> None:
        _write_array(self._path, [msg.to_record() for msg in self._messages])

    def append(self, message: ChatMessage) -> None:
        self._messages.append(message)
        try:
            self._flush()
        except StorageError:
            self._messages.pop()
            raise

    def list(self) -> list[ChatMessage]:
        return list(self._messages)

    def clear(self) -> int:
        removed = len(self._messages)
        previous = self._messages
        self._messages = []
        try:
            self._flush()
        except StorageError:
            self._messages = previous
            raise
        return removed
