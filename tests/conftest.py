"""
Shared fakes for the test suite.

No real API calls in tests: the Gemini model, the audit sink and the
remote store are replaced by the in-memory objects below.
"""

from decimal import Decimal

import pytest

from finance_pro.audit import AuditLogger
from finance_pro.config import get_settings
from finance_pro.models.transaction import Transaction
from finance_pro.services.storage import (
    AuditStorageInterface,
    RemoteTransactionStoreInterface,
)


SAMPLE_REPLY = (
    "```json\n"
    "{\n"
    '  "valor": 50.00,\n'
    '  "categoria": "Alimentação",\n'
    '  "descricao": "Almoço",\n'
    '  "tipo": "despesa",\n'
    '  "timestamp": "2024-05-15T12:30:00Z"\n'
    "}\n"
    "```\n"
    "✅ Registrado! R$ 50,00 em Alimentação. 🥂"
)


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    """Stands in for genai.GenerativeModel."""

    def __init__(self, text=SAMPLE_REPLY, error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def generate_content_async(self, contents):
        self.calls.append(contents)
        if self.error is not None:
            raise self.error
        return FakeResponse(self.text)


class RecordingAuditStorage(AuditStorageInterface):
    """Keeps every audit event in memory."""

    def __init__(self):
        self.events = []

    async def append_event(self, event):
        self.events.append(event)
        return True

    @property
    def event_types(self):
        return [event.event_type for event in self.events]


class RecordingRemoteStore(RemoteTransactionStoreInterface):
    """Remote store that keeps appended documents in a list."""

    def __init__(self, error=None):
        self.documents = []
        self.error = error

    async def append(self, transaction, source, received_at, user_id=None):
        if self.error is not None:
            raise self.error
        self.documents.append({
            "transaction": transaction,
            "source": source,
            "received_at": received_at,
            "user_id": user_id,
        })
        return True


def make_transaction(
    amount="50",
    category="Alimentação",
    description="Almoço",
    kind="despesa",
    timestamp="2024-05-15T12:30:00Z",
) -> Transaction:
    return Transaction(
        valor=Decimal(amount),
        categoria=category,
        descricao=description,
        tipo=kind,
        timestamp=timestamp,
    )


@pytest.fixture
def audit_storage():
    return RecordingAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No credentials in the environment and no stray .env file."""
    for name in (
        "GEMINI_API_KEY",
        "TELEGRAM_TOKEN",
        "GOOGLE_SHEETS_CREDENTIALS_PATH",
        "GOOGLE_SHEETS_SPREADSHEET_ID",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()

