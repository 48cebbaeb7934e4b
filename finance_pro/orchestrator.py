"""
Main Orchestrator for Finance Pro

This module ties together all the components and defines the
end-to-end flow of one chat turn:

    message -> extraction agent -> parser -> (store) -> reply

for two kinds of channel:
1. Web chat (local JSON stores, conversation log kept)
2. Bots - Telegram, WhatsApp (remote Google Sheets store, no conversation log)

DESIGN DECISION: The orchestrator enforces the boundaries:
- A transaction is stored only if the parser produced a candidate
- Storage problems never stop the reply from reaching the user
- Every branch is audited under one correlation id per turn
"""

from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from finance_pro.agents import TransactionExtractionAgent
from finance_pro.audit import AuditLogger, create_correlation_id
from finance_pro.config import GeminiSettings, Settings, get_settings
from finance_pro.config.prompts import EMPTY_REPLY_FALLBACK, WELCOME_MESSAGE
from finance_pro.models.transaction import (
    ChatMessage,
    ChatRole,
    ExtractionResult,
    Transaction,
    TransactionSource,
    UserInput,
)
from finance_pro.services.storage import (
    ChatHistoryStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
    LocalChatHistoryStore,
    LocalTransactionStore,
    LocalTransactionStoreInterface,
    RemoteTransactionStoreInterface,
    StorageError,
)

logger = structlog.get_logger(__name__)


def reply_or_fallback(result: ExtractionResult) -> str:
    """Text to send back; never empty."""
    return result.reply_text or EMPTY_REPLY_FALLBACK


class ChatTurnFlow:
    """
    Orchestrates the web chat.

    Flow:
    1. Record the user message in the chat log
    2. Extract, with the stored transactions as history
    3. Store the candidate at the head of the transaction list
    4. Record the assistant reply, with the stored transaction attached

    Only the web channel keeps a conversation log.
    """

    def __init__(
        self,
        agent: TransactionExtractionAgent,
        transactions: LocalTransactionStoreInterface,
        chat_history: ChatHistoryStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._agent = agent
        self._transactions = transactions
        self._chat_history = chat_history
        self._audit_logger = audit_logger or AuditLogger()

    def list_transactions(self) -> list[Transaction]:
        """Stored transactions, most recent first."""
        return self._transactions.list()

    def list_messages(self) -> list[ChatMessage]:
        """Chat log, oldest first."""
        return self._chat_history.list()

    def welcome_message(self) -> Optional[ChatMessage]:
        """Greeting shown while the log is empty."""
        if self._chat_history.list():
            return None
        return ChatMessage(role=ChatRole.ASSISTANT, content=WELCOME_MESSAGE)

    async def handle_message(self, text: str) -> ChatMessage:
        """
        Process one user message and return the assistant reply.

        The reply is always returned, even if saving fails.
        """
        correlation_id = create_correlation_id()
        await self._audit_logger.log_message_received(
            channel=TransactionSource.WEB.value,
            is_audio=False,
            correlation_id=correlation_id,
        )

        self._chat_history.append(ChatMessage(role=ChatRole.USER, content=text))

        result = await self._agent.process_message(
            UserInput.from_text(text),
            history=self._transactions.list(),
            channel=TransactionSource.WEB.value,
            correlation_id=correlation_id,
        )

        stored: Optional[Transaction] = None
        if result.candidate is not None:
            try:
                self._transactions.append(result.candidate)
                stored = result.candidate
                await self._audit_logger.log_transaction_saved(
                    transaction_id=stored.id,
                    channel=TransactionSource.WEB.value,
                    correlation_id=correlation_id,
                )
            except StorageError as e:
                await self._audit_logger.log_save_failed(
                    transaction_id=result.candidate.id,
                    channel=TransactionSource.WEB.value,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )

        reply = ChatMessage(
            role=ChatRole.ASSISTANT,
            content=reply_or_fallback(result),
            transaction=stored,
        )
        self._chat_history.append(reply)
        return reply

    async def clear_history(self) -> tuple[int, int]:
        """
        Wipe the chat log and every stored transaction.

        Returns:
            (transactions_removed, messages_removed)
        """
        transactions_removed = self._transactions.clear()
        messages_removed = self._chat_history.clear()
        await self._audit_logger.log_history_cleared(
            transactions_removed=transactions_removed,
            messages_removed=messages_removed,
        )
        return transactions_removed, messages_removed


class BotTurnFlow:
    """
    Orchestrates a bot turn (Telegram, WhatsApp).

    Bots send no history and keep no conversation. A candidate goes to the
    remote store as one independent document tagged with its channel.

    With no remote store the flow runs in simulation mode: replies are
    delivered, nothing is persisted.
    """

    def __init__(
        self,
        agent: TransactionExtractionAgent,
        remote_store: Optional[RemoteTransactionStoreInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._agent = agent
        self._remote_store = remote_store
        self._audit_logger = audit_logger or AuditLogger()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def simulation_mode(self) -> bool:
        return self._remote_store is None

    async def process_input(
        self,
        user_input: UserInput,
        source: TransactionSource,
        user_id: Optional[str] = None,
    ) -> str:
        """
        Process one inbound bot message and return the reply text.
        """
        correlation_id = create_correlation_id()
        await self._audit_logger.log_message_received(
            channel=source.value,
            is_audio=user_input.is_audio,
            correlation_id=correlation_id,
        )

        result = await self._agent.process_message(
            user_input,
            channel=source.value,
            correlation_id=correlation_id,
        )

        if result.candidate is not None:
            await self._store(result.candidate, source, user_id, correlation_id)

        return reply_or_fallback(result)

    async def _store(
        self,
        transaction: Transaction,
        source: TransactionSource,
        user_id: Optional[str],
        correlation_id,
    ) -> None:
        if self._remote_store is None:
            logger.info(
                "transaction_not_persisted",
                reason="simulation_mode",
                transaction_id=transaction.id,
                channel=source.value,
            )
            return

        try:
            await self._remote_store.append(
                transaction,
                source=source,
                received_at=self._clock(),
                user_id=user_id,
            )
            await self._audit_logger.log_transaction_saved(
                transaction_id=transaction.id,
                channel=source.value,
                correlation_id=correlation_id,
            )
        except StorageError as e:
            await self._audit_logger.log_save_failed(
                transaction_id=transaction.id,
                channel=source.value,
                error_message=str(e),
                correlation_id=correlation_id,
            )


def create_web_components(
    settings: Optional[Settings] = None,
) -> ChatTurnFlow:
    """
    Factory for the web chat: local JSON stores, local-only audit log.

    Raises:
        ConfigurationError/ValidationError: if the Gemini key is missing
        StorageError: if a local store file is unreadable
    """
    settings = settings or get_settings()
    app_settings = settings.app
    audit_logger = AuditLogger()

    agent = TransactionExtractionAgent.from_settings(
        settings.gemini,
        audit_logger=audit_logger,
    )
    return ChatTurnFlow(
        agent=agent,
        transactions=LocalTransactionStore(app_settings.transactions_path),
        chat_history=LocalChatHistoryStore(app_settings.chat_history_path),
        audit_logger=audit_logger,
    )


async def create_bot_components(
    gemini_settings: GeminiSettings,
    use_storage: bool = True,
) -> BotTurnFlow:
    """
    Factory for the bot channels.

    Args:
        gemini_settings: Validated Gemini settings
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run in simulation mode on purpose.

    Storage problems at startup are not fatal: the bot runs in
    simulation mode and a storage_degraded event is logged.
    """
    remote_store = None
    audit_logger = AuditLogger()

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            remote_store = GoogleSheetsTransactionStore(sheets_client)
            remote_store.verify()
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            remote_store = None
            await audit_logger.log_storage_degraded(
                backend="google_sheets",
                error_message=str(e),
            )

    agent = TransactionExtractionAgent.from_settings(
        gemini_settings,
        audit_logger=audit_logger,
    )
    return BotTurnFlow(
        agent=agent,
        remote_store=remote_store,
        audit_logger=audit_logger,
    )
