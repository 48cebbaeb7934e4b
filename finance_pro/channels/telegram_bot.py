"""
Telegram channel.

Text messages and voice notes are both forwarded to the bot turn flow.
Voice notes are downloaded and sent to the model as audio/ogg; the
model transcribes and extracts in the same call.
"""

from typing import Any

import structlog
from aiogram import Bot, Dispatcher, F
from aiogram.filters import Command
from aiogram.types import Message

from finance_pro.channels.dispatcher import ConversationDispatcher
from finance_pro.config.prompts import AUDIO_FAILED_MESSAGE, BOT_START_MESSAGE
from finance_pro.models.transaction import TransactionSource, UserInput
from finance_pro.orchestrator import BotTurnFlow

logger = structlog.get_logger(__name__)

VOICE_MIME_TYPE = "audio/ogg"


def _user_id(message: Any) -> str:
    return str(message.from_user.id) if message.from_user else ""


async def handle_text(
    message: Any,
    bot: Any,
    flow: BotTurnFlow,
    conversations: ConversationDispatcher,
) -> None:
    """Forward a plain text message and answer with the turn's reply."""
    await bot.send_chat_action(chat_id=message.chat.id, action="typing")

    user_input = UserInput.from_text(message.text)
    reply = await conversations.run(
        message.chat.id,
        lambda: flow.process_input(
            user_input,
            source=TransactionSource.TELEGRAM,
            user_id=_user_id(message),
        ),
    )
    await message.answer(reply)


async def handle_voice(
    message: Any,
    bot: Any,
    flow: BotTurnFlow,
    conversations: ConversationDispatcher,
) -> None:
    """Download a voice note and forward it as audio."""
    await bot.send_chat_action(chat_id=message.chat.id, action="record_voice")

    try:
        buffer = await bot.download(message.voice)
        audio = buffer.read()
    except Exception as e:
        logger.warning("voice_download_failed", chat_id=message.chat.id, error=str(e))
        await message.answer(AUDIO_FAILED_MESSAGE)
        return

    user_input = UserInput.from_audio(audio, VOICE_MIME_TYPE)
    reply = await conversations.run(
        message.chat.id,
        lambda: flow.process_input(
            user_input,
            source=TransactionSource.TELEGRAM,
            user_id=_user_id(message),
        ),
    )
    await message.answer(reply)


def build_dispatcher(
    flow: BotTurnFlow,
    conversations: ConversationDispatcher,
) -> Dispatcher:
    """Register the /start, text and voice handlers."""
    dp = Dispatcher()

    @dp.message(Command("start"))
    async def cmd_start(message: Message) -> None:
        await message.answer(BOT_START_MESSAGE)

    @dp.message(F.text & ~F.text.startswith("/"))
    async def on_text(message: Message, bot: Bot) -> None:
        await handle_text(message, bot, flow, conversations)

    @dp.message(F.voice)
    async def on_voice(message: Message, bot: Bot) -> None:
        await handle_voice(message, bot, flow, conversations)

    return dp


async def run_telegram_bot(
    token: str,
    flow: BotTurnFlow,
    max_concurrent: int = 8,
) -> None:
    """Long-poll Telegram until the process is stopped."""
    bot = Bot(token=token)
    dp = build_dispatcher(flow, ConversationDispatcher(max_concurrent))

    logger.info(
        "telegram_bot_started",
        simulation_mode=flow.simulation_mode,
        max_concurrent=max_concurrent,
    )
    try:
        await dp.start_polling(bot)
    finally:
        await bot.session.close()
