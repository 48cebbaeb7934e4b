"""
Per-conversation turn scheduling for the bot channels.

Turns from the same conversation run one at a time, in arrival order.
Turns from different conversations run concurrently, bounded by a
shared pool so a burst of users can't open unlimited model calls.
"""

import asyncio
from collections import defaultdict
from typing import Awaitable, Callable, Hashable, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ConversationDispatcher:
    """
    Sequential queue per conversation, bounded pool across conversations.

    No timeouts and no cancellation: a turn runs until the model call
    and the store write return.
    """

    def __init__(self, max_concurrent: int = 8):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._max_concurrent = max_concurrent
        self._locks: dict[Hashable, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._pool = asyncio.Semaphore(max_concurrent)

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    async def run(
        self,
        conversation_id: Hashable,
        turn: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Run turn() once it is this conversation's turn and a pool slot is free.

        The conversation lock is taken first, so queued turns of a busy
        conversation don't hold pool slots while they wait.
        """
        async with self._locks[conversation_id]:
            async with self._pool:
                logger.debug("turn_started", conversation_id=str(conversation_id))
                return await turn()
