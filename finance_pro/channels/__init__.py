"""Chat channels (bots) package."""

from finance_pro.channels.dispatcher import ConversationDispatcher

__all__ = ["ConversationDispatcher"]
