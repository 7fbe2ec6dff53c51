"""
Chat Module
===========

Bounded per-session conversation history for the L1 helpdesk assistant.
"""

from helpdesk.chat.conversations import (
    DEFAULT_SYSTEM_PROMPT,
    ConversationMessage,
    IConversationStore,
    InMemoryConversationStore,
)

__all__ = [
    "DEFAULT_SYSTEM_PROMPT",
    "ConversationMessage",
    "IConversationStore",
    "InMemoryConversationStore",
]
