"""
Conversation Store
==================

Keyed conversation logs. Each session starts with the system turn and
keeps at most the last N turns after it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from helpdesk.config import MessageRole, VALID_MESSAGE_ROLES, settings
from helpdesk.core import DomainException
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are an L1 Helpdesk assistant. Be helpful, clear, and concise "
    "when answering IT support questions."
)


@dataclass(frozen=True)
class ConversationMessage:
    """One turn of a conversation."""

    role: str
    content: str

    def __post_init__(self):
        if self.role not in VALID_MESSAGE_ROLES:
            raise DomainException(
                f"Invalid message role: {self.role}",
                {"valid_roles": VALID_MESSAGE_ROLES}
            )

    def to_dict(self) -> Dict[str, str]:
        """Shape expected by chat completion APIs."""
        return {"role": self.role, "content": self.content}


class IConversationStore(ABC):
    """Interface for conversation history storage."""

    @abstractmethod
    async def get(self, session_id: str) -> List[ConversationMessage]:
        """Messages of a session, starting with the system turn."""

    @abstractmethod
    async def append(self, session_id: str, message: ConversationMessage) -> List[ConversationMessage]:
        """Add a message and return the (possibly truncated) history."""

    @abstractmethod
    async def clear(self, session_id: str) -> None:
        """Forget a session."""


class InMemoryConversationStore(IConversationStore):
    """
    Process-local conversation store.

    History is lost on restart. A session that has never been seen is
    seeded with the system turn on first access.
    """

    def __init__(self, system_prompt: str = DEFAULT_SYSTEM_PROMPT, max_turns: Optional[int] = None):
        self._system_message = ConversationMessage(MessageRole.SYSTEM, system_prompt)
        self._max_turns = max_turns if max_turns is not None else settings.conversation_max_turns
        if self._max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self._sessions: Dict[str, List[ConversationMessage]] = {}

    @property
    def max_turns(self) -> int:
        return self._max_turns

    def _session(self, session_id: str) -> List[ConversationMessage]:
        if session_id not in self._sessions:
            self._sessions[session_id] = [self._system_message]
        return self._sessions[session_id]

    async def get(self, session_id: str) -> List[ConversationMessage]:
        return list(self._session(session_id))

    async def append(self, session_id: str, message: ConversationMessage) -> List[ConversationMessage]:
        history = self._session(session_id)
        history.append(message)

        if len(history) > self._max_turns + 1:
            self._sessions[session_id] = [history[0]] + history[-self._max_turns:]
            logger.debug(
                "Conversation truncated",
                extra={"session_id": session_id, "max_turns": self._max_turns}
            )

        return list(self._sessions[session_id])

    async def clear(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
