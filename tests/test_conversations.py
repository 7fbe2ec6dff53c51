"""Tests for the bounded in-memory conversation store."""

import pytest

from helpdesk.chat import DEFAULT_SYSTEM_PROMPT, ConversationMessage, InMemoryConversationStore
from helpdesk.core import DomainException


def user(text: str) -> ConversationMessage:
    return ConversationMessage("user", text)


@pytest.mark.asyncio
async def test_new_session_starts_with_system_turn():
    store = InMemoryConversationStore()

    history = await store.get("session-1")

    assert history == [ConversationMessage("system", DEFAULT_SYSTEM_PROMPT)]


@pytest.mark.asyncio
async def test_keeps_system_turn_and_last_turns():
    store = InMemoryConversationStore("Be brief.", max_turns=4)

    for i in range(7):
        history = await store.append("s", user(f"message {i}"))
        assert len(history) <= 5

    history = await store.get("s")
    assert history[0] == ConversationMessage("system", "Be brief.")
    assert [m.content for m in history[1:]] == ["message 3", "message 4", "message 5", "message 6"]


@pytest.mark.asyncio
async def test_default_bound_is_ten_turns():
    store = InMemoryConversationStore(max_turns=10)

    for i in range(15):
        await store.append("s", user(str(i)))
        await store.append("s", ConversationMessage("assistant", f"reply {i}"))

    history = await store.get("s")
    assert len(history) == 11
    assert history[0].role == "system"
    assert history[-1].content == "reply 14"


@pytest.mark.asyncio
async def test_sessions_are_isolated_and_clearable():
    store = InMemoryConversationStore()
    await store.append("a", user("hello"))
    await store.append("b", user("bonjour"))

    await store.clear("a")

    assert len(await store.get("a")) == 1
    assert (await store.get("b"))[-1].content == "bonjour"


@pytest.mark.asyncio
async def test_returned_history_is_a_copy():
    store = InMemoryConversationStore()
    history = await store.get("s")
    history.append(user("sneaky"))

    assert len(await store.get("s")) == 1


def test_invalid_role_rejected():
    with pytest.raises(DomainException):
        ConversationMessage("tool", "output")


def test_to_dict():
    assert user("hi").to_dict() == {"role": "user", "content": "hi"}


def test_max_turns_must_be_positive():
    with pytest.raises(ValueError):
        InMemoryConversationStore(max_turns=0)
