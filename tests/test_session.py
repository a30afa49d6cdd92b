"""
Tests for the chat session
"""
import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from treebot.bridge import BridgeConfig, BridgeManager
from treebot.session import ChatSession, mentions_bot, strip_mention

from tests.mocks import FakeModel, make_config


@pytest.fixture
def bridge():
    bridge = BridgeManager(BridgeConfig())
    bridge.bot = MagicMock()
    bridge.bot.entity.position = SimpleNamespace(x=1.4, y=64, z=-2.6)
    bridge.bot.health = 20
    return bridge


def make_session(bridge, *replies, **overrides):
    config = make_config(reconnect_delay_s=0, **overrides)
    return ChatSession(config, FakeModel(*replies), bridge=bridge)


@pytest.mark.parametrize(
    "username,message,expected",
    [
        ("Steve", "@AI chop some trees", True),
        ("Steve", "hey @ai follow me", True),
        ("Steve", "chop some trees", False),
        ("AI", "@AI talking to myself", False),
        ("Steve", "/msg @AI hi", False),
        ("Steve", "", False),
    ],
)
def test_mentions_bot(username, message, expected):
    assert mentions_bot(username, message, "AI") is expected


def test_strip_mention():
    assert strip_mention("@AI chop some trees", "AI") == "chop some trees"
    assert strip_mention("hey @ai, follow me", "AI") == "hey , follow me"


@pytest.mark.asyncio
async def test_respond_sends_reply_to_chat(bridge):
    session = make_session(bridge, "Hello Steve!")

    reply = await session.respond("Steve", "hi")

    assert reply == "Hello Steve!"
    bridge.bot.chat.assert_called_once_with("Hello Steve!")
    prompt = session.agent.model.prompts[0]
    assert "- Bot position: 1, 64, -3" in prompt
    assert "- Bot health: 20" in prompt


@pytest.mark.asyncio
async def test_respond_survives_agent_errors(bridge):
    session = make_session(bridge)
    session.agent.handle_message = AsyncMock(side_effect=RuntimeError("boom"))

    reply = await session.respond("Steve", "hi")

    assert reply in session.agent.state.registry.responses["error"]
    bridge.bot.chat.assert_called_once_with(reply)


@pytest.mark.asyncio
async def test_chat_mentions_are_answered(bridge):
    session = make_session(bridge, "On it!")

    bridge._handle_event("chat", ("Steve", "nice weather"))
    bridge._handle_event("chat", ("AI", "@AI echo"))
    bridge._handle_event("chat", ("Steve", "@AI say something"))
    await asyncio.gather(*session._pending)

    assert session.agent.model.prompts and 'User message: "say something"' in session.agent.model.prompts[0]
    bridge.bot.chat.assert_called_once_with("On it!")


@pytest.mark.asyncio
async def test_run_reconnects_until_closed(bridge):
    session = make_session(bridge)
    bridge.connect = AsyncMock(side_effect=[ConnectionRefusedError("server down"), None, None])
    bridge.close = AsyncMock()

    runner = asyncio.ensure_future(session.run())
    for _ in range(5):
        await asyncio.sleep(0)
    assert bridge.connect.await_count == 2

    bridge._handle_event("end", ("socket closed",))
    for _ in range(20):
        await asyncio.sleep(0)
    assert bridge.connect.await_count == 3

    await session.close()
    await asyncio.wait_for(runner, timeout=1)
    bridge.close.assert_awaited_once()
