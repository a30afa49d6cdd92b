"""
Chat session - connects the bot, feeds it chat mentions and reconnects on loss
"""
import asyncio
import re
from typing import Optional, Set

from .agent import TreeBotAgent, build_agent
from .bridge.bridge_manager import BridgeConfig, BridgeManager
from .bridge.mineflayer_gateway import MineflayerGateway
from .config import AgentConfig
from .intents.registry import CapabilityRegistry
from .llm.gemini import LanguageModel
from .logging_config import get_logger

logger = get_logger(__name__)


def mentions_bot(username: str, message: str, bot_name: str) -> bool:
    """Whether a chat line is addressed to the bot"""
    if not message or username == bot_name:
        return False
    if message.startswith("/"):
        return False
    return f"@{bot_name}".lower() in message.lower()


def strip_mention(message: str, bot_name: str) -> str:
    return re.sub(rf"@{re.escape(bot_name)}\b", "", message, flags=re.IGNORECASE).strip()


class ChatSession:
    """Lifecycle of one bot identity: connect, converse, reset, reconnect"""

    def __init__(
        self,
        config: AgentConfig,
        model: LanguageModel,
        bridge: Optional[BridgeManager] = None,
        registry: Optional[CapabilityRegistry] = None,
    ):
        self.config = config
        self.bridge = bridge or BridgeManager(BridgeConfig.from_agent_config(config))
        self.gateway = MineflayerGateway(self.bridge)
        self.agent: TreeBotAgent = build_agent(config, self.gateway, model, registry=registry)
        self._disconnected = asyncio.Event()
        self._closed = False
        self._pending: Set[asyncio.Future] = set()

        self.bridge.register_event_handler("chat", self._on_chat)
        self.bridge.register_event_handler("end", self._on_disconnect)
        self.bridge.register_event_handler("kicked", self._on_disconnect)

    @property
    def bot_name(self) -> str:
        return self.config.bot_username

    async def run(self) -> None:
        """Connect and keep reconnecting until closed"""
        while not self._closed:
            try:
                await self.bridge.connect()
            except Exception as e:
                logger.error("Failed to connect", error=str(e))
                await asyncio.sleep(self.config.reconnect_delay_s)
                continue

            self._disconnected.clear()
            self.agent.start()
            logger.info("Session started", bot=self.bot_name)
            await self._disconnected.wait()

            await self.agent.reset()
            if self._closed:
                break
            logger.info("Disconnected, reconnecting", delay_s=self.config.reconnect_delay_s)
            await asyncio.sleep(self.config.reconnect_delay_s)

    def _on_chat(self, username: str, message: str, *args) -> None:
        if not mentions_bot(username, message, self.bot_name):
            return
        task = asyncio.ensure_future(self.respond(username, strip_mention(message, self.bot_name)))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def respond(self, username: str, text: str) -> Optional[str]:
        """Answer one chat message in game"""
        logger.info("Chat received", username=username, text=text)
        context = {"position": self._safe_position(), "health": self.bridge.health()}
        try:
            reply = await self.agent.handle_message(username, text, context)
        except Exception as e:
            logger.error("Error handling chat", username=username, error=str(e), exc_info=True)
            reply = self.agent.state.templates.error()
        if reply:
            await self.gateway.chat(reply)
        return reply

    def _safe_position(self):
        try:
            return self.gateway.current_position()
        except Exception:
            return None

    def _on_disconnect(self, *args) -> None:
        reason = str(args[0]) if args else "unknown"
        logger.warning("Bot disconnected", reason=reason)
        self._disconnected.set()

    async def close(self) -> None:
        self._closed = True
        self._disconnected.set()
        for task in list(self._pending):
            task.cancel()
        await self.agent.shutdown()
        await self.bridge.close()
