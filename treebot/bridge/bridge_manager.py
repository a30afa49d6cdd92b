"""
JSPyBridge Manager - starts the Mineflayer bot and relays its events to asyncio
"""
import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

if TYPE_CHECKING:
    from ..config import AgentConfig

from ..logging_config import get_logger

logger = get_logger(__name__)

BOT_EVENTS = ("chat", "spawn", "end", "kicked", "error", "death", "entityDead")


@dataclass
class BridgeConfig:
    """Connection settings for the Mineflayer bot"""

    host: str = "127.0.0.1"
    port: int = 25565
    username: str = "AI"
    version: str = "1.20.4"
    auth: str = "offline"
    spawn_timeout_s: float = 30.0

    @classmethod
    def from_agent_config(cls, config: "AgentConfig") -> "BridgeConfig":
        return cls(
            host=config.minecraft_host,
            port=config.minecraft_port,
            username=config.bot_username,
            version=config.minecraft_version,
        )


class BridgeManager:
    """Owns the JavaScript bot object and marshals its events onto the event loop"""

    def __init__(self, config: Optional[BridgeConfig] = None):
        self.config = config or BridgeConfig()
        self.bot = None
        self.pathfinder = None
        self.vec3 = None
        self.event_handlers: Dict[str, List[Callable]] = {}
        self.is_connected = False
        self.is_spawned = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    async def connect(self) -> None:
        """Create the bot, load the pathfinder plugin and wait for spawn"""
        from javascript import On, require

        self._loop = asyncio.get_running_loop()
        mineflayer = require("mineflayer")
        self.pathfinder = require("mineflayer-pathfinder")
        self.vec3 = require("vec3")

        logger.info(
            f"Starting bot with configuration: host={self.config.host}, port={self.config.port}, "
            f"username={self.config.username}, version={self.config.version}"
        )
        self.bot = mineflayer.createBot(
            {
                "host": self.config.host,
                "port": self.config.port,
                "username": self.config.username,
                "auth": self.config.auth,
                "version": self.config.version,
            }
        )
        self.bot.loadPlugin(self.pathfinder.pathfinder)

        for event in BOT_EVENTS:
            On(self.bot, event)(self._make_listener(event))
        self.is_connected = True

        self.is_spawned = await self._wait_for_spawn_with_timeout(self.config.spawn_timeout_s)
        if not self.is_spawned:
            raise TimeoutError(
                f"Bot failed to spawn - check if Minecraft server is running on {self.config.host}:{self.config.port}"
            )

        movements = self.pathfinder.Movements(self.bot)
        self.bot.pathfinder.setMovements(movements)
        logger.info("Bot spawned successfully and ready to use", username=self.config.username)

    async def _wait_for_spawn_with_timeout(self, timeout: float) -> bool:
        start_time = self._loop.time()
        while self._loop.time() - start_time < timeout:
            try:
                if self.bot.entity is not None:
                    return True
            except Exception as e:
                logger.debug(f"Error checking spawn status: {e}")
            await asyncio.sleep(0.5)

        logger.warning(f"Bot spawn timeout after {timeout}s - server may not be running")
        return False

    def _make_listener(self, event_type: str) -> Callable:
        def listener(this, *args):
            # JSPyBridge calls listeners on its own thread
            self._loop.call_soon_threadsafe(self._handle_event, event_type, args)

        return listener

    def _handle_event(self, event_type: str, args) -> None:
        logger.debug(f"Received event: {event_type}")
        if event_type in ("end", "kicked"):
            self.is_connected = False
            self.is_spawned = False

        for handler in self.event_handlers.get(event_type, []):
            try:
                handler(*args)
            except Exception as e:
                logger.error("Error in event handler", event_type=event_type, error=str(e))

    def register_event_handler(self, event_type: str, handler: Callable[..., Any]) -> None:
        """Register a handler for specific bot events"""
        self.event_handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Registered handler for event: {event_type}")

    def health(self) -> Optional[float]:
        try:
            return self.bot.health
        except Exception:
            return None

    async def close(self) -> None:
        """Quit the bot and forget it"""
        logger.info("Closing bridge")
        if self.bot is not None:
            try:
                self.bot.quit()
            except Exception as e:
                logger.debug(f"Error quitting bot: {e}")
        self.bot = None
        self.is_connected = False
        self.is_spawned = False
        logger.info("Bridge closed")
