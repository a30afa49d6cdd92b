"""
TreeBot agent - wires resolution, dispatch and controllers around one gateway

The whole mutable state lives in an explicit AgentState that is built when
the bot connects and rebuilt when it disconnects.
"""
import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .config import AgentConfig
from .controllers import (
    Controller,
    Engager,
    EngagerConfig,
    Follower,
    FollowerConfig,
    Harvester,
    HarvesterConfig,
    InventoryService,
)
from .dispatcher import Dispatcher
from .event_stream import EventStream, OutcomeAnnouncer, log_event
from .intents import (
    CapabilityRegistry,
    IntentResolver,
    ResponseTemplates,
    build_function_call_prompt,
    load_registry,
    response_params,
    response_template_kind,
)
from .llm.gemini import LanguageModel
from .logging_config import get_logger
from .schemas.intents import IntentKind
from .world.gateway import WorldGateway

logger = get_logger(__name__)


@dataclass
class AgentState:
    """Everything the agent mutates, rebuilt on every connection"""

    registry: CapabilityRegistry
    resolver: IntentResolver
    templates: ResponseTemplates
    controllers: Dict[str, Controller]
    inventory: InventoryService
    dispatcher: Dispatcher
    events: EventStream


class TickClock:
    """Fixed-rate loop awaiting one tick at a time"""

    def __init__(self, tick: Callable[[], Awaitable[None]], interval_s: float = 0.05):
        self._tick = tick
        self.interval_s = interval_s
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        self._running = True
        logger.info("Tick clock started", interval_s=self.interval_s)
        try:
            while self._running:
                started = loop.time()
                try:
                    await self._tick()
                except Exception as e:
                    logger.error("Tick failed", error=str(e), exc_info=True)
                elapsed = loop.time() - started
                await asyncio.sleep(max(0.0, self.interval_s - elapsed))
        finally:
            self._running = False
            logger.info("Tick clock stopped")

    def stop(self) -> None:
        self._running = False


class TreeBotAgent:
    """Answers chat messages and runs the resulting commands"""

    def __init__(
        self,
        config: AgentConfig,
        gateway: WorldGateway,
        model: LanguageModel,
        registry: Optional[CapabilityRegistry] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.gateway = gateway
        self.model = model
        self._registry = registry
        self._rng = rng
        self.state = self._build_state()
        self.clock = TickClock(self.tick, config.tick_interval_ms / 1000)
        self._tasks: List[asyncio.Task] = []
        gateway.on_entity_died(self._on_entity_died)

    def _build_state(self) -> AgentState:
        config = self.config
        registry = self._registry or load_registry(config.capability_document)
        events = EventStream()
        events.register_handler("*", log_event)
        OutcomeAnnouncer(self.gateway.chat).attach(events)

        travel_timeout_s = config.travel_timeout_ms / 1000
        controllers: Dict[str, Controller] = {
            "harvester": Harvester(self.gateway, events, HarvesterConfig.from_agent_config(config)),
            "follower": Follower(self.gateway, events, FollowerConfig.from_agent_config(config)),
            "engager": Engager(self.gateway, events, EngagerConfig.from_agent_config(config)),
        }
        inventory = InventoryService(self.gateway, travel_timeout_s=travel_timeout_s)
        return AgentState(
            registry=registry,
            resolver=IntentResolver(registry, events),
            templates=ResponseTemplates.from_registry(registry, self._rng),
            controllers=controllers,
            inventory=inventory,
            dispatcher=Dispatcher(registry, controllers, inventory, events),
            events=events,
        )

    async def handle_message(self, issuer: str, text: str, context: Optional[Dict[str, Any]] = None) -> str:
        """Resolve a chat message and return the reply to send"""
        state = self.state
        prompt_context = {"bot_name": self.config.bot_username, **(context or {}), "player_name": issuer}
        prompt = build_function_call_prompt(state.registry, text, prompt_context)

        try:
            model_text = await self.model.generate(prompt)
        except Exception as e:
            logger.error("Error processing message with model", issuer=issuer, error=str(e))
            return state.templates.error()

        intent = state.resolver.resolve(model_text, issuer)
        if intent.kind is IntentKind.UNPARSABLE:
            logger.warning("Model reply could not be resolved", issuer=issuer, reason=intent.reason)
            return state.templates.error()
        if intent.kind is IntentKind.CONVERSATIONAL:
            return intent.text

        acknowledgement = state.templates.render(
            response_template_kind(intent.capability_name),
            response_params(intent.parameters, issuer),
        )
        report = await state.dispatcher.handle_command(intent)
        return " ".join(part for part in (acknowledgement, report) if part)

    async def tick(self) -> None:
        await self.state.dispatcher.tick()

    def _on_entity_died(self, entity_id: int) -> None:
        self.state.dispatcher.on_entity_died(entity_id)

    def start(self) -> None:
        """Start the tick clock and the event consumer"""
        if self._tasks:
            return
        self._tasks = [
            asyncio.ensure_future(self.clock.run()),
            asyncio.ensure_future(self.state.events.run()),
        ]

    async def shutdown(self) -> None:
        """Stop every controller and background task"""
        self.state.dispatcher.stop_all("shutdown")
        self.clock.stop()
        self.state.events.stop()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        await self.state.events.drain()

    async def reset(self) -> None:
        """Drop all runtime state, as after a disconnect"""
        await self.shutdown()
        self.state = self._build_state()
        logger.info("Agent state reset")


def build_agent(
    config: AgentConfig,
    gateway: WorldGateway,
    model: LanguageModel,
    registry: Optional[CapabilityRegistry] = None,
    rng: Optional[random.Random] = None,
) -> TreeBotAgent:
    """Factory used by the session on connect"""
    return TreeBotAgent(config, gateway, model, registry=registry, rng=rng)
