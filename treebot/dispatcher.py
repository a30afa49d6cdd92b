"""
Dispatcher - routes resolved commands to controllers and drives their ticks

At most one controller runs at a time: starting one stops every other
running controller first, so their STOP events always precede the new
START event on the stream.
"""
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from .controllers.base import Controller, StartOutcome
from .controllers.inventory import InventoryService
from .errors import ConfigurationError
from .event_stream import EventStream
from .intents.registry import CapabilityRegistry
from .logging_config import get_logger
from .schemas.events import EventKind
from .schemas.intents import ResolvedIntent
from .schemas.params import PARAMETER_RECORDS

logger = get_logger(__name__)

STOP_CAPABILITY = "stopAction"

CONTROLLER_ROUTES: Dict[str, str] = {
    "findTrees": "harvester",
    "followPlayer": "follower",
    "engage": "engager",
}

ONE_SHOT_CAPABILITIES = ("checkInventory", "giveWood")


class Dispatcher:
    """Enforces mutual exclusion between controllers and forwards ticks"""

    def __init__(
        self,
        registry: CapabilityRegistry,
        controllers: Mapping[str, Controller],
        inventory: InventoryService,
        events: EventStream,
        routes: Optional[Mapping[str, str]] = None,
    ):
        self.registry = registry
        self.controllers: Dict[str, Controller] = dict(controllers)
        self.inventory = inventory
        self.events = events
        self.routes: Dict[str, str] = dict(CONTROLLER_ROUTES if routes is None else routes)
        self.tick_count = 0
        self.dropped_ticks = 0
        self._tick_in_progress = False

    @property
    def active_controller(self) -> Optional[Controller]:
        for controller in self.controllers.values():
            if not controller.is_idle:
                return controller
        return None

    async def handle_command(self, intent: ResolvedIntent) -> Optional[str]:
        """Execute a command intent

        Returns:
            A report for one-shot capabilities or an error line, None otherwise
        """
        name = intent.capability_name
        logger.info("Handling command", capability=name, issuer=intent.issuer, tick=self.tick_count)
        try:
            if name not in self.registry:
                raise ConfigurationError(f"Capability '{name}' is not registered")

            if name == STOP_CAPABILITY:
                self.stop_all()
                return None

            params = self._build_params(name, intent.parameters)
            if name in self.routes:
                self._start_controller(self._controller_for(name), params, intent.issuer)
                return None

            if name in ONE_SHOT_CAPABILITIES:
                self.stop_all()
                return await self._run_one_shot(name, params, intent.issuer)

            raise ConfigurationError(f"Capability '{name}' has no controller or service")
        except ConfigurationError as e:
            logger.error("Dispatch failed", capability=name, error=str(e))
            self.events.emit(
                EventKind.DISPATCH_ERROR,
                "dispatcher",
                tick=self.tick_count,
                success=False,
                reason="configuration_error",
                data={"capability": name, "error": str(e)},
            )
            return f"Sorry, I don't know how to do {name} yet."

    def _controller_for(self, capability_name: str) -> Controller:
        controller_name = self.routes[capability_name]
        controller = self.controllers.get(controller_name)
        if controller is None:
            raise ConfigurationError(f"Capability '{capability_name}' routes to missing controller '{controller_name}'")
        return controller

    def _build_params(self, capability_name: str, parameters: Dict[str, Any]) -> Any:
        record = PARAMETER_RECORDS.get(capability_name)
        if record is None:
            return dict(parameters)
        try:
            return record.model_validate(parameters)
        except ValidationError as e:
            invalid = {error["loc"][0] for error in e.errors() if error["loc"]}
            logger.warning("Invalid parameters, using defaults", capability=capability_name, fields=sorted(map(str, invalid)))
            kept = {key: value for key, value in parameters.items() if key not in invalid}
        try:
            return record.model_validate(kept)
        except ValidationError as e:
            logger.warning("Parameters still invalid, using all defaults", capability=capability_name, error=str(e))
            return record.model_validate({})

    def _start_controller(self, controller: Controller, params: Any, issuer: Optional[str]) -> StartOutcome:
        for other in self.controllers.values():
            if other is not controller and not other.is_idle:
                other.stop("superseded")
        outcome = controller.start(params, issuer, self.tick_count)
        logger.debug("Controller start outcome", controller=controller.name, outcome=outcome.value)
        return outcome

    async def _run_one_shot(self, capability_name: str, params: Any, issuer: Optional[str]) -> str:
        if capability_name == "checkInventory":
            return self.inventory.report(params)
        return await self.inventory.give(params, issuer)

    def stop_all(self, reason: str = "stopped") -> int:
        """Stop every controller; returns how many were running"""
        return sum(1 for controller in self.controllers.values() if controller.stop(reason))

    async def tick(self) -> None:
        """Advance the running controller by one step; overlapping ticks are dropped"""
        if self._tick_in_progress:
            self.dropped_ticks += 1
            return

        self._tick_in_progress = True
        self.tick_count += 1
        try:
            for controller in list(self.controllers.values()):
                if controller.is_running:
                    await controller.tick(self.tick_count)
        finally:
            self._tick_in_progress = False

    def on_entity_died(self, entity_id: int) -> None:
        """Forward a death notification to controllers that count kills"""
        for controller in self.controllers.values():
            handler = getattr(controller, "on_entity_died", None)
            if handler is not None:
                handler(entity_id)
