"""
Engager - attacks nearby hostile mobs or food animals until enough are killed
"""
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..config import AgentConfig
from ..constants import DANGER_MOBS, FOOD_ANIMALS, HOSTILE_MOBS
from ..errors import TargetLost
from ..logging_config import get_logger
from ..schemas.events import EventKind
from ..schemas.params import EngageParams, TargetSpec
from ..world.gateway import EntityInfo
from .base import CancellationToken, Controller, ControllerState, StartOutcome

logger = get_logger(__name__)


def category_keys(entity: EntityInfo) -> List[str]:
    """Names an entity is known by when checked against the allow and deny lists"""
    keys = []
    for value in (entity.name, entity.display_name):
        if value:
            key = value.strip().lower().replace(" ", "_")
            if key not in keys:
                keys.append(key)
    return keys


def is_engageable(entity: EntityInfo) -> bool:
    """Hostile mobs and food animals, never dangerous mobs"""
    keys = category_keys(entity)
    if any(key in DANGER_MOBS for key in keys):
        return False
    return any(key in HOSTILE_MOBS or key in FOOD_ANIMALS for key in keys)


@dataclass
class EngagerConfig:
    radius: float = 50
    min_interval_s: float = 0.25
    strike_cooldown_s: float = 1.0
    max_empty_scans: int = 20
    default_tool: str = "sword"
    approach_tolerance: float = 1
    travel_timeout_s: float = 30.0

    @classmethod
    def from_agent_config(cls, config: AgentConfig) -> "EngagerConfig":
        return cls(
            radius=config.engage_radius,
            min_interval_s=config.engage_min_interval_s,
            strike_cooldown_s=config.strike_cooldown_s,
            max_empty_scans=config.max_empty_scans,
            default_tool=config.default_tool,
            travel_timeout_s=config.travel_timeout_ms / 1000,
        )


@dataclass
class EngageState(ControllerState):
    target_spec: TargetSpec = field(default_factory=TargetSpec)
    tool: Optional[str] = None
    kill_count: int = 0
    empty_scans: int = 0
    current_target: Optional[int] = None
    last_step_at: Optional[float] = None
    cooldown_until: float = 0.0


class Engager(Controller):
    """Engaging the nearest eligible entity, one rate-limited step at a time"""

    name = "engager"
    failure_message = "Something went wrong during combat."

    def __init__(
        self,
        gateway,
        events,
        config: Optional[EngagerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or EngagerConfig()
        self._clock = clock
        super().__init__(gateway, events)

    def _fresh_state(self) -> EngageState:
        return EngageState()

    def describe(self) -> Dict[str, Any]:
        spec = self.state.target_spec
        return {
            "kill_count": self.state.kill_count,
            "desired_kill_count": spec.desired_kill_count,
            "entity_names": spec.entity_names if spec.accepts_any else sorted(spec.entity_names),
        }

    def _on_start(self, params: Any, issuer: Optional[str]) -> StartOutcome:
        if not isinstance(params, EngageParams):
            params = EngageParams.model_validate(params or {})
        self.state.target_spec = params.target_spec()
        self.state.tool = params.tool or self.config.default_tool
        return StartOutcome.STARTED

    def _on_start_while_running(self, params: Any, issuer: Optional[str]) -> StartOutcome:
        return self._reject("I'm already in combat!", "already_engaging")

    def find_targets(self) -> List[EntityInfo]:
        """Eligible entities within range, nearest first"""
        origin = self.gateway.current_position()
        own_id = self.gateway.self_entity_id()
        spec = self.state.target_spec

        candidates = []
        for entity in self.gateway.entities_within_radius(origin, self.config.radius):
            if not entity.alive or entity.position is None or entity.id == own_id:
                continue
            if origin.distance_to(entity.position) > self.config.radius:
                continue
            if not spec.matches(entity.name, entity.display_name):
                continue
            if not is_engageable(entity):
                continue
            candidates.append(entity)
        return sorted(candidates, key=lambda entity: origin.distance_to(entity.position))

    async def _step(self, token: CancellationToken) -> None:
        state = self.state
        now = self._clock()
        if state.last_step_at is not None and now - state.last_step_at < self.config.min_interval_s:
            return
        state.last_step_at = now

        targets = self.find_targets()
        if not targets:
            self._on_empty_scan()
            return

        state.empty_scans = 0
        target = targets[0]
        state.current_target = target.id
        if now < state.cooldown_until:
            return

        equipped = await self.gateway.equip(state.tool)
        if token.cancelled:
            return
        if not equipped:
            logger.debug("Fighting without requested tool", tool=state.tool)

        self._issue_travel(target.position, self.config.approach_tolerance, self.config.travel_timeout_s)
        try:
            await self.gateway.strike(target)
        except TargetLost:
            logger.info("Target left before the strike", target=target.id)
            state.current_target = None
            return
        except Exception as e:
            if token.cancelled:
                return
            logger.warning("Strike failed, retrying next step", target=target.id, error=str(e))
        if token.cancelled:
            return
        state.cooldown_until = self._clock() + self.config.strike_cooldown_s

    def _on_empty_scan(self) -> None:
        state = self.state
        state.current_target = None
        if state.kill_count >= state.target_spec.desired_kill_count:
            self._finish(True, "completed", "Killed all targets!")
            return

        state.empty_scans += 1
        if state.empty_scans >= self.config.max_empty_scans:
            self._finish(False, "no_valid_targets", "I can't find any valid targets nearby!")

    def on_entity_died(self, entity_id: int) -> None:
        """Count a kill when the tracked target dies"""
        state = self.state
        if not self.is_running or state.current_target is None or entity_id != state.current_target:
            return

        state.kill_count += 1
        state.current_target = None
        desired = state.target_spec.desired_kill_count
        logger.info("Target killed", entity=entity_id, kill_count=state.kill_count, desired=desired)
        self._emit(EventKind.PROGRESS, message=f"Killed {state.kill_count}/{desired}", data=self.describe())
        if state.kill_count >= desired:
            self._finish(True, "completed", "Killed all targets!")
