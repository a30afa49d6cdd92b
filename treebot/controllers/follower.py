"""
Follower - keeps the bot within a fixed distance of a player
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..config import AgentConfig
from ..logging_config import get_logger
from ..schemas.events import EventKind
from ..schemas.params import FollowParams
from ..world.gateway import Vec3
from .base import CancellationToken, Controller, ControllerState, StartOutcome

logger = get_logger(__name__)


@dataclass
class FollowerConfig:
    distance: float = 2
    # Extra slack before a new travel request is issued
    hysteresis: float = 1
    travel_timeout_s: float = 30.0

    @classmethod
    def from_agent_config(cls, config: AgentConfig) -> "FollowerConfig":
        return cls(distance=config.follow_distance, travel_timeout_s=config.travel_timeout_ms / 1000)


@dataclass
class FollowState(ControllerState):
    player: Optional[str] = None
    distance: float = 2


class Follower(Controller):
    """Following a player until stopped or the player disappears"""

    name = "follower"
    failure_message = "I'm having trouble following you!"

    def __init__(self, gateway, events, config: Optional[FollowerConfig] = None):
        self.config = config or FollowerConfig()
        super().__init__(gateway, events)

    def _fresh_state(self) -> FollowState:
        return FollowState(distance=self.config.distance)

    def describe(self) -> Dict[str, Any]:
        return {"player": self.state.player, "distance": self.state.distance}

    def _start_message(self) -> Optional[str]:
        return f"Following {self.state.player} at distance {_format_distance(self.state.distance)} blocks"

    def _on_start(self, params: Any, issuer: Optional[str]) -> StartOutcome:
        if not self._acquire(params, issuer):
            return self._fail_start("I can't find you!", "target_not_found")
        return StartOutcome.STARTED

    def _on_start_while_running(self, params: Any, issuer: Optional[str]) -> StartOutcome:
        for task in list(self._travel_tasks):
            task.cancel()
        if not self._acquire(params, issuer):
            # The old target is still valid; keep following it
            return self._reject("I can't find you!", "target_not_found")
        logger.info("follower: retargeted", **self.describe())
        self._emit(EventKind.START, message=self._start_message(), data=self.describe())
        return StartOutcome.RETARGETED

    def _acquire(self, params: Any, issuer: Optional[str]) -> bool:
        if not isinstance(params, FollowParams):
            params = FollowParams.model_validate(params or {})
        player = params.player_name or issuer
        position = self.gateway.entity_position(player) if player else None
        if position is None:
            return False

        self.state.player = player
        self.state.distance = params.distance or self.config.distance
        self._issue_travel(position, self.state.distance, self.config.travel_timeout_s)
        return True

    async def _step(self, token: CancellationToken) -> None:
        player = self.state.player
        target = self.gateway.entity_position(player)
        if target is None:
            logger.info("Lost track of followed player", player=player)
            self._finish(False, "lost_target", "I lost track of you!")
            return

        if self.gateway.is_traveling():
            return
        distance = self.gateway.current_position().distance_to(target)
        if distance > self.state.distance + self.config.hysteresis:
            self._follow_to(target)

    def _follow_to(self, target: Vec3) -> None:
        logger.debug("Catching up with player", player=self.state.player, target=target.to_dict())
        self._issue_travel(target, self.state.distance, self.config.travel_timeout_s)


def _format_distance(distance: float) -> str:
    if float(distance).is_integer():
        return str(int(distance))
    return str(distance)
