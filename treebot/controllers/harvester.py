"""
Harvester - finds trees and extracts their trunks one log per tick
"""
import asyncio
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from ..config import AgentConfig
from ..constants import ANY, DROPPED_ITEM_KINDS, TREE_BLOCKS
from ..logging_config import get_logger
from ..schemas.events import EventKind
from ..schemas.params import HarvestParams
from ..world.gateway import BlockInfo, EntityInfo, TravelOutcome, Vec3
from .base import CancellationToken, Controller, ControllerState, StartOutcome

logger = get_logger(__name__)


def is_tree_log(block_name: Optional[str], tree_type: str = ANY) -> bool:
    """Check if a block name is a log of the given wood type"""
    if not block_name:
        return False
    if tree_type == ANY:
        return any(tree_name in block_name for tree_name in TREE_BLOCKS)
    return f"{tree_type}_log" in block_name


@dataclass
class HarvesterConfig:
    max_trees: int = 5
    search_radius: int = 32
    vertical_search: int = 4
    reach_tolerance: float = 2
    pickup_tolerance: float = 1
    pickup_radius: float = 5
    settle_delay_s: float = 0.5
    pickup_delay_s: float = 0.5
    search_block_limit: int = 256
    travel_timeout_s: float = 30.0

    @classmethod
    def from_agent_config(cls, config: AgentConfig) -> "HarvesterConfig":
        return cls(
            max_trees=config.max_trees,
            search_radius=config.search_radius,
            vertical_search=config.vertical_search,
            pickup_radius=config.pickup_radius,
            settle_delay_s=config.settle_delay_s,
            pickup_delay_s=config.pickup_delay_s,
            search_block_limit=config.search_block_limit,
            travel_timeout_s=config.travel_timeout_ms / 1000,
        )


class HarvestStage(str, Enum):
    SEARCHING = "searching"
    TRAVELING = "traveling"
    EXTRACTING = "extracting"


Position = Tuple[int, int, int]


@dataclass
class HarvestState(ControllerState):
    tree_type: str = ANY
    max_count: int = 5
    harvested_count: int = 0
    stage: HarvestStage = HarvestStage.SEARCHING
    node: Optional[Vec3] = None
    current_block: Optional[Vec3] = None
    node_logs: int = 0
    visited: Set[Position] = field(default_factory=set)
    skipped: Set[Position] = field(default_factory=set)


def _key(position: Vec3) -> Position:
    floored = position.floored()
    return (int(floored.x), int(floored.y), int(floored.z))


class Harvester(Controller):
    """Searching -> Traveling -> Extracting, repeated until enough trees are cut"""

    name = "harvester"
    failure_message = "Something went wrong while harvesting trees."

    def __init__(self, gateway, events, config: Optional[HarvesterConfig] = None):
        self.config = config or HarvesterConfig()
        super().__init__(gateway, events)

    def _fresh_state(self) -> HarvestState:
        return HarvestState(max_count=self.config.max_trees)

    def describe(self) -> Dict[str, Any]:
        return {
            "harvested_count": self.state.harvested_count,
            "tree_type": self.state.tree_type,
            "max_count": self.state.max_count,
        }

    def _on_start(self, params: Any, issuer: Optional[str]) -> StartOutcome:
        if not isinstance(params, HarvestParams):
            params = HarvestParams.model_validate(params or {})
        self.state.tree_type = params.tree_type
        self.state.max_count = params.max_count or self.config.max_trees
        return StartOutcome.STARTED

    def _on_start_while_running(self, params: Any, issuer: Optional[str]) -> StartOutcome:
        return self._reject("I'm already harvesting trees!", "already_harvesting")

    async def _step(self, token: CancellationToken) -> None:
        stage = self.state.stage
        if stage is HarvestStage.SEARCHING:
            await self._search(token)
        elif stage is HarvestStage.TRAVELING:
            await self._travel(token)
        elif stage is HarvestStage.EXTRACTING:
            await self._extract(token)

    async def _search(self, token: CancellationToken) -> None:
        node = await self.find_nearest_tree(token)
        if token.cancelled:
            return
        if node is None:
            tree_type = self.state.tree_type
            self._finish(True, "exhausted", f"No more {tree_type} trees found nearby.")
            return

        logger.info("Tree found", position=node.position.to_dict(), block=node.name)
        self.state.node = node.position
        self.state.stage = HarvestStage.TRAVELING

    async def find_nearest_tree(self, token: CancellationToken) -> Optional[BlockInfo]:
        """Nearest unvisited log inside the search box; ties keep the order the gateway reports"""
        origin = self.gateway.current_position()
        center = origin.floored()
        radius, vertical = self.config.search_radius, self.config.vertical_search
        excluded = self.state.visited | self.state.skipped

        names = self._log_names()
        reach = math.sqrt(2 * radius * radius + vertical * vertical)
        positions = await self.gateway.find_blocks(origin, names, reach, self.config.search_block_limit + len(excluded))
        if token.cancelled:
            return None

        candidates = []
        for position in positions:
            if abs(position.y - center.y) > vertical:
                continue
            if abs(position.x - center.x) > radius or abs(position.z - center.z) > radius:
                continue
            if _key(position) in excluded:
                continue
            candidates.append(position)

        # sorted() is stable, so equal distances keep the reported order
        for position in sorted(candidates, key=origin.distance_to):
            block = self.gateway.block_at(position)
            if block is not None and is_tree_log(block.name, self.state.tree_type):
                return BlockInfo(block.name, position)
        return None

    def _log_names(self) -> List[str]:
        if self.state.tree_type == ANY:
            return list(TREE_BLOCKS)
        return [f"{self.state.tree_type}_log"]

    async def _travel(self, token: CancellationToken) -> None:
        node = self.state.node
        outcome = await self.gateway.travel_near(node, self.config.reach_tolerance, self.config.travel_timeout_s)
        if token.cancelled:
            return

        if outcome is TravelOutcome.REACHED:
            self.state.current_block = node
            self.state.stage = HarvestStage.EXTRACTING
            return

        logger.warning("Could not reach tree, skipping", position=node.to_dict(), outcome=outcome.value)
        self._skip_node()

    async def _extract(self, token: CancellationToken) -> None:
        position = self.state.current_block
        block = self.gateway.block_at(position)
        if block is None or not is_tree_log(block.name, self.state.tree_type):
            if self.state.node_logs:
                self._complete_node()
            else:
                logger.info("Tree is gone, skipping", position=position.to_dict())
                self._skip_node()
            return

        try:
            await self.gateway.dig(block)
        except Exception as e:
            if token.cancelled:
                return
            logger.warning("Error harvesting tree, skipping", position=position.to_dict(), error=str(e))
            self._skip_node()
            return
        if token.cancelled:
            return

        self.state.visited.add(_key(position))
        self.state.node_logs += 1
        await asyncio.sleep(self.config.settle_delay_s)
        if token.cancelled:
            return

        await self._collect_drops(token)
        if token.cancelled:
            return

        above = position.offset(0, 1, 0)
        above_block = self.gateway.block_at(above)
        if above_block is not None and above_block.name == block.name:
            self.state.current_block = above
        else:
            self._complete_node()

    async def _collect_drops(self, token: CancellationToken) -> None:
        for drop in self._dropped_logs():
            if token.cancelled:
                return
            outcome = await self.gateway.travel_near(drop.position, self.config.pickup_tolerance, self.config.travel_timeout_s)
            if outcome is not TravelOutcome.REACHED:
                logger.debug("Could not collect log", entity=drop.id, outcome=outcome.value)
            await asyncio.sleep(self.config.pickup_delay_s)

    def _dropped_logs(self) -> List[EntityInfo]:
        position = self.gateway.current_position()
        drops = []
        for entity in self.gateway.entities_within_radius(position, self.config.pickup_radius):
            if entity.kind not in DROPPED_ITEM_KINDS or entity.position is None:
                continue
            if not is_tree_log(entity.item_name or entity.name, ANY):
                continue
            if entity.position.distance_to(position) < self.config.pickup_radius:
                drops.append(entity)
        return drops

    def _complete_node(self) -> None:
        state = self.state
        state.visited.add(_key(state.node))
        state.harvested_count += 1
        state.node = None
        state.current_block = None
        state.node_logs = 0
        state.stage = HarvestStage.SEARCHING

        message = f"Harvested {state.tree_type} tree {state.harvested_count}/{state.max_count}"
        self._emit(EventKind.PROGRESS, message=message, data=self.describe())
        if state.harvested_count >= state.max_count:
            self._finish(True, "completed", "Tree harvesting complete!")

    def _skip_node(self) -> None:
        state = self.state
        state.skipped.add(_key(state.node))
        state.skipped.update(self._trunk_keys(state.current_block or state.node))
        state.node = None
        state.current_block = None
        state.node_logs = 0
        state.stage = HarvestStage.SEARCHING

    def _trunk_keys(self, node: Vec3) -> Set[Position]:
        """The node plus every log stacked directly above or below it"""
        keys = {_key(node)}
        for step in (1, -1):
            position = node.offset(0, step, 0)
            while True:
                block = self.gateway.block_at(position)
                if block is None or not is_tree_log(block.name, self.state.tree_type):
                    break
                keys.add(_key(position))
                position = position.offset(0, step, 0)
        return keys
