"""
Mineflayer gateway - the WorldGateway backed by a JSPyBridge bot

JavaScript calls block the calling thread; long actions (pathfinding,
digging, tossing) run in a worker thread so the event loop keeps ticking.
"""
import asyncio
from typing import Any, List, Optional, Sequence, Union

from ..errors import ActionTimeout, TargetLost
from ..logging_config import get_logger
from ..world.gateway import (
    BlockInfo,
    EntityDiedCallback,
    EntityInfo,
    InventoryItem,
    TravelOutcome,
    Vec3,
)
from .bridge_manager import BridgeManager

logger = get_logger(__name__)

# Extra time granted to the JavaScript promise beyond the Python timeout
JS_TIMEOUT_BUFFER_MS = 5000
DIG_TIMEOUT_MS = 15000


def _vec(position: Any) -> Optional[Vec3]:
    if position is None:
        return None
    return Vec3(float(position.x), float(position.y), float(position.z))


class MineflayerGateway:
    """World queries and actions on a live Mineflayer bot"""

    def __init__(self, bridge: BridgeManager):
        self.bridge = bridge

    @property
    def bot(self):
        if self.bridge.bot is None:
            raise RuntimeError("Bridge is not connected")
        return self.bridge.bot

    def _js_vec(self, position: Vec3):
        return self.bridge.vec3(position.x, position.y, position.z)

    # Queries

    def current_position(self) -> Vec3:
        return _vec(self.bot.entity.position)

    def self_entity_id(self) -> Optional[int]:
        entity = self.bot.entity
        return entity.id if entity is not None else None

    def block_at(self, position: Vec3) -> Optional[BlockInfo]:
        block = self.bot.blockAt(self._js_vec(position))
        if block is None:
            return None
        return BlockInfo(block.name, _vec(block.position))

    async def find_blocks(self, center: Vec3, names: Sequence[str], max_distance: float, count: int) -> List[Vec3]:
        """One findBlocks search for the named blocks around center"""
        blocks_by_name = self.bot.registry.blocksByName
        ids = []
        for name in names:
            block_type = blocks_by_name[name]
            if block_type is not None:
                ids.append(block_type.id)
        if not ids:
            return []
        options = {"matching": ids, "maxDistance": max_distance, "count": count, "point": self._js_vec(center)}

        def search():
            return [_vec(position) for position in self.bot.findBlocks(options)]

        return await asyncio.to_thread(search)

    def _entity_info(self, entity) -> EntityInfo:
        item_name = None
        if entity.type in ("object", "item"):
            try:
                dropped = entity.getDroppedItem()
                item_name = dropped.name if dropped is not None else None
            except Exception as e:
                logger.debug(f"Could not read dropped item: {e}")
        return EntityInfo(
            id=entity.id,
            name=entity.name,
            position=_vec(entity.position),
            display_name=entity.displayName,
            kind=entity.type,
            alive=bool(entity.isValid),
            username=entity.username,
            item_name=item_name,
        )

    def entities_within_radius(self, center: Vec3, radius: float) -> List[EntityInfo]:
        entities = self.bot.entities
        found = []
        for key in entities:
            entity = entities[key]
            if entity is None or entity.position is None:
                continue
            info = self._entity_info(entity)
            if info.position.distance_to(center) <= radius:
                found.append(info)
        return found

    def entity_position(self, identity: Union[str, int]) -> Optional[Vec3]:
        if isinstance(identity, str):
            player = self.bot.players[identity]
            if player is None or player.entity is None:
                return None
            return _vec(player.entity.position)
        entity = self.bot.entities[identity]
        if entity is None:
            return None
        return _vec(entity.position)

    def inventory_items(self) -> List[InventoryItem]:
        return [InventoryItem(item.name, item.count, item.slot) for item in self.bot.inventory.items()]

    def is_traveling(self) -> bool:
        return bool(self.bot.pathfinder.isMoving())

    # Actions

    async def travel_near(self, position: Vec3, tolerance: float, timeout: float) -> TravelOutcome:
        goal = self.bridge.pathfinder.goals.GoalNear(position.x, position.y, position.z, tolerance)
        js_timeout = int(timeout * 1000) + JS_TIMEOUT_BUFFER_MS

        def goto():
            self.bot.pathfinder.goto(goal, timeout=js_timeout)

        try:
            await asyncio.wait_for(asyncio.to_thread(goto), timeout)
            return TravelOutcome.REACHED
        except asyncio.TimeoutError:
            logger.warning("Travel timed out", target=position.to_dict(), timeout_s=timeout)
            self.stop_travel()
            return TravelOutcome.TIMEOUT
        except Exception as e:
            message = str(e)
            if "GoalChanged" in message or "goal was changed" in message.lower():
                return TravelOutcome.SUPERSEDED
            if "timeout" in message.lower() or "timed out" in message.lower():
                return TravelOutcome.TIMEOUT
            logger.warning("Travel failed", target=position.to_dict(), error=message)
            return TravelOutcome.FAILED

    def stop_travel(self) -> None:
        try:
            self.bot.pathfinder.setGoal(None)
            self.bot.pathfinder.stop()
        except Exception as e:
            logger.debug(f"Error stopping movement: {e}")

    async def dig(self, block: BlockInfo) -> None:
        target = self.bot.blockAt(self._js_vec(block.position))
        if target is None or target.name != block.name:
            raise RuntimeError(f"Block {block.name} is no longer at {block.position.to_dict()}")
        try:
            await asyncio.to_thread(lambda: self.bot.dig(target, timeout=DIG_TIMEOUT_MS))
        except Exception as e:
            message = str(e).lower()
            if "timeout" in message or "timed out" in message:
                raise ActionTimeout("dig", DIG_TIMEOUT_MS / 1000) from e
            raise

    async def equip(self, item: str) -> bool:
        matching = [stack for stack in self.bot.inventory.items() if item in stack.name]
        if not matching:
            return False
        await asyncio.to_thread(lambda: self.bot.equip(matching[0], "hand", timeout=DIG_TIMEOUT_MS))
        return True

    async def strike(self, entity: EntityInfo) -> None:
        target = self.bot.entities[entity.id]
        if target is None or not target.isValid:
            raise TargetLost(entity.id)
        self.bot.attack(target)

    async def toss(self, item_name: str, count: int) -> int:
        matching = [stack for stack in self.bot.inventory.items() if stack.name == item_name]
        if not matching:
            return 0
        stack = matching[0]
        count = min(count, stack.count)
        await asyncio.to_thread(lambda: self.bot.toss(stack.type, None, count, timeout=DIG_TIMEOUT_MS))
        return count

    async def chat(self, message: str) -> None:
        self.bot.chat(message)

    def on_entity_died(self, callback: EntityDiedCallback) -> None:
        self.bridge.register_event_handler("entityDead", lambda entity, *args: callback(entity.id))
