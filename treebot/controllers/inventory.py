"""
Inventory service - one-shot inventory report and wood hand-over
"""
from typing import Any, List, Optional

from ..constants import ANY
from ..logging_config import get_logger
from ..schemas.params import GiveParams, InventoryParams
from ..world.gateway import InventoryItem, TravelOutcome, WorldGateway
from .harvester import is_tree_log

logger = get_logger(__name__)

EMPTY_INVENTORY = "My inventory is empty!"
NO_WOOD = "I don't have any wood to give!"
PLAYER_MISSING = "I can't find you!"
GIVE_FAILED = "Sorry, I couldn't give you the wood!"
GIVE_DONE = "Here's your wood!"


def format_items(items: List[InventoryItem]) -> str:
    """Render items as ``OAK LOG: 12, STICK: 3``"""
    return ", ".join(f"{item.name.upper().replace('_', ' ')}: {item.count}" for item in items)


class InventoryService:
    """Capabilities that finish in a single call"""

    def __init__(self, gateway: WorldGateway, give_tolerance: float = 2, travel_timeout_s: float = 30.0):
        self.gateway = gateway
        self.give_tolerance = give_tolerance
        self.travel_timeout_s = travel_timeout_s

    def report(self, params: Any = None) -> str:
        """Describe carried items, optionally filtered by a name fragment"""
        if not isinstance(params, InventoryParams):
            params = InventoryParams.model_validate(params or {})

        items = self.gateway.inventory_items()
        if params.item_type != "all":
            items = [item for item in items if params.item_type in item.name]
        return format_items(items) or EMPTY_INVENTORY

    async def give(self, params: Any, issuer: Optional[str]) -> str:
        """Walk to the issuer and toss matching logs"""
        if not isinstance(params, GiveParams):
            params = GiveParams.model_validate(params or {})

        wood = [item for item in self.gateway.inventory_items() if is_tree_log(item.name, params.wood_type)]
        if not wood:
            return f"{NO_WOOD} Let me check my inventory: {self.report()}"

        position = self.gateway.entity_position(issuer) if issuer else None
        if position is None:
            return PLAYER_MISSING

        outcome = await self.gateway.travel_near(position, self.give_tolerance, self.travel_timeout_s)
        if outcome is not TravelOutcome.REACHED:
            logger.warning("Could not reach player to give wood", player=issuer, outcome=outcome.value)
            return GIVE_FAILED

        remaining = None if params.amount == "all" else params.amount
        given = 0
        for item in wood:
            count = item.count if remaining is None else min(item.count, remaining - given)
            if count <= 0:
                break
            try:
                given += await self.gateway.toss(item.name, count)
            except Exception as e:
                logger.error("Error giving wood", item=item.name, count=count, error=str(e))
                return GIVE_FAILED

        logger.info("Gave wood", player=issuer, wood_type=params.wood_type or ANY, given=given)
        return GIVE_DONE
