"""
World/Action Gateway - the capability surface controllers act through

Queries are synchronous snapshots of the bot's local world view. Actions are
coroutines: they may take many game ticks and may fail.
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Protocol, Sequence, Union


@dataclass(frozen=True)
class Vec3:
    """3D position in the Minecraft world."""

    x: float
    y: float
    z: float

    def offset(self, dx: float, dy: float, dz: float) -> "Vec3":
        return Vec3(self.x + dx, self.y + dy, self.z + dz)

    def floored(self) -> "Vec3":
        return Vec3(math.floor(self.x), math.floor(self.y), math.floor(self.z))

    def distance_to(self, other: "Vec3") -> float:
        return math.sqrt((self.x - other.x) ** 2 + (self.y - other.y) ** 2 + (self.z - other.z) ** 2)

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "z": self.z}


@dataclass(frozen=True)
class BlockInfo:
    """A block at an integer position."""

    name: str
    position: Vec3


@dataclass(frozen=True)
class EntityInfo:
    """Transient snapshot of an entity; re-query every tick."""

    id: int
    name: str
    position: Optional[Vec3]
    display_name: Optional[str] = None
    kind: str = "mob"
    alive: bool = True
    username: Optional[str] = None
    item_name: Optional[str] = None


@dataclass(frozen=True)
class InventoryItem:
    """One inventory stack."""

    name: str
    count: int
    slot: int = 0


class TravelOutcome(str, Enum):
    """How a travel request ended."""

    REACHED = "reached"
    TIMEOUT = "timeout"
    SUPERSEDED = "superseded"
    FAILED = "failed"


EntityDiedCallback = Callable[[int], None]


class WorldGateway(Protocol):
    """Movement, combat, digging and world queries used by the controllers"""

    def current_position(self) -> Vec3: ...

    def self_entity_id(self) -> Optional[int]: ...

    def block_at(self, position: Vec3) -> Optional[BlockInfo]: ...

    async def find_blocks(self, center: Vec3, names: Sequence[str], max_distance: float, count: int) -> List[Vec3]:
        """Positions of blocks with one of the given names, at most count of them"""

    def entities_within_radius(self, center: Vec3, radius: float) -> List[EntityInfo]: ...

    def entity_position(self, identity: Union[str, int]) -> Optional[Vec3]: ...

    def inventory_items(self) -> List[InventoryItem]: ...

    def is_traveling(self) -> bool: ...

    async def travel_near(self, position: Vec3, tolerance: float, timeout: float) -> TravelOutcome: ...

    def stop_travel(self) -> None: ...

    async def dig(self, block: BlockInfo) -> None:
        """Break the block; raises ActionTimeout when the dig does not finish in time"""

    async def equip(self, item: str) -> bool: ...

    async def strike(self, entity: EntityInfo) -> None:
        """Attack once; raises TargetLost when the entity has left the world"""

    async def toss(self, item_name: str, count: int) -> int: ...

    async def chat(self, message: str) -> None: ...

    def on_entity_died(self, callback: EntityDiedCallback) -> None: ...
