"""
Game constants shared by the controllers
"""

from typing import Final, FrozenSet, Tuple

TREE_BLOCKS: Final[Tuple[str, ...]] = (
    "oak_log",
    "birch_log",
    "spruce_log",
    "jungle_log",
    "acacia_log",
    "dark_oak_log",
    "mangrove_log",
    "cherry_log",
)

# Mobs the engager may attack
HOSTILE_MOBS: Final[FrozenSet[str]] = frozenset(
    {
        "zombie",
        "husk",
        "drowned",
        "skeleton",
        "stray",
        "spider",
        "cave_spider",
        "creeper",
        "slime",
        "witch",
        "pillager",
        "vindicator",
        "silverfish",
        "phantom",
        "zombie_villager",
    }
)

FOOD_ANIMALS: Final[FrozenSet[str]] = frozenset(
    {
        "cow",
        "pig",
        "sheep",
        "chicken",
        "rabbit",
        "mooshroom",
    }
)

# Never engaged, even when they also appear in an allow list
DANGER_MOBS: Final[FrozenSet[str]] = frozenset(
    {
        "creeper",
        "enderman",
        "warden",
        "wither",
        "ender_dragon",
        "ravager",
        "evoker",
        "piglin_brute",
    }
)

# Entity kinds reported for dropped item stacks
DROPPED_ITEM_KINDS: Final[FrozenSet[str]] = frozenset({"object", "item"})

ANY: Final[str] = "any"
