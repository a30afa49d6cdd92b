"""Autonomous task controllers and the one-shot inventory service."""

from .base import CancellationToken, Controller, ControllerState, Phase, StartOutcome
from .engager import Engager, EngagerConfig
from .follower import Follower, FollowerConfig
from .harvester import Harvester, HarvesterConfig, HarvestStage
from .inventory import InventoryService

__all__ = [
    "CancellationToken",
    "Controller",
    "ControllerState",
    "Engager",
    "EngagerConfig",
    "Follower",
    "FollowerConfig",
    "HarvestStage",
    "Harvester",
    "HarvesterConfig",
    "InventoryService",
    "Phase",
    "StartOutcome",
]
