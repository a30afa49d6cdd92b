"""Schema definitions for capabilities, intents, parameters and events."""

from .capability import *
from .events import *
from .intents import *
from .params import *

__all__ = [
    # Capabilities
    "ParameterSpec",
    "Capability",
    "CapabilityDocument",
    # Intents
    "IntentKind",
    "ResolvedIntent",
    # Parameters
    "HarvestParams",
    "FollowParams",
    "EngageParams",
    "InventoryParams",
    "GiveParams",
    "TargetSpec",
    "PARAMETER_RECORDS",
    # Events
    "EventKind",
    "LifecycleEvent",
]
