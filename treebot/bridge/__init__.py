"""Mineflayer bridge: JSPyBridge connection and the world gateway built on it."""

from .bridge_manager import BridgeConfig, BridgeManager
from .mineflayer_gateway import MineflayerGateway

__all__ = ["BridgeConfig", "BridgeManager", "MineflayerGateway"]
