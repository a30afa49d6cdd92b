from .gateway import BlockInfo, EntityInfo, InventoryItem, TravelOutcome, Vec3, WorldGateway

__all__ = ["BlockInfo", "EntityInfo", "InventoryItem", "TravelOutcome", "Vec3", "WorldGateway"]
