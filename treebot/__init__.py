"""TreeBot - a Minecraft bot that harvests trees, follows players and fights mobs on chat request."""

__version__ = "0.1.0"
