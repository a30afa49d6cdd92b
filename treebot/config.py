"""
Configuration management for the TreeBot agent
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CAPABILITY_DOCUMENT = Path(__file__).parent / "data" / "bot_config.json"


class AgentConfig(BaseSettings):
    """Configuration for the agent, its controllers and its collaborators"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TREEBOT_",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    # Gemini configuration
    gemini_api_key: Optional[SecretStr] = Field(default=None, description="Google AI API key for Gemini models")
    default_model: str = Field(default="gemini-2.0-flash", description="Gemini model used for intent prompts")
    agent_temperature: float = Field(default=0.2, description="Temperature for LLM responses (0.0-1.0)")
    max_output_tokens: int = Field(default=300, description="Maximum tokens in model responses")

    # Minecraft server configuration
    minecraft_host: str = Field(default="127.0.0.1", description="Minecraft server host")
    minecraft_port: int = Field(default=25565, description="Minecraft server port")
    bot_username: str = Field(default="AI", description="Bot username in Minecraft")
    minecraft_version: str = Field(default="1.20.4", description="Minecraft version for bot compatibility")
    reconnect_delay_s: float = Field(default=5.0, description="Delay before reconnecting after a disconnect")

    # Capability document
    capability_document: Path = Field(
        default=DEFAULT_CAPABILITY_DOCUMENT, description="JSON document listing capabilities and responses"
    )

    # Scheduling
    tick_interval_ms: int = Field(default=50, description="Interval between controller ticks in milliseconds")

    # Travel
    travel_timeout_ms: int = Field(default=30000, description="Timeout for a single travel request in milliseconds")

    # Follower defaults
    follow_distance: float = Field(default=2, description="Default follow distance in blocks")

    # Harvester defaults
    max_trees: int = Field(default=5, ge=1, description="Default number of trees to harvest")
    search_radius: int = Field(default=32, ge=1, description="Horizontal tree search radius in blocks")
    vertical_search: int = Field(default=4, ge=0, description="Vertical tree search radius in blocks")
    settle_delay_s: float = Field(default=0.5, ge=0, description="Wait after each dig before collecting drops")
    pickup_radius: float = Field(default=5.0, description="Radius in which dropped logs are collected")
    pickup_delay_s: float = Field(default=0.5, ge=0, description="Wait after walking to each dropped log")
    search_block_limit: int = Field(default=256, ge=1, description="Log positions requested per tree search")

    # Engager defaults
    engage_radius: float = Field(default=50.0, description="Radius in which targets are considered")
    engage_min_interval_s: float = Field(default=0.25, description="Minimum time between combat steps")
    strike_cooldown_s: float = Field(default=1.0, description="Minimum time between strikes")
    max_empty_scans: int = Field(default=20, ge=1, description="Empty scans before giving up on combat")
    default_tool: str = Field(default="sword", description="Tool equipped before striking")

    # Logging configuration
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_file: Optional[str] = Field(default=None, description="Log file name (None for a timestamped name)")
    log_json_format: bool = Field(default=False, description="Use JSON format for console logs")
    google_log_level: str = Field(default="WARNING", description="Logging level for Google client libraries")


def get_config() -> AgentConfig:
    """Get the configuration instance"""
    return AgentConfig()


def get_gemini_api_key(config: AgentConfig) -> str:
    """Resolve the Gemini API key from configuration or the environment

    Raises:
        ValueError: if no key can be found
    """
    import os

    if config.gemini_api_key:
        return config.gemini_api_key.get_secret_value()

    api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    if not api_key:
        raise ValueError(
            "No Gemini credentials found. Set TREEBOT_GEMINI_API_KEY "
            "or GEMINI_API_KEY environment variable."
        )
    return api_key
