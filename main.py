"""
Main entry point for TreeBot
Connects the bot to a Minecraft server and answers chat mentions
"""

import argparse
import asyncio
import sys

from dotenv import load_dotenv

from treebot.config import get_config
from treebot.llm.gemini import GeminiModel
from treebot.logging_config import get_logger, setup_logging
from treebot.session import ChatSession

logger = get_logger(__name__)


def parse_args():
    """Parse command line arguments

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description="TreeBot - a Minecraft bot that harvests trees, follows and fights")
    parser.add_argument("--host", help="Minecraft server host (overrides TREEBOT_MINECRAFT_HOST)")
    parser.add_argument("--port", type=int, help="Minecraft server port (overrides TREEBOT_MINECRAFT_PORT)")
    parser.add_argument("--username", help="Bot username (overrides TREEBOT_BOT_USERNAME)")
    parser.add_argument("--log-level", help="Logging level (overrides TREEBOT_LOG_LEVEL)")
    return parser.parse_args()


async def main():
    """Main entry point for the bot"""
    args = parse_args()
    load_dotenv()

    config = get_config()
    overrides = {
        "minecraft_host": args.host,
        "minecraft_port": args.port,
        "bot_username": args.username,
        "log_level": args.log_level,
    }
    config = config.model_copy(update={key: value for key, value in overrides.items() if value is not None})

    setup_logging(
        log_level=config.log_level,
        log_file=config.log_file,
        console_output=True,
        json_format=config.log_json_format,
        google_log_level=config.google_log_level,
    )
    logger.info("Starting TreeBot", host=config.minecraft_host, port=config.minecraft_port, username=config.bot_username)

    try:
        model = GeminiModel(config)
    except ValueError as e:
        logger.error(f"Failed to setup Gemini: {e}")
        sys.exit(1)

    session = ChatSession(config, model)
    try:
        await session.run()
    except asyncio.CancelledError:
        logger.info("Shutting down")
    finally:
        await session.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
