"""
agentdeck — main entry point.
Wires settings, the agent API client and the Telegram control surface.
"""

import logging
import sys
import os
import certifi
from pathlib import Path

# Fix SSL on Windows
os.environ["SSL_CERT_FILE"] = certifi.where()

from agentdeck.config.settings import Settings
from agentdeck.client.agent_api import AgentApiClient
from agentdeck.adapters.telegram_adapter import TelegramAdapter


def setup_logging(log_dir: Path) -> None:
    """Configure logging."""
    log_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_dir / "agentdeck.log", encoding="utf-8"),
        ],
    )


def main() -> None:
    """Wire all components and start agentdeck."""
    # 1. Load settings
    settings = Settings()
    setup_logging(settings.LOG_DIR)
    logger = logging.getLogger("agentdeck.main")
    logger.info("Starting agentdeck...")

    # 2. Agent API
    client = AgentApiClient(settings.AGENT_API_BASE_URL, settings.COMMAND_TIMEOUT)
    logger.info(f"Agent API: {client.base_url}")

    # 3. Telegram adapter (one coordinator per active project)
    adapter = TelegramAdapter(settings, client)
    if settings.DEFAULT_PROJECT:
        logger.info(f"Default project: {settings.DEFAULT_PROJECT}")

    logger.info("All components wired. Starting Telegram bot...")
    adapter.run()


if __name__ == "__main__":
    main()
