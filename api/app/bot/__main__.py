"""Run the Discord bot: ``python -m app.bot``."""

import logging
import sys

from app.bot.client import UploadBot
from app.bot.relay import UploadRelay
from app.config import settings
from app.logging_config import configure_logging

logger = logging.getLogger(__name__)


def main() -> int:
    configure_logging()

    missing = [
        name
        for name, value in (
            ("BOT_TOKEN", settings.bot_token),
            ("TARGET_CHANNEL_ID", settings.target_channel_id),
            ("BACKEND_UPLOAD_URL", settings.backend_upload_url),
        )
        if not value
    ]
    if missing:
        logger.error("Missing required settings: %s", ", ".join(missing))
        return 1
    if not settings.bot_service_token:
        logger.warning("BOT_SERVICE_TOKEN is not set; the backend will reject relayed uploads")

    relay = UploadRelay(settings.backend_upload_url, settings.bot_service_token)
    bot = UploadBot(relay, settings.target_channel_id, settings.frontend_base)
    # Logging is already configured; keep discord.py from adding its own handler
    bot.run(settings.bot_token, log_handler=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
