"""Discord client that turns channel attachments into draft posts."""

import logging

import discord
import httpx

from app.bot.relay import RelayError, UploadRelay, edit_link, is_allowed_attachment

logger = logging.getLogger(__name__)

BOT_BRAND = "BeardedVibes"
DRAFT_DM = "Thanks! Your upload is saved as draft. Edit and publish here: {link}"
FAILURE_REPLY = "Sorry, I could not process that attachment. Please try again."


async def handle_attachment(message, attachment, relay: UploadRelay, frontend_base: str) -> dict | None:
    """
    Relay one attachment and DM its author the edit link.

    Processing failures are answered in the channel; a closed DM inbox is only logged.
    """
    author = message.author
    try:
        result = await relay.relay(
            attachment.url,
            attachment.filename,
            attachment.content_type,
            str(author.id),
            author.name,
        )
    except (RelayError, httpx.HTTPError):
        logger.exception("Failed to process attachment %s", attachment.filename)
        try:
            await message.reply(FAILURE_REPLY)
        except discord.HTTPException:
            logger.exception("Failed to notify user %s in channel", author.id)
        return None

    link = edit_link(frontend_base, result["id"], result["editToken"])
    try:
        await author.send(DRAFT_DM.format(link=link))
    except discord.HTTPException:
        logger.warning("Could not DM user %s the edit link", author.id, exc_info=True)

    logger.info("Uploaded attachment %s for user %s as post %s", attachment.id, author.id, result["id"])
    return result


async def process_message(message, relay: UploadRelay, target_channel_id: int, frontend_base: str) -> int:
    """Relay every allowed attachment in ``message``; returns how many were attempted."""
    if message.author.bot or message.channel.id != target_channel_id:
        return 0

    allowed = [
        attachment
        for attachment in message.attachments
        if is_allowed_attachment(attachment.filename, attachment.content_type)
    ]
    for attachment in allowed:
        await handle_attachment(message, attachment, relay, frontend_base)
    return len(allowed)


class UploadBot(discord.Client):
    """Watches one channel and relays media attachments to the backend."""

    def __init__(self, relay: UploadRelay, target_channel_id: int, frontend_base: str):
        intents = discord.Intents.default()
        intents.message_content = True
        intents.dm_messages = True
        super().__init__(intents=intents)
        self.relay = relay
        self.target_channel_id = target_channel_id
        self.frontend_base = frontend_base

    async def on_ready(self):
        logger.info("Logged in as %s (%s bot)", self.user, BOT_BRAND)
        await self.change_presence(activity=discord.Game(name=f"{BOT_BRAND} uploads"))

    async def on_message(self, message: discord.Message):
        await process_message(message, self.relay, self.target_channel_id, self.frontend_base)
