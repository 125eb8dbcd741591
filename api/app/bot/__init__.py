"""Discord bot that relays channel attachments to the upload API."""

from app.bot.relay import RelayError, UploadRelay, edit_link, is_allowed_attachment

__all__ = ["RelayError", "UploadRelay", "edit_link", "is_allowed_attachment"]
