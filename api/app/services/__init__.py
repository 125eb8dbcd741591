"""Services for the BeardedVibes API."""

from app.services.storage import CloudinaryStorage, LocalStorage, Storage, get_storage

__all__ = ["Storage", "LocalStorage", "CloudinaryStorage", "get_storage"]
