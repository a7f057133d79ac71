"""
Signed-in identity, persisted across restarts
"""
import logging
from typing import Optional

from trip_planner.core.identity import normalize_phone_number
from trip_planner.core.storage import StorageAdapter
from trip_planner.core.validation import ValidationError

logger = logging.getLogger(__name__)

AUTH_PHONE_STORAGE_KEY = "tripplanner:auth:phone"


class AuthSession:
    """Holds the phone number used as the trip store's user key."""

    def __init__(self, storage: StorageAdapter, storage_key: str = AUTH_PHONE_STORAGE_KEY):
        self.storage = storage
        self.storage_key = storage_key
        self.phone_number: Optional[str] = None
        self.is_loading = True

    async def load(self) -> Optional[str]:
        """Restore the identity saved by a previous sign-in."""
        try:
            stored = await self.storage.read(self.storage_key)
            self.phone_number = stored or None
        finally:
            self.is_loading = False
        return self.phone_number

    async def sign_in(self, raw_phone: str) -> str:
        """
        Sign in with a phone number

        Returns:
            The normalized phone number, which becomes the user key

        Raises:
            ValidationError: If the number has no digits
        """
        normalized = normalize_phone_number(raw_phone)
        if not normalized.lstrip("+"):
            raise ValidationError("Please enter a valid phone number.")
        if not await self.storage.write(self.storage_key, normalized):
            logger.warning("Signed-in phone number could not be saved; it will not survive a restart")
        self.phone_number = normalized
        return normalized

    async def sign_out(self) -> None:
        if not await self.storage.remove(self.storage_key):
            logger.warning("Failed to clear the saved phone number")
        self.phone_number = None
