"""OAuth token persistence.

TokenStore is the seam the Drive uploader depends on: get() the current
token, persist() a new one, refresh() via a caller-supplied exchange.
FileTokenStore keeps a single JSON file on disk; InMemoryTokenStore backs
tests.
"""
import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable, Optional

import aiofiles

logger = logging.getLogger(__name__)


class AuthenticationRequired(Exception):
    """No usable access token is stored; a user has to authorize first."""

    def __init__(self, message: str = "Authentication required. Please visit /auth/google to authenticate."):
        super().__init__(message)


class ReauthenticationRequired(Exception):
    """Token refresh is impossible or failed; a user has to authorize again."""

    def __init__(
        self,
        message: str = "Authentication expired. Please visit /auth/google to re-authenticate with Google Drive.",
    ):
        super().__init__(message)


@dataclass(frozen=True)
class OAuthToken:
    access_token: str
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    token_type: Optional[str] = "Bearer"
    expiry_date: Optional[int] = None  # epoch milliseconds

    @classmethod
    def from_dict(cls, data: dict) -> "OAuthToken":
        if not data.get("access_token"):
            raise ValueError("Token data has no access_token")
        expiry = data.get("expiry_date")
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            scope=data.get("scope"),
            token_type=data.get("token_type"),
            expiry_date=int(expiry) if expiry is not None else None,
        )

    def to_dict(self) -> dict:
        return asdict(self)

    @property
    def expiry(self) -> Optional[datetime]:
        """Expiry as a naive UTC datetime (the form google-auth expects)."""
        if self.expiry_date is None:
            return None
        return datetime.fromtimestamp(self.expiry_date / 1000, tz=timezone.utc).replace(tzinfo=None)

    @staticmethod
    def expiry_to_millis(expiry: Optional[datetime]) -> Optional[int]:
        if expiry is None:
            return None
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        return int(expiry.timestamp() * 1000)


TokenRefresher = Callable[[OAuthToken], Awaitable[OAuthToken]]


class TokenStore(ABC):
    """Holds the process-wide OAuth token."""

    @abstractmethod
    async def get(self) -> Optional[OAuthToken]:
        ...

    @abstractmethod
    async def persist(self, token: OAuthToken) -> None:
        ...

    async def refresh(self, refresher: TokenRefresher) -> OAuthToken:
        """Exchange the stored refresh token for a new token and persist it.

        Providers usually omit refresh_token from refresh responses; the
        previous one is kept in that case.
        """
        current = await self.get()
        if current is None or not current.refresh_token:
            raise ReauthenticationRequired(
                "No refresh token available. Please visit /auth/google to re-authenticate."
            )
        refreshed = await refresher(current)
        if not refreshed.refresh_token:
            refreshed = replace(refreshed, refresh_token=current.refresh_token)
        await self.persist(refreshed)
        return refreshed


class InMemoryTokenStore(TokenStore):

    def __init__(self, token: Optional[OAuthToken] = None):
        self._token = token

    async def get(self) -> Optional[OAuthToken]:
        return self._token

    async def persist(self, token: OAuthToken) -> None:
        self._token = token


class FileTokenStore(TokenStore):
    """Token kept as JSON in a single file; loaded once, rewritten on change."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._token: Optional[OAuthToken] = None
        self._loaded = False

    async def load(self) -> Optional[OAuthToken]:
        """Read the token file. A missing or unreadable file means no token."""
        self._loaded = True
        if not self.path.exists():
            logger.info("No saved tokens at %s (normal on first run)", self.path)
            self._token = None
            return None
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                self._token = OAuthToken.from_dict(json.loads(await f.read()))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable token file %s: %s", self.path, e)
            self._token = None
            return None
        logger.info("Loaded saved tokens from %s", self.path)
        return self._token

    async def get(self) -> Optional[OAuthToken]:
        if not self._loaded:
            await self.load()
        return self._token

    async def persist(self, token: OAuthToken) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(token.to_dict(), indent=2))
        os.replace(tmp_path, self.path)
        self._token = token
        self._loaded = True
        logger.info("Tokens saved to %s", self.path)
