"""Google OAuth2 lifecycle: consent URL, code exchange, refresh.

States:
    unauthenticated --exchange_code()--> authenticated
    authenticated   --provider rejects--> expired
    expired         --refresh()--------> authenticated
An expired session without a refresh token stays expired until a user
re-authorizes through /auth/google.

The google-auth / oauthlib calls are sync (requests-based), so they run
under asyncio.to_thread.
"""
import asyncio
import json
import logging
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Optional

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from drive_uploader.config import settings
from drive_uploader.services.token_store import (
    AuthenticationRequired,
    OAuthToken,
    ReauthenticationRequired,
    TokenStore,
)

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive.file"]
AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"


class AuthConfigurationError(Exception):
    """OAuth client id/secret are not configured."""
    pass


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"


def load_client_config(
    client_id: str = settings.GOOGLE_CLIENT_ID,
    client_secret: str = settings.GOOGLE_CLIENT_SECRET,
    credentials_path: str = settings.GOOGLE_CREDENTIALS_PATH,
) -> Optional[dict]:
    """Build an oauthlib client config from env vars, else credentials.json.

    Returns None when neither source provides a client id and secret.
    """
    if client_id and client_secret:
        logger.info("Loaded Google OAuth client from environment")
        return {"client_id": client_id, "client_secret": client_secret}

    path = Path(credentials_path) if credentials_path else None
    if path and path.is_file():
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        section = data.get("web") or data.get("installed") or {}
        if section.get("client_id") and section.get("client_secret"):
            logger.info("Loaded Google OAuth client from %s", path)
            return {"client_id": section["client_id"], "client_secret": section["client_secret"]}
        logger.warning("%s has no web/installed client_id and client_secret", path)

    return None


class GoogleAuthService:
    """Owns the OAuth client config and hands out authorized credentials."""

    def __init__(
        self,
        token_store: TokenStore,
        client_config: Optional[dict] = None,
        redirect_uri: str = settings.GOOGLE_REDIRECT_URI,
        scopes: Optional[list[str]] = None,
    ):
        self.token_store = token_store
        self.client_config = client_config
        self.redirect_uri = redirect_uri
        self.scopes = scopes or list(SCOPES)
        self._expired = False

    @property
    def configured(self) -> bool:
        return bool(self.client_config)

    def _require_config(self) -> dict:
        if not self.client_config:
            raise AuthConfigurationError(
                "Google OAuth credentials not found. Set GOOGLE_CLIENT_ID and "
                "GOOGLE_CLIENT_SECRET or provide credentials.json"
            )
        return self.client_config

    def _flow(self) -> Flow:
        config = self._require_config()
        return Flow.from_client_config(
            {
                "web": {
                    "client_id": config["client_id"],
                    "client_secret": config["client_secret"],
                    "auth_uri": AUTH_URI,
                    "token_uri": TOKEN_URI,
                    "redirect_uris": [self.redirect_uri],
                }
            },
            scopes=self.scopes,
            redirect_uri=self.redirect_uri,
            # The callback builds a fresh Flow, so there is no verifier to carry over
            autogenerate_code_verifier=False,
        )

    async def state(self) -> AuthState:
        token = await self.token_store.get()
        if token is None:
            return AuthState.UNAUTHENTICATED
        return AuthState.EXPIRED if self._expired else AuthState.AUTHENTICATED

    def authorization_url(self) -> str:
        """Consent screen URL requesting offline access (so we get a refresh token)."""
        auth_url, _ = self._flow().authorization_url(
            access_type="offline",
            prompt="consent",
        )
        return auth_url

    async def exchange_code(self, code: str) -> OAuthToken:
        """Trade an authorization code for tokens and persist them."""
        flow = self._flow()
        await asyncio.to_thread(flow.fetch_token, code=code)
        creds = flow.credentials
        token = OAuthToken(
            access_token=creds.token,
            refresh_token=creds.refresh_token,
            scope=" ".join(creds.scopes or self.scopes),
            token_type="Bearer",
            expiry_date=OAuthToken.expiry_to_millis(creds.expiry),
        )
        if not token.refresh_token:
            # Google only re-issues a refresh token on prompt=consent; keep any we had
            previous = await self.token_store.get()
            if previous and previous.refresh_token:
                token = replace(token, refresh_token=previous.refresh_token)
        await self.token_store.persist(token)
        self._expired = False
        logger.info("Successfully authenticated with Google")
        return token

    def _to_credentials(self, token: OAuthToken) -> Credentials:
        config = self.client_config or {}
        return Credentials(
            token=token.access_token,
            refresh_token=token.refresh_token,
            token_uri=TOKEN_URI,
            client_id=config.get("client_id"),
            client_secret=config.get("client_secret"),
            scopes=token.scope.split() if token.scope else self.scopes,
            expiry=token.expiry,
        )

    async def get_valid_client(self) -> Credentials:
        """Credentials for the stored token; raises AuthenticationRequired if none.

        A token already past its expiry is refreshed here, so the new one is
        persisted instead of being refreshed silently by the transport.
        """
        token = await self.token_store.get()
        if token is None or not token.access_token:
            logger.info("No access token available, authentication required")
            raise AuthenticationRequired()
        creds = self._to_credentials(token)
        if creds.expired and creds.refresh_token:
            logger.info("Stored access token has expired, refreshing")
            return await self.refresh()
        return creds

    async def refresh(self) -> Credentials:
        """Refresh after the provider rejected the current token.

        Raises ReauthenticationRequired when there is no refresh token or
        Google refuses it.
        """
        self._expired = True
        self._require_config()
        try:
            token = await self.token_store.refresh(self._exchange_refresh_token)
        except RefreshError as e:
            logger.error("Token refresh failed, re-authentication required: %s", e)
            raise ReauthenticationRequired() from e
        self._expired = False
        logger.info("Refreshed Google access token")
        return self._to_credentials(token)

    async def _exchange_refresh_token(self, current: OAuthToken) -> OAuthToken:
        creds = self._to_credentials(current)
        await asyncio.to_thread(creds.refresh, Request())
        if not creds.token:
            raise RefreshError("No access token returned")
        return OAuthToken(
            access_token=creds.token,
            refresh_token=creds.refresh_token,
            scope=current.scope,
            token_type=current.token_type or "Bearer",
            expiry_date=OAuthToken.expiry_to_millis(creds.expiry),
        )
