import logging
from typing import Any, Dict, Optional, Tuple

import httpx
from authlib.integrations.httpx_client import OAuth2Client
from pydantic import ValidationError

from .config import Settings
from .errors import internal
from .user import HHUserInfo, TokenResponse

logger = logging.getLogger("hhgate.hh_client")


class HHClient:
    """hh.ru OAuth and profile API client.

    Every failure (transport error, timeout, non-2xx status, unexpected body)
    is logged with the provider's payload and raised as a generic
    INTERNAL_SERVER_ERROR, so provider internals never reach API callers.
    Requests are attempted once.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.client_id = settings.hh_client_id
        self.client_secret = settings.hh_client_secret
        self.redirect_uri = settings.hh_redirect_uri
        self.base_url = settings.hh_api_base_url.rstrip("/")
        self.authorize_url = settings.hh_authorize_url
        self.timeout = settings.hh_timeout
        self.user_agent = settings.hh_user_agent
        self._transport = transport

    def authorization_url(self, state: Optional[str] = None) -> Tuple[str, str]:
        """Build the hh.ru authorization URL. Returns ``(url, state)``."""
        with OAuth2Client(self.client_id, redirect_uri=self.redirect_uri) as oauth:
            return oauth.create_authorization_url(self.authorize_url, state=state)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, failure: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                resp = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("%s: %s %s failed: %r", failure, method, path, e)
            raise internal(failure) from e

        if resp.status_code >= 300:
            logger.error("%s: status %s, body: %s", failure, resp.status_code, resp.text[:1000])
            raise internal(failure)
        try:
            return resp.json()
        except ValueError as e:
            logger.error("%s: invalid JSON body: %s", failure, resp.text[:300])
            raise internal(failure) from e

    async def _token_request(self, form: Dict[str, str], failure: str) -> TokenResponse:
        data = await self._request(
            "POST",
            "/token",
            failure,
            data={**form, "client_id": self.client_id, "client_secret": self.client_secret},
        )
        try:
            return TokenResponse.model_validate(data)
        except ValidationError as e:
            logger.error("%s: unexpected token response: %s", failure, e)
            raise internal(failure) from e

    async def exchange_code_for_token(self, code: str) -> TokenResponse:
        return await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
            },
            "Failed to exchange authorization code",
        )

    async def get_user_info(self, access_token: str) -> HHUserInfo:
        failure = "Failed to fetch user information"
        data = await self._request(
            "GET",
            "/me",
            failure,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        try:
            return HHUserInfo.model_validate(data)
        except ValidationError as e:
            logger.error("%s: unexpected profile response: %s", failure, e)
            raise internal(failure) from e

    async def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        return await self._token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
            "Failed to refresh access token",
        )
