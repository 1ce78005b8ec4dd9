"""Messenger Graph API client using aiohttp."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from messengerflow.config import settings

logger = logging.getLogger(__name__)

# A message is either plain text or a full Send API message object.
MessagePayload = str | dict[str, Any]


def build_message(
    message: MessagePayload,
    quick_replies: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Normalise *message* into a Send API ``message`` object."""
    msg = {"text": message} if isinstance(message, str) else dict(message)
    if quick_replies:
        msg["quick_replies"] = list(quick_replies)
    return msg


class GraphAPIClient:
    """Sends messages and looks up profiles through the Graph API.

    The aiohttp session is created lazily on first use and shared by every
    request. Call :meth:`close` on shutdown.
    """

    def __init__(
        self,
        access_token: str | None = None,
        *,
        api_url: str | None = None,
        api_version: str | None = None,
        profile_fields: list[str] | None = None,
        timeout: float | None = None,
    ) -> None:
        self.access_token = access_token if access_token is not None else settings.page_access_token
        self.api_url = (api_url or settings.graph_api_url).rstrip("/")
        self.api_version = api_version or settings.graph_api_version
        self.profile_fields = profile_fields or settings.get_profile_fields()
        self.timeout = timeout or settings.request_timeout
        self._session: aiohttp.ClientSession | None = None

    @property
    def messages_url(self) -> str:
        return f"{self.api_url}/{self.api_version}/me/messages"

    def _get_session(self) -> aiohttp.ClientSession:
        """Return (and lazily create) the shared aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def send(
        self,
        user_id: str,
        message: MessagePayload,
        *,
        quick_replies: list[dict[str, Any]] | None = None,
    ) -> bool:
        """Send a message to *user_id*. Returns True on success, never raises."""
        if not self.access_token:
            logger.error("Send not configured: missing PAGE_ACCESS_TOKEN")
            return False

        payload = {
            "recipient": {"id": str(user_id)},
            "message": build_message(message, quick_replies),
        }

        session = self._get_session()
        try:
            async with session.post(
                self.messages_url,
                params={"access_token": self.access_token},
                json=payload,
            ) as resp:
                if resp.status == 200:
                    logger.info("Message sent to %s", user_id)
                    return True
                text = await resp.text()
                logger.error("Send failed: status=%d body=%s", resp.status, text[:200])
                return False
        except Exception:
            logger.exception("Send failed (network error) to %s", user_id)
            return False

    async def get_user_profile(self, user_id: str) -> dict[str, Any]:
        """Fetch the public profile fields of *user_id*.

        Unlike :meth:`send`, failures propagate: a non-2xx response raises
        ``aiohttp.ClientResponseError`` and network errors are not caught.
        """
        session = self._get_session()
        async with session.get(
            f"{self.api_url}/{user_id}",
            params={
                "fields": ",".join(self.profile_fields),
                "access_token": self.access_token,
            },
        ) as resp:
            resp.raise_for_status()
            return await resp.json()
