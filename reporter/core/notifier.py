"""Telegram Bot API notifier."""

import logging
from typing import Optional

import httpx

from reporter.core.exceptions import DeliveryRejected, TransportError

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


def build_payload(chat_id: str, text: str) -> dict:
    """sendMessage body. httpx's JSON encoding escapes quotes, backslashes
    and control characters in the text."""
    return {"chat_id": chat_id, "text": text, "parse_mode": "HTML"}


class TelegramNotifier:
    """Delivers report messages to a Telegram chat. No retries."""

    def __init__(
        self,
        api_url: str = TELEGRAM_API_URL,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def send(self, token: str, chat_id: str, message: str):
        """Send one message. Raises TransportError or DeliveryRejected."""
        url = f"{self.api_url}/bot{token}/sendMessage"

        try:
            response = await self._get_client().post(
                url,
                json=build_payload(chat_id, message),
                timeout=self.timeout
            )
        except httpx.RequestError as e:
            # Exception text can embed the request URL, which carries the token
            detail = str(e).replace(token, "***") if token else str(e)
            raise TransportError(
                f"Telegram API unreachable ({type(e).__name__}): {detail}"
            ) from None

        if not response.is_success:
            raise DeliveryRejected(response.status_code, response.text)

        logger.debug(f"Message delivered to chat {chat_id}")

    async def aclose(self):
        """Close the HTTP client if this notifier created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
