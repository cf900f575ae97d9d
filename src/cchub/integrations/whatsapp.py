"""Outbound message delivery."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx


logger = logging.getLogger(__name__)


class MessageSender(ABC):
    """Delivers text to a user. Implementations report failure, never raise."""

    @abstractmethod
    async def send(self, user_id: str, text: str) -> bool:
        pass


class WhatsAppSender(MessageSender):
    """WhatsApp Cloud API text sender."""

    def __init__(
        self,
        phone_number_id: str,
        access_token: str,
        api_url: str = "https://graph.facebook.com",
        api_version: str = "v17.0",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = f"{api_url.rstrip('/')}/{api_version}/{phone_number_id}/messages"
        self.access_token = access_token
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings) -> "WhatsAppSender":
        return cls(
            phone_number_id=settings.whatsapp_phone_number_id,
            access_token=settings.whatsapp_access_token,
            api_url=settings.whatsapp_api_url,
            api_version=settings.whatsapp_api_version,
            timeout=settings.send_timeout,
        )

    async def send(self, user_id: str, text: str) -> bool:
        payload = {
            "messaging_product": "whatsapp",
            "to": user_id,
            "type": "text",
            "text": {"body": text},
        }

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.post(
                    self.url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.access_token}"},
                )
                response.raise_for_status()
            return True

        except httpx.HTTPError as e:
            logger.error(f"❌ Error sending message: {e}")
            return False
