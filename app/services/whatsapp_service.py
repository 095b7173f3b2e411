import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

GRAPH_API_URL = "https://graph.facebook.com"


class WhatsAppError(Exception):
    pass


def normalize_phone(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


class WhatsAppService:
    """Thin wrapper over the WhatsApp Cloud API (Graph API)."""

    def __init__(self, access_token: str = None, phone_number_id: str = None,
                 verify_token: str = None, api_version: str = None):
        self.access_token = access_token if access_token is not None else settings.WHATSAPP_ACCESS_TOKEN
        self.phone_number_id = phone_number_id if phone_number_id is not None else settings.WHATSAPP_PHONE_NUMBER_ID
        self.verify_token = verify_token if verify_token is not None else settings.WHATSAPP_VERIFY_TOKEN
        self.api_version = api_version or settings.WHATSAPP_API_VERSION

        if not self.is_configured:
            logger.warning("WhatsApp is not configured (access token / phone number id missing)")

    @property
    def base_url(self) -> str:
        return f"{GRAPH_API_URL}/{self.api_version}/{self.phone_number_id}"

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token and self.phone_number_id)

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    async def _post_message(self, payload: dict) -> dict:
        if not self.is_configured:
            raise WhatsAppError("WhatsApp no está configurado")
        try:
            async with httpx.AsyncClient(timeout=15.0) as client:
                response = await client.post(f"{self.base_url}/messages", headers=self._headers(), json=payload)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.error("WhatsApp API error %s: %s", e.response.status_code, e.response.text)
            raise WhatsAppError(f"Error de la API de WhatsApp: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("WhatsApp request failed: %s", e)
            raise WhatsAppError("No se pudo conectar con WhatsApp") from e

    async def send_text_message(self, to: str, message: str) -> dict:
        payload = {
            "messaging_product": "whatsapp",
            "to": normalize_phone(to),
            "type": "text",
            "text": {"body": message},
        }
        result = await self._post_message(payload)
        logger.info("WhatsApp text sent to %s", payload["to"])
        return result

    async def send_template_message(self, to: str, template_name: str,
                                    components: Optional[List[dict]] = None, language: str = "es") -> dict:
        template: Dict[str, Any] = {"name": template_name, "language": {"code": language}}
        if components:
            template["components"] = components
        payload = {
            "messaging_product": "whatsapp",
            "to": normalize_phone(to),
            "type": "template",
            "template": template,
        }
        return await self._post_message(payload)

    async def mark_message_as_read(self, message_id: str) -> None:
        try:
            await self._post_message({
                "messaging_product": "whatsapp",
                "status": "read",
                "message_id": message_id,
            })
        except WhatsAppError as e:
            # Read receipts are best effort
            logger.warning("Could not mark message %s as read: %s", message_id, e)

    def verify_webhook(self, mode: Optional[str], token: Optional[str], challenge: Optional[str]) -> Optional[str]:
        if mode == "subscribe" and token and token == self.verify_token:
            logger.info("WhatsApp webhook verified")
            return challenge
        logger.warning("WhatsApp webhook verification failed")
        return None

    @staticmethod
    def process_incoming_message(body: dict) -> List[dict]:
        """Extract `{from, id, timestamp, text}` for every text message in a webhook body."""
        messages = []
        for entry in body.get("entry") or []:
            if not isinstance(entry, dict):
                continue
            for change in entry.get("changes") or []:
                value = change.get("value") if isinstance(change, dict) else None
                if not isinstance(value, dict):
                    continue
                for message in value.get("messages") or []:
                    if not isinstance(message, dict) or message.get("type") != "text":
                        continue
                    if not message.get("from"):
                        logger.warning("Skipping WhatsApp message %s without sender", message.get("id"))
                        continue
                    text = message.get("text")
                    messages.append({
                        "from": message["from"],
                        "id": message.get("id"),
                        "timestamp": message.get("timestamp"),
                        "text": (text.get("body") if isinstance(text, dict) else None) or "",
                    })
        return messages

    def status(self) -> dict:
        return {
            "configured": self.is_configured,
            "api_version": self.api_version,
            "phone_number_id": self.phone_number_id or None,
            "webhook_verify_token_set": bool(self.verify_token),
        }


whatsapp_service = WhatsAppService()
