import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from safetyband.core.config import Settings
from safetyband.core.exceptions import DeliveryFailure

logger = logging.getLogger(__name__)

LOGGED_OUT = "logged_out"


class ChannelState(str, Enum):
    DISCONNECTED = "disconnected"
    QR_PENDING = "qr_generated"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass(frozen=True)
class DeliveryReceipt:
    recipient: str
    message_id: str | None
    timestamp: int | str | None = None


def format_phone_number(phone: str, default_country_code: str = "91") -> str:
    digits = re.sub(r"\D", "", phone or "")
    if not digits.startswith(default_country_code) and len(digits) == 10:
        digits = default_country_code + digits
    return digits


class MessagingChannel:
    """
    Chat-messaging connection held by the application and injected where needed.

    Talks to an HTTP bridge that owns the chat session. Session updates follow
    disconnected -> qr_generated -> connected; a close that is not a logout
    schedules a reconnect after ``messaging_reconnect_delay_seconds``.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self.default_country_code = settings.default_country_code
        self.reconnect_delay = settings.messaging_reconnect_delay_seconds
        self._owns_client = client is None
        if client is None and settings.messaging_gateway_url:
            headers = {}
            if settings.messaging_gateway_token:
                headers["Authorization"] = f"Bearer {settings.messaging_gateway_token}"
            client = httpx.AsyncClient(base_url=settings.messaging_gateway_url, headers=headers, timeout=10.0)
        self.client = client
        self.state = ChannelState.DISCONNECTED
        self.qr_code: str | None = None
        self._reconnect_task: asyncio.Task | None = None

    @property
    def is_connected(self) -> bool:
        return self.state is ChannelState.CONNECTED

    def status(self) -> dict[str, Any]:
        return {
            "isConnected": self.is_connected,
            "connectionState": self.state.value,
            "qrCode": self.qr_code,
        }

    async def connect(self) -> bool:
        if self.client is None:
            logger.warning("Messaging gateway not configured; emergency messages will not be delivered")
            self.state = ChannelState.ERROR
            return False
        try:
            resp = await self.client.get("/session")
            resp.raise_for_status()
            self.handle_update(resp.json())
        except (httpx.HTTPError, ValueError):
            logger.exception("Failed to initialize messaging channel")
            self.state = ChannelState.ERROR
            return False
        return True

    def handle_update(self, update: dict[str, Any]) -> None:
        qr = update.get("qr")
        if qr:
            self.qr_code = qr
            self.state = ChannelState.QR_PENDING
            logger.info("Messaging channel waiting for QR pairing")

        connection = update.get("connection") or update.get("state")
        if connection == "close":
            reason = update.get("reason")
            self.state = ChannelState.DISCONNECTED
            logger.warning("Messaging connection closed: %s", reason)
            if reason != LOGGED_OUT:
                self._schedule_reconnect()
        elif connection == "open":
            self.state = ChannelState.CONNECTED
            self.qr_code = None
            logger.info("Messaging channel connected")

    def _schedule_reconnect(self) -> None:
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._reconnect_task = loop.create_task(self._reconnect())

    async def _reconnect(self) -> None:
        await asyncio.sleep(self.reconnect_delay)
        logger.info("Reconnecting messaging channel")
        await self.connect()

    async def _post_message(self, recipient: str, body: dict[str, Any]) -> DeliveryReceipt:
        if not self.is_connected or self.client is None:
            raise DeliveryFailure("Messaging channel is not connected")
        try:
            resp = await self.client.post("/messages", json={"to": recipient, **body})
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Failed to deliver message to %s: %s", recipient, exc)
            raise DeliveryFailure(f"Failed to deliver message to {recipient}") from exc
        return DeliveryReceipt(recipient=recipient, message_id=data.get("id"), timestamp=data.get("timestamp"))

    def _jid(self, phone: str) -> str:
        return f"{format_phone_number(phone, self.default_country_code)}@s.whatsapp.net"

    async def send_text(self, phone: str, text: str) -> DeliveryReceipt:
        return await self._post_message(self._jid(phone), {"type": "text", "text": text})

    async def send_location(self, phone: str, latitude: float, longitude: float, text: str = "") -> DeliveryReceipt:
        jid = self._jid(phone)
        receipt = await self._post_message(jid, {"type": "location", "latitude": latitude, "longitude": longitude})
        if text:
            await self._post_message(jid, {"type": "text", "text": text})
        return receipt

    async def disconnect(self) -> None:
        if self.client is not None and self.state is not ChannelState.DISCONNECTED:
            try:
                await self.client.post("/session/logout")
            except httpx.HTTPError:
                logger.exception("Messaging logout failed")
        self.state = ChannelState.DISCONNECTED
        self.qr_code = None

    async def aclose(self) -> None:
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
            self._reconnect_task = None
        if self.client is not None and self._owns_client:
            await self.client.aclose()
