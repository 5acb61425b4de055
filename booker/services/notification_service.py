"""
Outbound notifications for availability and booking results.

Channels are tried in a fixed order: Telegram, then SMS through Twilio, then
email over SMTP. The first channel that is configured and has a recipient
delivers the message; its delivery errors are reported, never skipped over.
"""

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Literal

import httpx
from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from booker.config import Settings, settings
from booker.models.schemas import NotifyPriority, NotifyRequest

logger = logging.getLogger(__name__)

EMAIL_SUBJECT = "UBC Tennis Booker"
TELEGRAM_TIMEOUT_SECONDS = 15.0


class NotificationError(Exception):
    """A configured channel failed to deliver the message."""

    status_code = 502


class MissingRecipient(NotificationError):
    """Email is the only channel available but no address was given or configured."""

    status_code = 400


class NotifierNotConfigured(NotificationError):
    """No notification channel is configured on the server."""

    status_code = 500


@dataclass(frozen=True)
class NotifyResult:
    via: Literal["telegram", "sms", "email"]
    target: str


class NotificationService:
    """
    Delivers a notification through the first usable channel.

    Usage:
        result = await notification_service.notify(NotifyRequest(text="Court 3 is open"))
        print(result.via, result.target)
    """

    def __init__(
        self,
        config: Settings = settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport
        self._twilio_client: Client | None = None

    @property
    def twilio_client(self) -> Client:
        """Lazily initialize and return the Twilio client."""
        if self._twilio_client is None:
            self._twilio_client = Client(
                self.config.twilio_account_sid, self.config.twilio_auth_token
            )
        return self._twilio_client

    @property
    def sms_ready(self) -> bool:
        return bool(
            self.config.twilio_account_sid
            and self.config.twilio_auth_token
            and self.config.twilio_phone_number
        )

    async def notify(self, payload: NotifyRequest) -> NotifyResult:
        """
        Send payload.text through Telegram, SMS or email, in that order.

        Raises:
            MissingRecipient: Only email is configured and there is no address.
            NotifierNotConfigured: No channel can be used.
            NotificationError: The chosen channel rejected the message.
        """
        target = payload.notify
        text = payload.text

        chat_id = ((target.telegram_chat_id if target else None) or "").strip()
        chat_id = chat_id or self.config.telegram_chat_id.strip()
        if chat_id and self.config.telegram_bot_token:
            await self.send_telegram(text, chat_id)
            return NotifyResult(via="telegram", target=chat_id)

        phone = ((target.sms if target else None) or "").strip()
        if phone and self.sms_ready:
            await self.send_sms(phone, text)
            return NotifyResult(via="sms", target=phone)

        if self.config.smtp_ready:
            to = ((target.email if target else None) or self.config.email_to).strip()
            if not to:
                raise MissingRecipient(
                    "No email recipient set. Provide notify.email or set EMAIL_TO on the server."
                )
            await self.send_email(to, text, payload.priority)
            return NotifyResult(via="email", target=to)

        raise NotifierNotConfigured(
            "No notifier configured. Set TELEGRAM_BOT_TOKEN/TELEGRAM_CHAT_ID, "
            "TWILIO_* or SMTP_* env vars."
        )

    async def send_telegram(self, text: str, chat_id: str) -> None:
        url = f"https://api.telegram.org/bot{self.config.telegram_bot_token}/sendMessage"
        payload = {"chat_id": chat_id, "text": text}
        logger.info(f"Sending Telegram notification to chat {chat_id}")

        try:
            async with httpx.AsyncClient(
                timeout=TELEGRAM_TIMEOUT_SECONDS, transport=self._transport
            ) as client:
                response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            raise NotificationError(f"Telegram sendMessage failed: {e}") from e

        if not response.is_success:
            logger.error(f"Telegram sendMessage failed: {response.status_code} {response.text}")
            raise NotificationError(
                f"Telegram sendMessage failed: {response.status_code} {response.text}"
            )

    async def send_sms(self, to_number: str, text: str) -> str:
        """Send an SMS through Twilio and return the message SID."""
        logger.info(f"Sending SMS notification to {to_number}")
        try:
            message = await asyncio.to_thread(
                self.twilio_client.messages.create,
                body=text,
                from_=self.config.twilio_phone_number,
                to=to_number,
            )
        except TwilioRestException as e:
            logger.error(f"Error sending SMS: {e}")
            raise NotificationError(f"SMS send failed: {e.msg}") from e
        return message.sid

    async def send_email(
        self, to: str, text: str, priority: NotifyPriority | None = None
    ) -> None:
        logger.info(f"Sending email notification to {to}")
        try:
            await asyncio.to_thread(self._send_email_sync, to, text, priority)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Error sending email: {e}")
            raise NotificationError(f"Email send failed: {e}") from e

    def _send_email_sync(self, to: str, text: str, priority: NotifyPriority | None) -> None:
        msg = EmailMessage()
        subject = EMAIL_SUBJECT
        if priority is not None and priority != NotifyPriority.INFO:
            subject = f"[{priority.value.upper()}] {subject}"
        msg["Subject"] = subject
        msg["From"] = self.config.email_from
        msg["To"] = to
        msg.set_content(text)

        # Port 465 speaks TLS from the first byte; anything else upgrades with STARTTLS
        if self.config.smtp_port == 465:
            with smtplib.SMTP_SSL(self.config.smtp_host, self.config.smtp_port) as server:
                server.login(self.config.smtp_user, self.config.smtp_password)
                server.send_message(msg)
        else:
            with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port) as server:
                server.starttls()
                server.login(self.config.smtp_user, self.config.smtp_password)
                server.send_message(msg)


notification_service = NotificationService()
