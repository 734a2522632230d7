"""
Notification Gateway

Provides a unified interface for outbound account emails.
Services receive a gateway at construction; the SMTP implementation is used
when SMTP_HOST is configured, otherwise mails are only logged.
"""
import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

from account_service.config import settings
from account_service.core.errors import NotificationError

logger = logging.getLogger(__name__)


@dataclass
class MailMessage:
    """One outbound email"""
    to: str
    subject: str
    text: Optional[str] = None
    html: Optional[str] = None


class NotificationGateway(ABC):
    """Email delivery abstract base class"""

    @abstractmethod
    async def send(self, message: MailMessage) -> None:
        """
        Deliver a message.

        Raises:
        - NotificationError: delivery failed
        """
        raise NotImplementedError


class SmtpNotificationGateway(NotificationGateway):
    """Delivers mail through an SMTP relay (STARTTLS + login when configured)."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        sender: str = "no-reply@example.com",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender

    def _build(self, message: MailMessage) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = message.to
        msg["Subject"] = message.subject
        msg.set_content(message.text or "")
        if message.html:
            msg.add_alternative(message.html, subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(host=self.host, port=self.port, timeout=30) as conn:
            if self.use_tls:
                conn.starttls()
            if self.username:
                conn.login(self.username, self.password or "")
            conn.send_message(msg)

    async def send(self, message: MailMessage) -> None:
        msg = self._build(message)
        try:
            # smtplib is blocking; keep it off the event loop
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("[mail] delivery to %s failed: %s", message.to, exc, exc_info=True)
            raise NotificationError() from exc
        logger.info("[mail] sent '%s' to %s", message.subject, message.to)


class LogOnlyNotificationGateway(NotificationGateway):
    """Development gateway: records the subject and recipient, sends nothing."""

    async def send(self, message: MailMessage) -> None:
        logger.warning("[mail] SMTP_HOST not set, not sending '%s' to %s", message.subject, message.to)


# -------- account mails --------
def registration_email(to: str) -> MailMessage:
    return MailMessage(
        to=to,
        subject="Welcome to Our Application!",
        text="Thank you for registering with us!",
    )


def password_reset_email(to: str, reset_token: str) -> MailMessage:
    reset_link = f"{settings.reset_link_base.rstrip('/')}/user/verify_reset_password/{reset_token}"
    return MailMessage(
        to=to,
        subject="Password Reset Request",
        text=f"You have requested to reset your password. Open {reset_link} to reset your password.",
        html=(
            "<p>You have requested to reset your password. "
            f'Please click <a href="{reset_link}">here</a> to reset your password.</p>'
        ),
    )


def password_reset_success_email(to: str) -> MailMessage:
    return MailMessage(
        to=to,
        subject="Password Reset Successful",
        text="Your password has been successfully reset.",
    )


def get_notification_gateway() -> NotificationGateway:
    """
    Build the gateway for the current configuration.

    Returns:
    - SmtpNotificationGateway when SMTP_HOST is set
    - LogOnlyNotificationGateway otherwise
    """
    if not settings.smtp_host:
        return LogOnlyNotificationGateway()
    return SmtpNotificationGateway(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        sender=settings.email_from,
    )
