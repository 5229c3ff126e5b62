"""SMTP implementation of EmailProvider.

smtplib is blocking, so each send runs in a worker thread via
asyncio.to_thread. Jinja2 renders the HTML bodies from templates/emails.

Delivery failures are logged and reported as ``False``; callers decide
whether that is fatal.
"""

import asyncio
import os
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from shared.logging import get_logger

log = get_logger(__name__)

_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)


class SmtpEmailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        app_name: str = "Auth System",
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
        timeout: float = 10.0,
    ) -> None:
        self._settings = settings
        self._app_name = app_name
        self._timeout = timeout
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def _build_message(
        self, to_email: str, subject: str, text_body: str, html_body: str
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = formataddr(
            (self._settings.email_from_name, self._settings.email_from)
        )
        msg["To"] = to_email
        msg.set_content(text_body)
        msg.add_alternative(html_body, subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(
            self._settings.email_host,
            self._settings.email_port,
            timeout=self._timeout,
        ) as server:
            if self._settings.email_use_tls:
                server.starttls()
            if self._settings.email_username:
                server.login(
                    self._settings.email_username, self._settings.email_password
                )
            server.send_message(msg)

    async def send_email(
        self, to_email: str, subject: str, text_body: str, html_body: str
    ) -> bool:
        if not self._settings.is_configured:
            log.error("email_send_failed", reason="smtp_not_configured")
            return False

        msg = self._build_message(to_email, subject, text_body, html_body)
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            log.error(
                "email_send_error",
                to_email=to_email,
                subject=subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        log.info("email_sent_success", to_email=to_email, subject=subject)
        return True

    async def send_verification_email(
        self, email: str, name: Optional[str], verification_url: str
    ) -> bool:
        subject = "Email Verification"
        html_body = self._jinja.get_template("verification.html").render(
            name=name,
            verification_url=verification_url,
            expires_in="24 hours",
            app_name=self._app_name,
        )
        text_body = (
            f"Please verify your email by clicking the following link: "
            f"{verification_url}\n\nThis link will expire in 24 hours."
        )
        return await self.send_email(email, subject, text_body, html_body)

    async def send_password_reset_email(
        self, email: str, name: Optional[str], reset_url: str
    ) -> bool:
        subject = "Password Reset Request"
        html_body = self._jinja.get_template("password_reset.html").render(
            name=name,
            reset_url=reset_url,
            expires_in="10 minutes",
            app_name=self._app_name,
        )
        text_body = (
            f"You have requested a password reset. Please click the following "
            f"link to reset your password: {reset_url}\n\n"
            f"This link will expire in 10 minutes. If you did not request "
            f"this, please ignore this email."
        )
        return await self.send_email(email, subject, text_body, html_body)
