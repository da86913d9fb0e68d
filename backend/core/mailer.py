# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""
Outbound transactional email (password reset, email verification).

Plain-text messages over SMTP.  Without an SMTP host the mailer logs the
message instead of sending it, which is what development and tests use.
Delivery problems are logged and reported as ``False``; they never fail the
request that triggered the email.
"""

import smtplib
import ssl
from email.message import EmailMessage
from typing import Optional

from core.logger import logger, redact_email


class Mailer:
    def __init__(
        self,
        *,
        smtp_host: str = "",
        smtp_port: int = 587,
        smtp_user: str = "",
        smtp_password: str = "",
        smtp_use_tls: bool = True,
        from_email: str = "",
        frontend_url: str = "http://localhost:3000",
        log_links: bool = False,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.from_email = from_email or smtp_user
        self.frontend_url = frontend_url.rstrip("/")
        # Only ever enabled in development: links embed live tokens
        self.log_links = log_links

    @classmethod
    def from_settings(cls, settings) -> "Mailer":
        return cls(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_user=settings.smtp_user,
            smtp_password=settings.smtp_password,
            smtp_use_tls=settings.smtp_use_tls,
            from_email=settings.email_from,
            frontend_url=settings.frontend_url,
            log_links=settings.is_development,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def send_password_reset(self, to_email: str, token: str) -> bool:
        link = f"{self.frontend_url}/reset-password?token={token}"
        body = (
            "We received a request to reset your Hire Helping Hand password.\n\n"
            f"Open this link within the next hour to choose a new one:\n{link}\n\n"
            "If you did not ask for this, you can ignore this email."
        )
        return self._send(to_email, "Reset your password", body, link)

    def send_email_verification(self, to_email: str, token: str) -> bool:
        link = f"{self.frontend_url}/verify-email?token={token}"
        body = (
            "Welcome to Hire Helping Hand!\n\n"
            f"Confirm your email address by opening this link:\n{link}\n"
        )
        return self._send(to_email, "Verify your email address", body, link)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _send(self, to_email: str, subject: str, body: str, link: Optional[str] = None) -> bool:
        if not self.is_configured:
            logger.info("Email not sent (SMTP not configured) | to=%s subject=%s", redact_email(to_email), subject)
            if self.log_links and link:
                logger.debug("Email link for %s: %s", redact_email(to_email), link)
            return True

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to_email
        msg.set_content(body)

        context = ssl.create_default_context()
        try:
            if self.smtp_use_tls:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                    server.starttls(context=context)
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.send_message(msg)
            else:
                with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, context=context, timeout=30) as server:
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.send_message(msg)
        except (smtplib.SMTPException, ssl.SSLError, OSError) as exc:
            logger.error(
                "Email delivery failed | to=%s subject=%s error=%s: %s",
                redact_email(to_email), subject, type(exc).__name__, exc,
            )
            return False

        logger.info("Email sent | to=%s subject=%s", redact_email(to_email), subject)
        return True
