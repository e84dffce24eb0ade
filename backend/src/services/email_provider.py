"""Verification email delivery with console and SMTP adapters.

Console delivery is for development and tests; SMTP is used in production.
"""
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from src.lib.logging import get_logger
from src.lib.settings import settings

logger = get_logger(__name__)


class EmailProvider(ABC):
    """Abstract base class for email delivery providers."""

    @abstractmethod
    async def send_verification_email(self, email: str, name: str, link: str) -> bool:
        """Send an email-verification link.

        Returns:
            True if sent successfully, False otherwise
        """


class ConsoleEmailProvider(EmailProvider):
    """Logs verification links instead of sending them."""

    async def send_verification_email(self, email: str, name: str, link: str) -> bool:
        logger.info(
            "Verification email (console)",
            extra={"email": email, "verification_link": link},
        )
        return True


class SmtpEmailProvider(EmailProvider):
    """SMTP email provider.

    Requires SMTP_USERNAME and SMTP_PASSWORD; port 465 uses implicit TLS,
    anything else uses STARTTLS.
    """

    def __init__(self):
        if not settings.smtp_username or not settings.smtp_password:
            raise ValueError(
                "SMTP credentials not configured. "
                "Set SMTP_USERNAME and SMTP_PASSWORD environment variables."
            )

        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_username = settings.smtp_username
        self.smtp_password = settings.smtp_password
        self.from_email = settings.smtp_from_email or settings.smtp_username
        self.from_name = settings.smtp_from_name

    def _build_message(self, email: str, name: str, link: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = "Verify your Prime Care email"
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = email

        text = f"""
Hello {name or 'there'},

Please confirm your email address by opening the link below:

{link}

If you didn't create a Prime Care account, you can ignore this email.

Prime Care Team
        """

        html = f"""
<html>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
      <h2 style="color: #0f766e;">Confirm your email</h2>
      <p>Hello {name or 'there'},</p>
      <p>Please confirm your email address to finish setting up your account.</p>
      <p style="text-align: center; margin: 24px 0;">
        <a href="{link}" style="background-color: #0f766e; color: #fff; padding: 12px 24px; border-radius: 8px; text-decoration: none;">Verify email</a>
      </p>
      <p style="color: #6b7280; font-size: 14px;">If you didn't create a Prime Care account, you can ignore this email.</p>
    </div>
  </body>
</html>
        """

        msg.attach(MIMEText(text, "plain"))
        msg.attach(MIMEText(html, "html"))
        return msg

    async def send_verification_email(self, email: str, name: str, link: str) -> bool:
        msg = self._build_message(email, name, link)
        try:
            if self.smtp_port == 465:
                with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port) as server:
                    server.login(self.smtp_username, self.smtp_password)
                    server.send_message(msg)
            else:
                with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                    server.starttls()
                    server.login(self.smtp_username, self.smtp_password)
                    server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "Verification email failed",
                extra={"email": email, "error": str(e)},
            )
            return False

        logger.info("Verification email sent", extra={"email": email})
        return True


def get_email_provider() -> EmailProvider:
    """Email provider selected by settings.email_provider."""
    provider_name = settings.email_provider.lower()

    if provider_name == "console":
        return ConsoleEmailProvider()
    if provider_name in ("email", "smtp"):
        return SmtpEmailProvider()
    raise ValueError(
        f"Unknown email provider: {provider_name}. "
        f"Valid options: console, email"
    )
