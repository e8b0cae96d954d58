import logging
import smtplib
from collections.abc import Callable
from email.message import EmailMessage

from starlette.concurrency import run_in_threadpool

from warbler.config import Settings

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending transactional email over SMTP.

    In log-only mode messages are written to the log instead of being sent,
    which is how development setups read password reset links.

    Attributes:
        host: SMTP server host
        port: SMTP server port
        secure: Use implicit TLS instead of STARTTLS
        user: SMTP login, also the fallback sender address
        password: SMTP password
        sender: From address of outgoing mail
        log_only: Log messages instead of sending them
    """

    def __init__(
        self,
        *,
        host: str = "localhost",
        port: int = 587,
        secure: bool = False,
        user: str | None = None,
        password: str | None = None,
        sender: str | None = None,
        log_only: bool = False,
        transport: Callable[[EmailMessage], None] | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.secure = secure
        self.user = user
        self.password = password
        self.sender = sender or user
        self.log_only = log_only
        self._transport = transport or self._send_over_smtp

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailService":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            secure=settings.smtp_secure,
            user=settings.smtp_user,
            password=settings.smtp_password,
            sender=settings.email_from,
            log_only=settings.log_email_only,
        )

    async def send_password_reset(self, email: str, reset_link: str) -> bool:
        """Send a password reset link.

        Args:
            email: Recipient address
            reset_link: Link to the reset form, including the token

        Returns:
            True if the link was only logged, False if it was mailed

        Raises:
            smtplib.SMTPException: If the SMTP server rejects the message
        """
        if self.log_only:
            logger.info("Password reset link for %s: %s", email, reset_link)
            return True

        message = EmailMessage()
        message["From"] = self.sender or ""
        message["To"] = email
        message["Subject"] = "Password reset request"
        message.set_content(f"Reset your password using this link: {reset_link}")

        await run_in_threadpool(self._transport, message)
        return False

    def _send_over_smtp(self, message: EmailMessage) -> None:
        smtp_class = smtplib.SMTP_SSL if self.secure else smtplib.SMTP
        with smtp_class(self.host, self.port, timeout=30) as smtp:
            if not self.secure:
                smtp.ehlo()
                if smtp.has_extn("starttls"):
                    smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password or "")
            smtp.send_message(message)
