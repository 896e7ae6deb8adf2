import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from fastapi import BackgroundTasks

from app.config import settings

logger = logging.getLogger(__name__)


def _redact(email: str) -> str:
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class EmailSender:
    """
    SMTP sender. Without SMTP_HOST / SENDER_EMAIL configured (local dev) the
    message is written to the log instead of being sent.
    """

    def __init__(
        self,
        smtp_host: str | None = None,
        smtp_port: int = 587,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        use_tls: bool = True,
        from_email: str | None = None,
        from_name: str = "Home Service Management",
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.use_tls = use_tls
        self.from_email = from_email or smtp_user
        self.from_name = from_name

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    def send(self, to_email: str, subject: str, html_body: str) -> None:
        """Send one HTML email. Raises smtplib / OS errors on failure."""
        if not self.is_configured:
            logger.info("=" * 60)
            logger.info(f"[EMAIL]  To      : {to_email}")
            logger.info(f"[EMAIL]  Subject : {subject}")
            logger.info(f"[EMAIL]  Body    : {html_body[:200]}")
            logger.info("=" * 60)
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f'"{self.from_name}" <{self.from_email}>'
        msg["To"] = to_email
        msg.attach(MIMEText(html_body, "html"))

        context = ssl.create_default_context()
        if self.use_tls:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                server.starttls(context=context)
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())
        else:
            with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, context=context, timeout=30) as server:
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())

        logger.info(f"Email sent successfully to {_redact(to_email)}")


email_sender = EmailSender(
    smtp_host=settings.SMTP_HOST,
    smtp_port=settings.SMTP_PORT,
    smtp_user=settings.SMTP_USER,
    smtp_password=settings.SMTP_PASSWORD,
    use_tls=settings.SMTP_USE_TLS,
    from_email=settings.SENDER_EMAIL,
    from_name=settings.SENDER_NAME,
)


def deliver_email(to_email: str, subject: str, html_body: str) -> bool:
    """
    Detached delivery: retries up to EMAIL_MAX_ATTEMPTS, then logs and gives up.
    Never raises; a failed notification must not affect the request that queued it.
    """
    attempts = max(settings.EMAIL_MAX_ATTEMPTS, 1)
    for attempt in range(1, attempts + 1):
        try:
            email_sender.send(to_email, subject, html_body)
            return True
        except Exception as e:
            logger.warning(
                f"Email to {_redact(to_email)} failed "
                f"(attempt {attempt}/{attempts}, subject={subject!r}): {e}"
            )
    logger.error(f"Giving up on email to {_redact(to_email)} (subject={subject!r})")
    return False


def queue_email(background_tasks: BackgroundTasks, to_email: str, subject: str, html_body: str) -> None:
    """Schedule delivery to run after the response has been sent."""
    background_tasks.add_task(deliver_email, to_email, subject, html_body)
