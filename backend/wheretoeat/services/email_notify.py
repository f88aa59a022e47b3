"""
Send booking emails via SMTP (Google Gmail or other).
Set SMTP_USER, SMTP_PASSWORD (and optionally NOTIFY_FROM) in .env. Use a Gmail App Password (not your normal password).
"""
import logging
import re
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from wheretoeat.config import settings

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")


def _from_address() -> str:
    if settings.notify_from:
        return settings.notify_from
    if settings.smtp_user:
        return f"WhereToEat <{settings.smtp_user}>"
    return "WhereToEat <reservations@wheretoeat.ch>"


def html_to_text(html: str) -> str:
    """Rough plain-text alternative for clients that do not render HTML."""
    text = _TAG_RE.sub("", html)
    return _BLANK_LINES_RE.sub("\n\n", text).strip()


def send_email(to_email: str, subject: str, html: str) -> bool:
    """
    Send one HTML email (with a plain-text alternative) via SMTP.
    Returns True if sent, False if skipped or failed.
    """
    to_email = (to_email or "").strip()
    if not to_email:
        logger.debug("No recipient for %r; skipping email", subject)
        return False
    user = settings.smtp_user
    password = settings.smtp_password
    if not user or not password:
        logger.debug("SMTP_USER or SMTP_PASSWORD not set; skipping email %r", subject)
        return False
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = _from_address()
    msg["To"] = to_email
    msg.attach(MIMEText(html_to_text(html), "plain", "utf-8"))
    msg.attach(MIMEText(html, "html", "utf-8"))
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as server:
            server.starttls()
            server.login(user, password)
            server.sendmail(user, [to_email], msg.as_string())
        logger.info("Email %r sent to %s", subject, to_email)
        return True
    except Exception as e:
        logger.exception("Failed to send email %r to %s: %s", subject, to_email, e)
        return False
