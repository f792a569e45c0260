"""
Notification dispatchers for debt notices.

The ledger decides *whether* to notify and *with what numbers*; delivery
is behind the ``NotificationDispatcher`` protocol:

- ``SmtpNotificationDispatcher`` builds an ``EmailMessage`` and hands it
  to an SMTP server (STARTTLS when configured).
- ``LoggingNotificationDispatcher`` records the message and logs it
  (dry runs, tests, environments without a mail relay).
"""

from __future__ import annotations

import smtplib
from collections import deque
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Protocol, Sequence, runtime_checkable

from debt_kernel.logging_config import get_logger

logger = get_logger("services.notifications")


@runtime_checkable
class NotificationDispatcher(Protocol):
    def send(
        self,
        to: str,
        subject: str,
        body: str,
        cc: Sequence[str] = (),
    ) -> None:
        ...


def build_message(
    *,
    from_email: str,
    to_email: str,
    subject: str,
    body_text: str,
    cc_emails: Sequence[str] = (),
) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_email
    if cc_emails:
        msg["Cc"] = ", ".join(cc_emails)
    msg["Subject"] = subject
    msg["Date"] = formatdate(localtime=True)
    msg["Message-ID"] = make_msgid(domain=None)
    msg.set_content(body_text or " ")
    return msg


@dataclass(frozen=True)
class SmtpSettings:
    host: str
    port: int = 587
    use_tls: bool = True
    username: str = ""
    password: str = field(default="", repr=False)
    timeout_seconds: float = 30.0


class SmtpNotificationDispatcher:
    """Sends notices through an SMTP relay.  SMTP errors propagate."""

    def __init__(self, settings: SmtpSettings, from_email: str):
        self._settings = settings
        self._from_email = from_email

    def send(self, to: str, subject: str, body: str, cc: Sequence[str] = ()) -> None:
        msg = build_message(
            from_email=self._from_email,
            to_email=to,
            subject=subject,
            body_text=body,
            cc_emails=cc,
        )
        s = self._settings
        with smtplib.SMTP(s.host, s.port, timeout=s.timeout_seconds) as smtp:
            smtp.ehlo()
            if s.use_tls:
                smtp.starttls()
                smtp.ehlo()
            if s.username:
                smtp.login(s.username, s.password)
            smtp.send_message(msg, from_addr=self._from_email, to_addrs=[to, *cc])

        logger.info(
            "notification_sent",
            extra={"channel": "smtp", "recipient": to, "cc_count": len(cc)},
        )


@dataclass(frozen=True)
class SentNotification:
    to: str
    subject: str
    body: str
    cc: tuple[str, ...] = ()


class LoggingNotificationDispatcher:
    """Records and logs notices instead of delivering them.

    Only the most recent ``history_size`` notices are kept in ``sent``.
    """

    def __init__(self, history_size: int = 100) -> None:
        self.sent: deque[SentNotification] = deque(maxlen=history_size)

    def send(self, to: str, subject: str, body: str, cc: Sequence[str] = ()) -> None:
        self.sent.append(SentNotification(to, subject, body, tuple(cc)))
        logger.info(
            "notification_logged",
            extra={"channel": "log", "recipient": to, "subject": subject, "cc_count": len(cc)},
        )
