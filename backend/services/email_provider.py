"""
Client email : envoi SMTP via aiosmtplib.
Ne lève jamais : toute erreur devient un SendOutcome(success=False).
"""
import logging
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Optional

import aiosmtplib

from core.utils import mask_email
from models.notification import SendOutcome

logger = logging.getLogger(__name__)

NOT_CONFIGURED = "SMTP not configured"


class SmtpEmailClient:
    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 15.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.username and self.password)

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
        from_name: str,
        from_address: str,
        reply_to: Optional[str] = None,
    ) -> SendOutcome:
        if not self.is_configured:
            logger.info(f"SMTP non configuré, email non envoyé ({subject!r})")
            return SendOutcome(success=False, error=NOT_CONFIGURED)

        try:
            message = build_message(to, subject, html, text, from_name, from_address, reply_to)
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                use_tls=self.port == 465,
                # Hors 465 : STARTTLS seulement si le serveur le propose
                start_tls=False if self.port == 465 else None,
                timeout=self.timeout,
            )
        except Exception as e:
            logger.error(f"Échec envoi email à {mask_email(to)} : {e}")
            return SendOutcome(success=False, error=str(e) or type(e).__name__)

        logger.info(f"Email envoyé à {mask_email(to)}")
        return SendOutcome(success=True, message_id=message["Message-ID"])


def build_message(
    to: str,
    subject: str,
    html: str,
    text: str,
    from_name: str,
    from_address: str,
    reply_to: Optional[str] = None,
) -> EmailMessage:
    """Message multipart/alternative texte + HTML."""
    message = EmailMessage()
    message["From"] = formataddr((from_name, from_address))
    message["To"] = to
    message["Reply-To"] = reply_to or from_address
    message["Subject"] = subject
    domain = from_address.rpartition("@")[2] or None
    message["Message-ID"] = make_msgid(domain=domain)
    message.set_content(text)
    message.add_alternative(html, subtype="html")
    return message
