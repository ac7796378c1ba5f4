"""
Client SMS : API REST Twilio (Messages.json) via httpx.
Docs : https://www.twilio.com/docs/messaging/api/message-resource#create-a-message-resource
"""
import logging
import re
from typing import Optional

import httpx

from core.utils import mask_phone
from models.notification import SendOutcome

logger = logging.getLogger(__name__)

NOT_CONFIGURED = "Twilio not configured"
INVALID_PHONE = "Invalid phone number"

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(phone: str) -> Optional[str]:
    """
    Format E.164 à partir d'un numéro saisi librement.
      10 chiffres            → +1XXXXXXXXXX (US sans indicatif)
      11 chiffres dont 1 en tête → +1XXXXXXXXXX
      plus de 10 chiffres    → +<chiffres> (international)
      moins de 10 chiffres   → None
    """
    digits = _NON_DIGITS.sub("", str(phone or ""))
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    if len(digits) > 10:
        return f"+{digits}"
    return None


class TwilioSmsClient:
    def __init__(
        self,
        account_sid: Optional[str],
        auth_token: Optional[str],
        from_number: Optional[str],
        base_url: str = "https://api.twilio.com",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    def _endpoint(self) -> str:
        return f"{self.base_url}/2010-04-01/Accounts/{self.account_sid}/Messages.json"

    async def send(self, to: str, body: str) -> SendOutcome:
        if not self.is_configured:
            logger.info(f"Twilio non configuré, SMS non envoyé ({body[:50]!r})")
            return SendOutcome(success=False, error=NOT_CONFIGURED)

        formatted = normalize_phone(to)
        if not formatted:
            return SendOutcome(success=False, error=INVALID_PHONE)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self._endpoint(),
                    data={"To": formatted, "From": self.from_number, "Body": body},
                    auth=(self.account_sid, self.auth_token),
                )
                data = resp.json()
        except Exception as e:
            logger.error(f"Erreur Twilio pour {mask_phone(formatted)} : {e}")
            return SendOutcome(success=False, error=str(e) or type(e).__name__)

        if not resp.is_success:
            error = data.get("message") if isinstance(data, dict) else None
            logger.warning(f"Twilio a refusé le SMS pour {mask_phone(formatted)} (HTTP {resp.status_code}) : {error}")
            return SendOutcome(success=False, error=error or f"Twilio HTTP {resp.status_code}")

        logger.info(f"SMS envoyé à {mask_phone(formatted)}")
        sid = data.get("sid") if isinstance(data, dict) else None
        return SendOutcome(success=True, message_id=sid)
