import hmac
from typing import Optional
from fastapi import Header

from config import settings
from core.exceptions import credentials_exception
from services.notification_service import NotificationService, build_notification_service


async def require_admin(x_api_key: Optional[str] = Header(None, alias="X-API-Key")) -> None:
    """
    Protège les routes admin par clé partagée.
    Sans ADMIN_API_KEY configurée, l'accès est libre (développement).
    """
    if not settings.ADMIN_API_KEY:
        return
    if not x_api_key or not hmac.compare_digest(x_api_key.encode(), settings.ADMIN_API_KEY.encode()):
        raise credentials_exception()


def get_notification_service() -> NotificationService:
    return build_notification_service()
