"""
Accès MongoDB du moteur de notifications : réglages, templates, journal d'envoi.

Les lectures ne lèvent pas : une erreur driver est journalisée et traitée
comme « introuvable ». L'écriture du journal renvoie False en cas d'échec.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Protocol

from models.notification import (
    NotificationChannel,
    NotificationLogEntry,
    NotificationSettings,
    NotificationStatus,
    NotificationTemplate,
)

logger = logging.getLogger(__name__)


def _log_id() -> str:
    return f"nlg_{uuid.uuid4().hex[:12]}"


class SettingsStore(Protocol):
    async def get_settings(self) -> Optional[NotificationSettings]: ...


class TemplateStore(Protocol):
    async def get_template(self, channel: NotificationChannel, trigger: str) -> Optional[NotificationTemplate]: ...

    async def get_template_by_id(self, template_id: str) -> Optional[NotificationTemplate]: ...


class DeliveryLogger(Protocol):
    async def log(self, entry: NotificationLogEntry) -> bool: ...

    async def recent(self, limit: int = 50) -> List[NotificationLogEntry]: ...


def build_log_entry(
    channel: NotificationChannel,
    recipient: str,
    body: str,
    success: bool,
    subject: Optional[str] = None,
    error_message: Optional[str] = None,
    external_id: Optional[str] = None,
    template_id: Optional[str] = None,
    customer_id: Optional[str] = None,
    invoice_id: Optional[str] = None,
    shipment_id: Optional[str] = None,
    release_id: Optional[str] = None,
) -> NotificationLogEntry:
    now = datetime.now(timezone.utc)
    return NotificationLogEntry(
        log_id=_log_id(),
        template_id=template_id,
        customer_id=customer_id,
        recipient=recipient,
        type=channel,
        subject=subject,
        body=body,
        status=NotificationStatus.SENT if success else NotificationStatus.FAILED,
        error_message=error_message,
        external_id=external_id,
        invoice_id=invoice_id,
        shipment_id=shipment_id,
        release_id=release_id,
        created_at=now,
        sent_at=now if success else None,
    )


class MongoSettingsStore:
    def __init__(self, db):
        self.db = db

    async def get_settings(self) -> Optional[NotificationSettings]:
        try:
            doc = await self.db.notification_settings.find_one({}, {"_id": 0})
        except Exception as e:
            logger.error(f"Lecture notification_settings impossible : {e}")
            return None
        if not doc:
            return None
        try:
            return NotificationSettings(**doc)
        except ValueError as e:
            logger.error(f"Réglages notification invalides : {e}")
            return None


class MongoTemplateStore:
    def __init__(self, db):
        self.db = db

    async def _find_one(self, query: dict) -> Optional[NotificationTemplate]:
        try:
            doc = await self.db.notification_templates.find_one(query, {"_id": 0})
        except Exception as e:
            logger.error(f"Lecture notification_templates impossible {query} : {e}")
            return None
        if not doc:
            return None
        try:
            return NotificationTemplate(**doc)
        except ValueError as e:
            logger.error(f"Template invalide {query} : {e}")
            return None

    async def get_template(self, channel: NotificationChannel, trigger: str) -> Optional[NotificationTemplate]:
        return await self._find_one({"type": channel.value, "trigger": trigger})

    async def get_template_by_id(self, template_id: str) -> Optional[NotificationTemplate]:
        return await self._find_one({"template_id": template_id})


class MongoDeliveryLogger:
    def __init__(self, db):
        self.db = db

    async def log(self, entry: NotificationLogEntry) -> bool:
        doc = entry.model_dump()
        doc["type"] = entry.type.value
        doc["status"] = entry.status.value
        try:
            await self.db.notification_log.insert_one(doc)
        except Exception as e:
            logger.error(f"Écriture notification_log impossible ({entry.type.value}) : {e}")
            return False
        return True

    async def recent(self, limit: int = 50) -> List[NotificationLogEntry]:
        try:
            cursor = self.db.notification_log.find({}, {"_id": 0}).sort("created_at", -1).limit(limit)
            docs = await cursor.to_list(length=limit)
            return [NotificationLogEntry(**doc) for doc in docs]
        except Exception as e:
            logger.error(f"Lecture notification_log impossible : {e}")
            return []
