from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from models.notification import NotificationChannel, NotificationStatus
from services.notification_repository import (
    MongoDeliveryLogger,
    MongoSettingsStore,
    MongoTemplateStore,
    build_log_entry,
)


def make_db():
    db = MagicMock()
    db.notification_settings.find_one = AsyncMock()
    db.notification_templates.find_one = AsyncMock()
    db.notification_log.insert_one = AsyncMock()
    return db


async def test_settings_store_reads_singleton():
    db = make_db()
    db.notification_settings.find_one.return_value = {
        "email_enabled": True,
        "email_from_name": "EPP",
        "email_from_address": "hello@epp.test",
        "sms_enabled": False,
        "send_invoice_notifications": False,
        "updated_at": "ignored",
    }

    settings = await MongoSettingsStore(db).get_settings()

    assert settings.email_enabled is True
    assert settings.send_invoice_notifications is False
    assert settings.send_shipping_notifications is True
    db.notification_settings.find_one.assert_awaited_once_with({}, {"_id": 0})


async def test_settings_store_missing_or_failing_returns_none():
    db = make_db()
    db.notification_settings.find_one.return_value = None
    assert await MongoSettingsStore(db).get_settings() is None

    db.notification_settings.find_one.side_effect = RuntimeError("server selection timeout")
    assert await MongoSettingsStore(db).get_settings() is None


async def test_settings_store_malformed_document_returns_none():
    db = make_db()
    db.notification_settings.find_one.return_value = {"email_enabled": "maybe", "sms_enabled": True}

    assert await MongoSettingsStore(db).get_settings() is None


async def test_template_store_queries_by_channel_and_trigger():
    db = make_db()
    db.notification_templates.find_one.return_value = {
        "template_id": "tpl_1",
        "type": "sms",
        "trigger": "order_shipped",
        "enabled": True,
        "sms_body": "Shipped {{tracking_number}}",
    }

    template = await MongoTemplateStore(db).get_template(NotificationChannel.SMS, "order_shipped")

    assert template.template_id == "tpl_1"
    assert template.type == NotificationChannel.SMS
    db.notification_templates.find_one.assert_awaited_once_with(
        {"type": "sms", "trigger": "order_shipped"}, {"_id": 0}
    )


async def test_template_store_by_id_and_invalid_documents():
    db = make_db()
    db.notification_templates.find_one.return_value = {"template_id": "tpl_2", "type": "fax", "trigger": "x"}

    assert await MongoTemplateStore(db).get_template_by_id("tpl_2") is None
    db.notification_templates.find_one.assert_awaited_once_with({"template_id": "tpl_2"}, {"_id": 0})


async def test_delivery_logger_inserts_plain_document():
    db = make_db()
    entry = build_log_entry(
        NotificationChannel.EMAIL,
        recipient="a@b.com",
        subject="Invoice INV-1",
        body="Hi",
        success=True,
        external_id="<m@x>",
        invoice_id="inv_1",
    )

    assert await MongoDeliveryLogger(db).log(entry) is True

    doc = db.notification_log.insert_one.call_args.args[0]
    assert doc["type"] == "email"
    assert doc["status"] == "sent"
    assert doc["subject"] == "Invoice INV-1"
    assert doc["invoice_id"] == "inv_1"
    assert isinstance(doc["created_at"], datetime)
    assert doc["sent_at"] == doc["created_at"]
    assert doc["log_id"].startswith("nlg_")


async def test_delivery_logger_failure_returns_false():
    db = make_db()
    db.notification_log.insert_one.side_effect = RuntimeError("write concern")
    entry = build_log_entry(NotificationChannel.SMS, recipient="5551234567", body="x", success=False, error_message="bad")

    assert entry.status == NotificationStatus.FAILED
    assert entry.sent_at is None
    assert await MongoDeliveryLogger(db).log(entry) is False


async def test_recent_sorts_newest_first():
    db = make_db()
    now = datetime.now(timezone.utc)
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[
        {"log_id": "nlg_1", "recipient": "a@b.com", "type": "email", "body": "Hi", "status": "sent", "created_at": now},
    ])
    db.notification_log.find.return_value = cursor

    entries = await MongoDeliveryLogger(db).recent(10)

    assert [e.log_id for e in entries] == ["nlg_1"]
    cursor.sort.assert_called_once_with("created_at", -1)
    cursor.limit.assert_called_once_with(10)
