import pytest

from models.notification import (
    NotificationChannel,
    NotificationSettings,
    NotificationTemplate,
    SendOutcome,
)
from services.notification_service import NotificationService


class FakeSettingsStore:
    def __init__(self, settings=None):
        self.settings = settings
        self.calls = 0

    async def get_settings(self):
        self.calls += 1
        return self.settings


class FakeTemplateStore:
    def __init__(self, templates=()):
        self.templates = list(templates)
        self.lookups = []

    async def get_template(self, channel, trigger):
        self.lookups.append((channel, trigger))
        for template in self.templates:
            if template.type == channel and template.trigger == trigger:
                return template
        return None

    async def get_template_by_id(self, template_id):
        for template in self.templates:
            if template.template_id == template_id:
                return template
        return None


class FakeDeliveryLogger:
    def __init__(self):
        self.entries = []

    async def log(self, entry):
        self.entries.append(entry)
        return True

    async def recent(self, limit=50):
        return list(reversed(self.entries))[:limit]


class FakeEmailClient:
    def __init__(self, outcome=None, configured=True):
        self.outcome = outcome or SendOutcome(success=True, message_id="<msg-1@example.com>")
        self.is_configured = configured
        self.sent = []

    async def send(self, **kwargs):
        self.sent.append(kwargs)
        return self.outcome


class FakeSmsClient:
    def __init__(self, outcome=None, configured=True):
        self.outcome = outcome or SendOutcome(success=True, message_id="SM123")
        self.is_configured = configured
        self.sent = []

    async def send(self, **kwargs):
        self.sent.append(kwargs)
        return self.outcome


def make_settings(**overrides) -> NotificationSettings:
    base = {
        "email_enabled": True,
        "email_from_name": "Enchanted Park Pickups",
        "email_from_address": "hello@enchantedparkpickups.com",
        "email_reply_to": None,
        "sms_enabled": True,
        "sms_from_name": "EPP",
    }
    return NotificationSettings(**(base | overrides))


def email_template(trigger="invoice_ready", **overrides) -> NotificationTemplate:
    base = {
        "template_id": f"tpl_email_{trigger}",
        "type": NotificationChannel.EMAIL,
        "trigger": trigger,
        "name": f"Email {trigger}",
        "enabled": True,
        "email_subject": "Invoice {{invoice_number}}",
        "email_html": "<p>Hi {{customer_name}}</p>{{items_list}}",
        "email_text": "Hi {{customer_name}}, total {{total_amount}}{{#if due_date}} due {{due_date}}{{/if}}",
    }
    return NotificationTemplate(**(base | overrides))


def sms_template(trigger="invoice_ready", **overrides) -> NotificationTemplate:
    base = {
        "template_id": f"tpl_sms_{trigger}",
        "type": NotificationChannel.SMS,
        "trigger": trigger,
        "name": f"SMS {trigger}",
        "enabled": True,
        "sms_body": "Invoice {{invoice_number}} is ready{{#if invoice_url}}: {{invoice_url}}{{/if}}",
    }
    return NotificationTemplate(**(base | overrides))


@pytest.fixture
def settings_store():
    return FakeSettingsStore(make_settings())


@pytest.fixture
def template_store():
    return FakeTemplateStore([email_template(), sms_template()])


@pytest.fixture
def delivery_logger():
    return FakeDeliveryLogger()


@pytest.fixture
def email_client():
    return FakeEmailClient()


@pytest.fixture
def sms_client():
    return FakeSmsClient()


@pytest.fixture
def service(settings_store, template_store, delivery_logger, email_client, sms_client):
    return NotificationService(
        settings_store=settings_store,
        template_store=template_store,
        delivery_logger=delivery_logger,
        email_client=email_client,
        sms_client=sms_client,
    )
