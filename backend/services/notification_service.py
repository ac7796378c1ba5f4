"""
Service notification : rendu des templates stockés en base et envoi email / SMS,
avec journalisation de chaque tentative dans notification_log.

Flux : réglages → activation du déclencheur → template → rendu → fournisseur → journal.
Aucune exception ne sort de dispatch() / send_test() : chaque canal renvoie un SendOutcome.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from config import settings as app_settings
from core.utils import mask_email, mask_phone
from models.notification import (
    ChannelStatus,
    DispatchOptions,
    DispatchResult,
    NotificationChannel,
    NotificationData,
    NotificationLogEntry,
    NotificationSettings,
    NotificationStatusReport,
    NotificationTemplate,
    NotificationTrigger,
    SendOutcome,
)
from services.email_provider import SmtpEmailClient
from services.notification_repository import (
    DeliveryLogger,
    MongoDeliveryLogger,
    MongoSettingsStore,
    MongoTemplateStore,
    SettingsStore,
    TemplateStore,
    build_log_entry,
)
from services.sms_provider import TwilioSmsClient
from services.template_renderer import render

logger = logging.getLogger(__name__)

TEST_PREFIX = "[TEST] "

NO_SETTINGS = "No settings"
NO_SETTINGS_FOUND = "No settings found"
TRIGGER_DISABLED = "Trigger disabled"
TEMPLATE_UNAVAILABLE = "Template not found or disabled"
TEMPLATE_NOT_FOUND = "Template not found"
NO_EMAIL = "No email address"
NO_PHONE = "No phone number"

# Déclencheur → champ booléen de NotificationSettings
TRIGGER_SETTING_FIELDS: Dict[str, str] = {
    NotificationTrigger.INVOICE_READY.value:   "send_invoice_notifications",
    NotificationTrigger.ORDER_SHIPPED.value:   "send_shipping_notifications",
    NotificationTrigger.ORDER_DELIVERED.value: "send_delivery_notifications",
    NotificationTrigger.NEW_RELEASE.value:     "send_new_release_notifications",
}


def sample_context() -> Dict[str, Any]:
    """Données fictives couvrant toutes les familles de variables (envoi test)."""
    due = datetime.now(timezone.utc) + timedelta(days=7)
    return {
        "customer_name":    "Test Customer",
        "invoice_number":   "INV-99999",
        "total_amount":     "127.50",
        "items_list":       "<ul><li>Mickey Spirit Jersey - $79.99</li><li>Loungefly Mini Backpack - $85.00</li></ul>",
        "items_list_text":  "- Mickey Spirit Jersey - $79.99\n- Loungefly Mini Backpack - $85.00",
        "invoice_url":      "https://enchantedparkpickups.com/invoice/test",
        "tracking_number":  "9400111899223847563012",
        "carrier":          "USPS",
        "tracking_url":     "https://tools.usps.com/go/TrackConfirmAction?tLabels=9400111899223847563012",
        "item_name":        "Figment Popcorn Bucket",
        "item_description": "Limited edition Figment-shaped popcorn bucket from EPCOT Festival of the Arts",
        "item_price":       "35.00",
        "park":             "Disney World - EPCOT",
        "image_url":        "https://example.com/figment.jpg",
        "request_url":      "https://enchantedparkpickups.com/new-releases?request=test",
        "unsubscribe_url":  "https://enchantedparkpickups.com/unsubscribe?id=test",
        "due_date":         f"{due.month}/{due.day}/{due.year}",
    }


class NotificationService:
    def __init__(
        self,
        settings_store: SettingsStore,
        template_store: TemplateStore,
        delivery_logger: DeliveryLogger,
        email_client: SmtpEmailClient,
        sms_client: TwilioSmsClient,
        on_unknown_trigger: Optional[Callable[[str], None]] = None,
    ):
        self.settings_store = settings_store
        self.template_store = template_store
        self.delivery_logger = delivery_logger
        self.email_client = email_client
        self.sms_client = sms_client
        self.on_unknown_trigger = on_unknown_trigger

    # ── Envoi sur déclencheur ────────────────────────────────────────────────
    async def dispatch(
        self,
        trigger: str,
        data: NotificationData,
        options: Optional[DispatchOptions] = None,
    ) -> DispatchResult:
        options = options or DispatchOptions()

        settings = await self.settings_store.get_settings()
        if not settings:
            logger.error("No notification settings found")
            return DispatchResult(
                email=SendOutcome(success=False, error=NO_SETTINGS),
                sms=SendOutcome(success=False, error=NO_SETTINGS),
            )

        if not self._trigger_enabled(settings, trigger):
            logger.debug(f"Déclencheur désactivé dans les réglages : {trigger}")
            return DispatchResult(
                email=SendOutcome(success=False, error=TRIGGER_DISABLED),
                sms=SendOutcome(success=False, error=TRIGGER_DISABLED),
            )

        context = data.to_context()
        branches = {}
        if not options.sms_only and settings.email_enabled:
            branches["email"] = self._dispatch_email(trigger, context, settings, options.force_email)
        if not options.email_only and settings.sms_enabled:
            branches["sms"] = self._dispatch_sms(trigger, context, options.force_phone)

        # Canaux indépendants : l'échec de l'un n'affecte pas l'autre
        outcomes = await asyncio.gather(*branches.values(), return_exceptions=True)
        result = DispatchResult()
        for channel, outcome in zip(branches, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Erreur inattendue canal {channel} ({trigger}) : {outcome}")
                outcome = SendOutcome(success=False, error=str(outcome) or type(outcome).__name__)
            setattr(result, channel, outcome)
        return result

    def _trigger_enabled(self, settings: NotificationSettings, trigger: str) -> bool:
        field = TRIGGER_SETTING_FIELDS.get(trigger)
        if field is None:
            # Déclencheur inconnu : autorisé par défaut
            logger.warning(f"Déclencheur inconnu '{trigger}', envoi autorisé par défaut")
            if self.on_unknown_trigger is not None:
                try:
                    self.on_unknown_trigger(trigger)
                except Exception as e:
                    logger.error(f"Hook déclencheur inconnu en erreur ({trigger}) : {e}")
            return True
        return bool(getattr(settings, field))

    async def _dispatch_email(
        self,
        trigger: str,
        context: Dict[str, Any],
        settings: NotificationSettings,
        force_email: Optional[str],
    ) -> SendOutcome:
        template = await self.template_store.get_template(NotificationChannel.EMAIL, trigger)
        if not template or not template.enabled:
            return SendOutcome(success=False, error=TEMPLATE_UNAVAILABLE)

        recipient = force_email or context.get("customer_email")
        if not recipient:
            return SendOutcome(success=False, error=NO_EMAIL)
        recipient = str(recipient)

        subject = render(template.email_subject or "", context)
        html = render(template.email_html or "", context)
        text = render(template.email_text or "", context)
        return await self._send_email(template, recipient, subject, html, text, settings, context)

    async def _dispatch_sms(
        self,
        trigger: str,
        context: Dict[str, Any],
        force_phone: Optional[str],
    ) -> SendOutcome:
        template = await self.template_store.get_template(NotificationChannel.SMS, trigger)
        if not template or not template.enabled:
            return SendOutcome(success=False, error=TEMPLATE_UNAVAILABLE)

        recipient = force_phone or context.get("customer_phone")
        if not recipient:
            return SendOutcome(success=False, error=NO_PHONE)
        recipient = str(recipient)

        body = render(template.sms_body or "", context)
        return await self._send_sms(template, recipient, body, context)

    async def _send_email(
        self,
        template: NotificationTemplate,
        recipient: str,
        subject: str,
        html: str,
        text: str,
        settings: NotificationSettings,
        links: Dict[str, Any],
    ) -> SendOutcome:
        try:
            outcome = await self.email_client.send(
                to=recipient,
                subject=subject,
                html=html,
                text=text,
                from_name=settings.email_from_name,
                from_address=settings.email_from_address,
                reply_to=settings.email_reply_to or None,
            )
        except Exception as e:
            # L'envoi a pu partir : on journalise quand même un échec
            outcome = SendOutcome(success=False, error=str(e) or type(e).__name__)
        await self.delivery_logger.log(build_log_entry(
            NotificationChannel.EMAIL,
            recipient=recipient,
            subject=subject,
            body=text,
            success=outcome.success,
            error_message=outcome.error,
            external_id=outcome.message_id,
            template_id=template.template_id,
            **_linkage(links),
        ))
        if not outcome.success:
            logger.warning(f"Email '{template.trigger}' non envoyé à {mask_email(recipient)} : {outcome.error}")
        return outcome

    async def _send_sms(
        self,
        template: NotificationTemplate,
        recipient: str,
        body: str,
        links: Dict[str, Any],
    ) -> SendOutcome:
        try:
            outcome = await self.sms_client.send(to=recipient, body=body)
        except Exception as e:
            outcome = SendOutcome(success=False, error=str(e) or type(e).__name__)
        await self.delivery_logger.log(build_log_entry(
            NotificationChannel.SMS,
            recipient=recipient,
            body=body,
            success=outcome.success,
            error_message=outcome.error,
            external_id=outcome.message_id,
            template_id=template.template_id,
            **_linkage(links),
        ))
        if not outcome.success:
            logger.warning(f"SMS '{template.trigger}' non envoyé à {mask_phone(recipient)} : {outcome.error}")
        return outcome

    # ── Envoi test ───────────────────────────────────────────────────────────
    async def send_test(self, template_id: str, recipient: str) -> SendOutcome:
        """
        Rend un template avec des données fictives et l'envoie préfixé « [TEST] ».
        Ignore l'activation du déclencheur et du template, mais exige les réglages.
        """
        template = await self.template_store.get_template_by_id(template_id)
        if not template:
            return SendOutcome(success=False, error=TEMPLATE_NOT_FOUND)

        settings = await self.settings_store.get_settings()
        if not settings:
            return SendOutcome(success=False, error=NO_SETTINGS_FOUND)

        context = sample_context()
        if template.type == NotificationChannel.EMAIL:
            subject = TEST_PREFIX + render(template.email_subject or "", context)
            html = render(template.email_html or "", context)
            text = render(template.email_text or "", context)
            return await self._send_email(template, recipient, subject, html, text, settings, {})

        body = TEST_PREFIX + render(template.sms_body or "", context)
        return await self._send_sms(template, recipient, body, {})

    # ── État & journal ───────────────────────────────────────────────────────
    async def get_status(self) -> NotificationStatusReport:
        settings = await self.settings_store.get_settings()
        return NotificationStatusReport(
            email=ChannelStatus(
                configured=self.email_client.is_configured,
                enabled=settings.email_enabled if settings else False,
            ),
            sms=ChannelStatus(
                configured=self.sms_client.is_configured,
                enabled=settings.sms_enabled if settings else False,
            ),
        )

    async def recent_log(self, limit: int = 50) -> List[NotificationLogEntry]:
        return await self.delivery_logger.recent(limit)


def _linkage(context: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Champs de liaison métier recopiés dans le journal."""
    return {
        key: (str(context[key]) if context.get(key) is not None else None)
        for key in ("customer_id", "invoice_id", "shipment_id", "release_id")
    }


def build_notification_service(database=None) -> NotificationService:
    """Assemble le service à partir de la config et de la base MongoDB."""
    if database is None:
        from database import db as database
    return NotificationService(
        settings_store=MongoSettingsStore(database),
        template_store=MongoTemplateStore(database),
        delivery_logger=MongoDeliveryLogger(database),
        email_client=SmtpEmailClient(
            host=app_settings.SMTP_HOST,
            port=app_settings.SMTP_PORT,
            username=app_settings.SMTP_USER,
            password=app_settings.SMTP_PASS,
            timeout=app_settings.PROVIDER_TIMEOUT_SECONDS,
        ),
        sms_client=TwilioSmsClient(
            account_sid=app_settings.TWILIO_ACCOUNT_SID,
            auth_token=app_settings.TWILIO_AUTH_TOKEN,
            from_number=app_settings.TWILIO_PHONE_NUMBER,
            base_url=app_settings.TWILIO_API_BASE_URL,
            timeout=app_settings.PROVIDER_TIMEOUT_SECONDS,
        ),
    )
