from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, Union
from pydantic import BaseModel, ConfigDict

# Valeur substituable dans un template : texte ou nombre, None = absente
Scalar = Union[str, int, float]


class NotificationChannel(str, Enum):
    EMAIL = "email"
    SMS   = "sms"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENT    = "sent"
    FAILED  = "failed"


class NotificationTrigger(str, Enum):
    INVOICE_READY   = "invoice_ready"
    ORDER_SHIPPED   = "order_shipped"
    ORDER_DELIVERED = "order_delivered"
    NEW_RELEASE     = "new_release"


class NotificationSettings(BaseModel):
    """Configuration globale (document unique `notification_settings`)."""
    model_config = ConfigDict(extra="ignore")

    email_enabled:      bool = False
    email_from_name:    str  = ""
    email_from_address: str  = ""
    email_reply_to:     Optional[str] = None
    sms_enabled:        bool = False
    sms_from_name:      str  = ""   # indicatif seulement, l'expéditeur réel est TWILIO_PHONE_NUMBER
    # Activation par déclencheur
    send_invoice_notifications:     bool = True
    send_shipping_notifications:    bool = True
    send_delivery_notifications:    bool = True
    send_new_release_notifications: bool = True


class NotificationTemplate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    template_id:   str
    type:          NotificationChannel
    trigger:       str
    name:          str  = ""
    enabled:       bool = True
    # Email
    email_subject: Optional[str] = None
    email_html:    Optional[str] = None
    email_text:    Optional[str] = None
    # SMS
    sms_body:      Optional[str] = None


class NotificationData(BaseModel):
    """
    Contexte d'un envoi. Tous les champs sont optionnels ; None signifie
    « absent » pour la substitution comme pour les blocs {{#if}}.
    Les champs supplémentaires sont acceptés (extensible par convention).
    """
    model_config = ConfigDict(extra="allow")

    # Client
    customer_name:    Optional[Scalar] = None
    customer_email:   Optional[Scalar] = None
    customer_phone:   Optional[Scalar] = None
    customer_id:      Optional[Scalar] = None
    # Facture
    invoice_number:   Optional[Scalar] = None
    total_amount:     Optional[Scalar] = None
    items_list:       Optional[Scalar] = None   # HTML brut
    items_list_text:  Optional[Scalar] = None
    invoice_url:      Optional[Scalar] = None
    invoice_id:       Optional[Scalar] = None
    due_date:         Optional[Scalar] = None
    # Expédition
    tracking_number:  Optional[Scalar] = None
    carrier:          Optional[Scalar] = None
    tracking_url:     Optional[Scalar] = None
    shipment_id:      Optional[Scalar] = None
    # Nouveauté
    item_name:        Optional[Scalar] = None
    item_description: Optional[Scalar] = None
    item_price:       Optional[Scalar] = None
    park:             Optional[Scalar] = None
    image_url:        Optional[Scalar] = None
    request_url:      Optional[Scalar] = None
    unsubscribe_url:  Optional[Scalar] = None
    release_id:       Optional[Scalar] = None

    def to_context(self) -> Dict[str, Any]:
        """Mapping plat des seules valeurs présentes."""
        return self.model_dump(exclude_none=True)


class SendOutcome(BaseModel):
    success:    bool
    message_id: Optional[str] = None
    error:      Optional[str] = None


class DispatchOptions(BaseModel):
    email_only:  bool = False
    sms_only:    bool = False
    force_email: Optional[str] = None   # remplace customer_email
    force_phone: Optional[str] = None   # remplace customer_phone


class DispatchResult(BaseModel):
    email: Optional[SendOutcome] = None
    sms:   Optional[SendOutcome] = None


class NotificationLogEntry(BaseModel):
    log_id:        str
    template_id:   Optional[str] = None
    customer_id:   Optional[str] = None
    recipient:     str
    type:          NotificationChannel
    subject:       Optional[str] = None   # email uniquement
    body:          str
    status:        NotificationStatus = NotificationStatus.PENDING
    error_message: Optional[str] = None
    external_id:   Optional[str] = None   # id du message côté fournisseur
    # Liens métier
    invoice_id:    Optional[str] = None
    shipment_id:   Optional[str] = None
    release_id:    Optional[str] = None
    # Timestamps
    created_at:    datetime
    sent_at:       Optional[datetime] = None


class ChannelStatus(BaseModel):
    configured: bool
    enabled:    bool


class NotificationStatusReport(BaseModel):
    email: ChannelStatus
    sms:   ChannelStatus


class DispatchRequest(BaseModel):
    trigger: str
    data:    NotificationData = NotificationData()
    options: DispatchOptions = DispatchOptions()


class SendTestRequest(BaseModel):
    template_id: Optional[str] = None
    recipient:   Optional[str] = None
