"""
Router notifications : envoi sur déclencheur, envoi test d'un template,
état des canaux et journal des envois récents.
"""
import logging

from fastapi import APIRouter, Depends, Query

from core.dependencies import get_notification_service, require_admin
from core.exceptions import bad_request_exception
from models.notification import (
    DispatchRequest,
    DispatchResult,
    NotificationLogEntry,
    NotificationStatusReport,
    SendOutcome,
    SendTestRequest,
)
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_admin)])


@router.post("/send", response_model=DispatchResult, summary="Envoyer une notification sur déclencheur")
async def send_notification(
    body: DispatchRequest,
    service: NotificationService = Depends(get_notification_service),
):
    return await service.dispatch(body.trigger, body.data, body.options)


@router.post("/test", response_model=SendOutcome, summary="Envoi test d'un template")
async def send_test_notification(
    body: SendTestRequest,
    service: NotificationService = Depends(get_notification_service),
):
    if not body.template_id or not body.recipient:
        raise bad_request_exception("Template ID and recipient required")
    logger.info(f"Envoi test du template {body.template_id}")
    return await service.send_test(body.template_id, body.recipient)


@router.get("/status", response_model=NotificationStatusReport, summary="État des canaux email / SMS")
async def notification_status(service: NotificationService = Depends(get_notification_service)):
    return await service.get_status()


@router.get("/log", response_model=list[NotificationLogEntry], summary="Derniers envois journalisés")
async def notification_log(
    limit: int = Query(50, ge=1, le=500),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.recent_log(limit)
