# storefront/api/routers/webhooks.py
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from storefront.api.deps import get_notification_service, get_payment_gateway, raise_http
from storefront.data.database import get_db
from storefront.domain.errors import CommerceError
from storefront.domain.schemas import WebhookAck
from storefront.gateway.port import PaymentGateway
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/payments", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None),
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notification_service: NotificationService = Depends(get_notification_service),
):
    # podpis liczony z surowego body, nie z JSONa
    payload = await request.body()
    svc = OrderService(db, gateway, notification_service=notification_service)
    try:
        return await run_in_threadpool(svc.handle_webhook, payload, stripe_signature)
    except CommerceError as e:
        raise_http(e)
