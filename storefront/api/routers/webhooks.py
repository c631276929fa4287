# storefront/api/routers/webhooks.py
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from storefront.api.deps import get_payment_provider, get_event_dedup, http_error
from storefront.data.database import get_db
from storefront.domain.errors import InvalidSignature
from storefront.domain.schemas import WebhookAck
from storefront.services.event_dedup import EventDedupService
from storefront.services.payment_client import PaymentProvider
from storefront.services.payment_service import PaymentService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/payment", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    stripe_signature: str | None = Header(None),
    db: Session = Depends(get_db),
    provider: PaymentProvider = Depends(get_payment_provider),
    dedup: EventDedupService | None = Depends(get_event_dedup),
):
    """
    Signed provider callbacks. Always 200 once the signature checks out,
    processing errors are logged so the provider does not retry-storm.
    """
    # signature is computed over the exact bytes, read the raw body
    payload = await request.body()
    svc = PaymentService(db, provider, dedup)
    try:
        await run_in_threadpool(svc.reconcile_webhook, payload, stripe_signature)
    except InvalidSignature as e:
        logger.warning(f"Webhook signature verification failed: {e.payload.get('reason')}")
        raise http_error(400, e)
    return {"received": True}
